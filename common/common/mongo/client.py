from __future__ import annotations

import logging

from fastapi import Request
from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.database import Database

from .config import MongoConfig


logger = logging.getLogger(__name__)


ACCESS_CODES_COLLECTION = "access_codes"
USERS_COLLECTION = "users"
USERNAMES_COLLECTION = "usernames"


def create_client(config: MongoConfig) -> MongoClient:
    """설정으로부터 MongoClient 를 만들고 ping 으로 연결을 검증한다.

    전역 싱글톤을 두지 않는다. 호출자(create_app lifespan)가 수명을 관리하고 close 한다.
    """

    client: MongoClient = MongoClient(config.uri, tz_aware=True)
    try:
        client.admin.command("ping")
    except Exception as exc:  # noqa: BLE001
        client.close()
        raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc
    return client


def resolve_database(client: MongoClient, config: MongoConfig) -> Database:
    """MONGO_DB_NAME 우선, 없으면 URI의 기본 DB 를 사용한다."""

    try:
        if config.db_name:
            return client[config.db_name]
        return client.get_default_database()
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(
            "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
        ) from exc


def get_database(request: Request) -> Database:
    """FastAPI DI용 Database 팩토리. 앱 lifespan 에서 app.state.database 에 넣어 둔 값을 쓴다."""

    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("MongoDB database is not initialized (app lifespan not started)")
    return database


def ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다.

    중복 생성해도 MongoDB 가 처리하므로 idempotent 하다.
    """

    access_codes = db[ACCESS_CODES_COLLECTION]
    access_codes.create_indexes(
        [
            # active 상태의 코드 문자열은 하나만 존재할 수 있다 (코드 생성 경합 방지)
            IndexModel(
                [("code", ASCENDING)],
                name="uniq_active_code",
                unique=True,
                partialFilterExpression={"status": "active"},
            ),
            IndexModel(
                [("code", ASCENDING), ("status", ASCENDING)],
                name="idx_code_status",
            ),
            IndexModel(
                [("status", ASCENDING), ("created_at", DESCENDING)],
                name="idx_status_created_at",
            ),
        ]
    )

    users = db[USERS_COLLECTION]
    users.create_index(
        [("user_id", ASCENDING)],
        name="uniq_user_id",
        unique=True,
    )

    usernames = db[USERNAMES_COLLECTION]
    usernames.create_index(
        [("username", ASCENDING)],
        name="uniq_username",
        unique=True,
    )

    logger.info("MongoDB indexes ensured (db=%s)", db.name)
