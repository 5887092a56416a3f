from __future__ import annotations

from datetime import datetime

from pymongo import DESCENDING
from pymongo.database import Database

from common.mongo.client import USERNAMES_COLLECTION, USERS_COLLECTION

from ..models.user import User, Username
from .documents.user_document import UserDocument, UsernameDocument
from .interfaces import UsernameRepositoryInterface, UserRepositoryInterface


class UserRepository(UserRepositoryInterface):
    """users 컬렉션에 대한 MongoDB 접근 레이어.

    모든 쓰기는 user_id 기준 upsert 이며 기존 필드를 덮어쓰지 않고 merge 한다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database[USERS_COLLECTION]

    def find_by_user_id(self, user_id: str) -> User | None:
        doc = self._col.find_one({"user_id": user_id})
        if not doc:
            return None
        return UserDocument.model_validate(doc).to_domain()

    def update_wallet(self, user_id: str, wallet_address: str, now: datetime) -> None:
        self._col.update_one(
            {"user_id": user_id},
            {
                "$set": {"wallet_address": wallet_address, "updated_at": now},
                "$setOnInsert": {"user_id": user_id, "created_at": now},
            },
            upsert=True,
        )

    def record_login(self, user_id: str, now: datetime) -> None:
        self._col.update_one(
            {"user_id": user_id},
            {
                "$set": {"last_login": now, "updated_at": now},
                "$inc": {"login_count": 1},
                "$setOnInsert": {"user_id": user_id, "created_at": now},
            },
            upsert=True,
        )


class UsernameRepository(UsernameRepositoryInterface):
    """usernames 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database[USERNAMES_COLLECTION]

    def insert_if_absent(self, username: str, now: datetime) -> bool:
        # uniq_username 인덱스가 있으므로 동시에 같은 이름이 들어와도 하나만 insert 된다.
        result = self._col.update_one(
            {"username": username},
            {
                "$setOnInsert": {
                    "username": username,
                    "created_at": now,
                    "updated_at": now,
                }
            },
            upsert=True,
        )
        return result.upserted_id is not None

    def list(self) -> list[Username]:
        cursor = self._col.find({}, sort=[("created_at", DESCENDING)])
        return [UsernameDocument.model_validate(doc).to_domain() for doc in cursor]
