"""접근 코드 레포지토리 구현체.

코드 사용 처리는 두 단계로 나뉜다.
1. 트랜잭션 밖에서 active 코드의 id 를 찾는다 (find_active_by_code).
2. run_redemption 트랜잭션 안에서 같은 도큐먼트를 다시 읽고 상태를 전이한다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, TypeVar

from pymongo import DESCENDING, ReadPreference
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from common.mongo.client import ACCESS_CODES_COLLECTION, USERS_COLLECTION
from common.mongo.types import parse_object_id

from ..models.access_code import AccessCode, AccessCodeStatus
from ..models.user import USER_STATUS_ACTIVE, User
from .documents.access_code_document import AccessCodeDocument
from .documents.user_document import UserDocument
from .interfaces import AccessCodeRepositoryInterface, RedemptionTransactionInterface


T = TypeVar("T")


class MongoRedemptionTransaction(RedemptionTransactionInterface):
    """ClientSession 에 묶인 트랜잭션 연산 모음."""

    def __init__(
        self,
        codes: Collection,
        users: Collection,
        session: ClientSession,
    ) -> None:
        self._codes = codes
        self._users = users
        self._session = session

    def get_code(self, code_id: str) -> AccessCode | None:
        object_id = parse_object_id(code_id)
        if object_id is None:
            return None
        doc = self._codes.find_one({"_id": object_id}, session=self._session)
        if not doc:
            return None
        return AccessCodeDocument.model_validate(doc).to_domain()

    def set_code_status(
        self, code_id: str, status: AccessCodeStatus, now: datetime
    ) -> None:
        self._codes.update_one(
            {"_id": parse_object_id(code_id)},
            {"$set": {"status": status.value, "updated_at": now}},
            session=self._session,
        )

    def mark_code_used(self, code_id: str, user_id: str, now: datetime) -> None:
        self._codes.update_one(
            {"_id": parse_object_id(code_id)},
            {
                "$inc": {"used_count": 1},
                "$set": {
                    "used_by": user_id,
                    "last_used_at": now,
                    "updated_at": now,
                },
            },
            session=self._session,
        )

    def get_user(self, user_id: str) -> User | None:
        doc = self._users.find_one({"user_id": user_id}, session=self._session)
        if not doc:
            return None
        return UserDocument.model_validate(doc).to_domain()

    def authorize_user(
        self,
        user_id: str,
        code: str,
        now: datetime,
        set_authorized_at: bool,
    ) -> None:
        fields: dict[str, object] = {
            "status": USER_STATUS_ACTIVE,
            "last_code": code,
            "updated_at": now,
        }
        if set_authorized_at:
            fields["authorized_at"] = now

        self._users.update_one(
            {"user_id": user_id},
            {
                "$set": fields,
                "$setOnInsert": {"user_id": user_id, "created_at": now},
            },
            upsert=True,
            session=self._session,
        )


class AccessCodeRepository(AccessCodeRepositoryInterface):
    """access_codes 컬렉션에 대한 MongoDB 접근 레이어.

    run_redemption 은 멀티 도큐먼트 트랜잭션을 쓰므로 레플리카셋이 필요하다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database[ACCESS_CODES_COLLECTION]
        self._users = database[USERS_COLLECTION]

    @staticmethod
    def _from_document(doc: dict) -> AccessCode:
        return AccessCodeDocument.model_validate(doc).to_domain()

    def find_active_by_code(self, code: str) -> AccessCode | None:
        doc = self._col.find_one(
            {"code": code, "status": AccessCodeStatus.ACTIVE.value}
        )
        if not doc:
            return None
        return self._from_document(doc)

    def exists_by_code(self, code: str) -> bool:
        return self._col.count_documents({"code": code}, limit=1) > 0

    def insert(self, access_code: AccessCode) -> AccessCode | None:
        payload = AccessCodeDocument.from_domain(access_code).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError:
            # uniq_active_code 부분 인덱스 충돌: 동시에 같은 문자열이 생성된 경우
            return None
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def list(self, status: AccessCodeStatus | None) -> list[AccessCode]:
        query: dict[str, object] = {}
        if status is not None:
            query["status"] = status.value
        cursor = self._col.find(query, sort=[("created_at", DESCENDING)])
        return [self._from_document(doc) for doc in cursor]

    def revoke(self, code_id: str, now: datetime) -> bool:
        object_id = parse_object_id(code_id)
        if object_id is None:
            return False
        result = self._col.update_one(
            {"_id": object_id},
            {
                "$set": {
                    "status": AccessCodeStatus.REVOKED.value,
                    "revoked_at": now,
                    "updated_at": now,
                }
            },
        )
        return result.matched_count > 0

    def run_redemption(
        self, callback: Callable[[RedemptionTransactionInterface], T]
    ) -> T:
        """콜백을 하나의 트랜잭션으로 실행한다.

        with_transaction 이 TransientTransactionError(쓰기 충돌 등)를 만나면
        콜백을 처음부터 다시 실행하므로, 콜백은 매번 도큐먼트를 새로 읽어야 한다.
        """

        with self._db.client.start_session() as session:
            return session.with_transaction(
                lambda s: callback(MongoRedemptionTransaction(self._col, self._users, s)),
                read_concern=ReadConcern("snapshot"),
                write_concern=WriteConcern("majority"),
                read_preference=ReadPreference.PRIMARY,
            )
