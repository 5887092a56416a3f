from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    OptionalMongoDateTime,
    from_object_id,
)

from ...models.access_code import AccessCode, AccessCodeStatus


class AccessCodeDocument(BaseDocument):
    """MongoDB access_codes 컬렉션 도큐먼트 모델."""

    code: str
    status: AccessCodeStatus
    used_count: int = 0
    max_uses: int | None = None
    expires_at: OptionalMongoDateTime = None
    used_by: str | None = None
    note: str = ""
    last_used_at: OptionalMongoDateTime = None
    revoked_at: OptionalMongoDateTime = None

    @classmethod
    def from_domain(cls, access_code: AccessCode) -> "AccessCodeDocument":
        # 도메인 id 는 문자열이므로 _id 는 비워 두고 Mongo 가 생성하게 한다.
        data = access_code.model_dump(exclude={"id"})
        return cls.model_validate(data)

    def to_domain(self) -> AccessCode:
        return AccessCode(
            id=from_object_id(self.id),
            code=self.code,
            status=self.status,
            used_count=self.used_count,
            max_uses=self.max_uses,
            expires_at=self.expires_at,
            used_by=self.used_by,
            note=self.note,
            created_at=self.created_at,
            updated_at=self.updated_at,
            last_used_at=self.last_used_at,
            revoked_at=self.revoked_at,
        )

    def to_mongo_record(self) -> dict:
        record = super().to_mongo_record()
        record["status"] = self.status.value
        return record
