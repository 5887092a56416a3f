from __future__ import annotations

from pydantic import Field

from common.types.datetime import UtcDateTime

from ...models.access_code import AccessCode, AccessCodeStatus, CodeValidationResult
from .common import AdminRequestModel, RequestModel, ResponseModel


class ValidateCodeRequest(RequestModel):
    # 형식 검사는 라우트에서 하므로 빈 값도 일단 받는다.
    code: str = ""
    user_id: str = Field(default="", alias="userId")


class ValidateCodeResponse(ResponseModel):
    valid: bool
    message: str | None = None
    error: str | None = None

    @classmethod
    def from_domain(cls, result: CodeValidationResult) -> "ValidateCodeResponse":
        return cls(valid=result.valid, message=result.message, error=result.error)


# Mongo int32 범위, 만료일은 100년까지.
MAX_USES_LIMIT = 2**31 - 1
EXPIRES_IN_DAYS_LIMIT = 36500


class GenerateCodeRequest(AdminRequestModel):
    max_uses: int | None = Field(
        default=None, gt=0, le=MAX_USES_LIMIT, alias="maxUses"
    )
    expires_in_days: int | None = Field(
        default=None, gt=0, le=EXPIRES_IN_DAYS_LIMIT, alias="expiresInDays"
    )
    note: str | None = None


class GenerateCodeResponse(ResponseModel):
    id: str
    code: str
    expires_at: UtcDateTime | None = Field(default=None, alias="expiresAt")
    max_uses: int | None = Field(default=None, alias="maxUses")

    @classmethod
    def from_domain(cls, access_code: AccessCode) -> "GenerateCodeResponse":
        return cls(
            id=access_code.id or "",
            code=access_code.code,
            expires_at=access_code.expires_at,
            max_uses=access_code.max_uses,
        )


class AccessCodeResponse(ResponseModel):
    id: str
    code: str
    status: AccessCodeStatus
    used_count: int = Field(alias="usedCount")
    max_uses: int | None = Field(default=None, alias="maxUses")
    expires_at: UtcDateTime | None = Field(default=None, alias="expiresAt")
    used_by: str | None = Field(default=None, alias="usedBy")
    note: str = ""
    created_at: UtcDateTime = Field(alias="createdAt")
    last_used_at: UtcDateTime | None = Field(default=None, alias="lastUsedAt")
    revoked_at: UtcDateTime | None = Field(default=None, alias="revokedAt")

    @classmethod
    def from_domain(cls, access_code: AccessCode) -> "AccessCodeResponse":
        return cls(
            id=access_code.id or "",
            code=access_code.code,
            status=access_code.status,
            used_count=access_code.used_count,
            max_uses=access_code.max_uses,
            expires_at=access_code.expires_at,
            used_by=access_code.used_by,
            note=access_code.note,
            created_at=access_code.created_at,
            last_used_at=access_code.last_used_at,
            revoked_at=access_code.revoked_at,
        )


class ListCodesResponse(ResponseModel):
    codes: list[AccessCodeResponse]


class RevokeCodeRequest(AdminRequestModel):
    code_id: str = Field(default="", alias="codeId")
