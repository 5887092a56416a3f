"""접근 코드 도메인 모델.

코드는 관리자가 생성하고, 코드 사용(redemption) 트랜잭션이나 명시적 폐기(revoke)로만 상태가 바뀐다.
삭제하지 않는다.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


CODE_LENGTH = 6
# 0/O, 1/I 처럼 헷갈리는 문자를 뺀 32자
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

ERROR_INVALID_CODE = "Invalid code"
ERROR_CODE_EXPIRED = "Code expired"
ERROR_USAGE_LIMIT_REACHED = "Code usage limit reached"
ERROR_USED_BY_ANOTHER_USER = "This code has already been used by another user"
MESSAGE_ALREADY_USED_BY_USER = "Code already used by this user"


class AccessCodeStatus(StrEnum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    REVOKED = "revoked"


class AccessCode(BaseModel):
    """접근 코드 도메인 모델.

    - used_by 가 한 번 정해지면 같은 유저만 다시 사용할 수 있다 (멱등 재검증).
    - 따라서 max_uses 는 첫 사용 전까지만 의미가 있다.
    """

    id: str | None = None
    code: str
    status: AccessCodeStatus = AccessCodeStatus.ACTIVE
    used_count: int = Field(default=0, ge=0)
    max_uses: int | None = Field(default=None, gt=0)  # None = 무제한
    expires_at: datetime | None = None  # None = 만료 없음
    used_by: str | None = None
    note: str = ""
    created_at: datetime
    updated_at: datetime
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses


class ValidationOutcome(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BACKEND_ERROR = "backend_error"


class CodeValidationResult(BaseModel):
    """코드 검증 결과.

    검증 실패(REJECTED)는 정상 응답의 일부이고, 저장소 장애(BACKEND_ERROR)와 구분된다.
    """

    outcome: ValidationOutcome
    message: str | None = None
    error: str | None = None
    detail: str | None = None

    @property
    def valid(self) -> bool:
        return self.outcome is ValidationOutcome.ACCEPTED

    @classmethod
    def accepted(cls, message: str | None = None) -> "CodeValidationResult":
        return cls(outcome=ValidationOutcome.ACCEPTED, message=message)

    @classmethod
    def rejected(cls, error: str) -> "CodeValidationResult":
        return cls(outcome=ValidationOutcome.REJECTED, error=error)

    @classmethod
    def backend_error(cls, detail: str) -> "CodeValidationResult":
        return cls(outcome=ValidationOutcome.BACKEND_ERROR, detail=detail)
