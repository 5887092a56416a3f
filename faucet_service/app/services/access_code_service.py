"""접근 코드 서비스.

코드 검증(사용 처리), 생성, 목록 조회, 폐기를 담당한다.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from fastapi import Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..exceptions import CodeGenerationError
from ..models.access_code import (
    CODE_ALPHABET,
    CODE_LENGTH,
    ERROR_CODE_EXPIRED,
    ERROR_INVALID_CODE,
    ERROR_USAGE_LIMIT_REACHED,
    ERROR_USED_BY_ANOTHER_USER,
    MESSAGE_ALREADY_USED_BY_USER,
    AccessCode,
    AccessCodeStatus,
    CodeValidationResult,
)
from ..repositories.access_code_repository import AccessCodeRepository
from ..repositories.interfaces import (
    AccessCodeRepositoryInterface,
    RedemptionTransactionInterface,
)


logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 10


def generate_random_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class AccessCodeService:
    """접근 코드 관련 비즈니스 로직.

    - Repository(AccessCodeRepositoryInterface)에만 의존하고, Mongo 세부 구현은 알지 않는다.
    - 검증 결과는 예외가 아니라 CodeValidationResult 로 돌려준다.
    """

    def __init__(
        self,
        repo: AccessCodeRepositoryInterface,
        clock: Callable[[], datetime] = utc_now,
        code_factory: Callable[[], str] = generate_random_code,
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._code_factory = code_factory

    def validate_code(self, code: str, user_id: str) -> CodeValidationResult:
        """코드를 검증하고, 처음 사용하는 경우 user_id 에게 귀속시킨다.

        형식 검사(6자리, user_id 필수)는 호출자(HTTP 레이어)가 먼저 끝낸 상태여야 한다.
        """

        normalized = code.upper()
        try:
            found = self._repo.find_active_by_code(normalized)
            if found is None or found.id is None:
                return CodeValidationResult.rejected(ERROR_INVALID_CODE)

            code_id = found.id
            result = self._repo.run_redemption(
                lambda tx: self._redeem(tx, code_id, normalized, user_id)
            )
        except PyMongoError as exc:
            logger.exception(
                "failed to validate access code", extra={"user_id": user_id}
            )
            return CodeValidationResult.backend_error(str(exc))

        logger.info(
            "access code validated (outcome=%s)",
            result.outcome.value,
            extra={"code_id": code_id, "user_id": user_id},
        )
        return result

    def _redeem(
        self,
        tx: RedemptionTransactionInterface,
        code_id: str,
        code: str,
        user_id: str,
    ) -> CodeValidationResult:
        # 트랜잭션 재시도 시 매번 새로 호출되므로 상태는 항상 다시 읽는다.
        now = self._clock()
        access_code = tx.get_code(code_id)

        # 조회와 트랜잭션 사이에 폐기/만료된 경우
        if access_code is None or access_code.status is not AccessCodeStatus.ACTIVE:
            return CodeValidationResult.rejected(ERROR_INVALID_CODE)

        if access_code.is_expired(now):
            tx.set_code_status(code_id, AccessCodeStatus.EXPIRED, now)
            return CodeValidationResult.rejected(ERROR_CODE_EXPIRED)

        # 이미 귀속된 유저의 재검증은 사용 횟수와 무관하게 허용한다 (쓰기 없음).
        if access_code.used_by == user_id:
            return CodeValidationResult.accepted(MESSAGE_ALREADY_USED_BY_USER)

        if access_code.is_exhausted():
            tx.set_code_status(code_id, AccessCodeStatus.USED, now)
            return CodeValidationResult.rejected(ERROR_USAGE_LIMIT_REACHED)

        if access_code.used_by is not None:
            return CodeValidationResult.rejected(ERROR_USED_BY_ANOTHER_USER)

        tx.mark_code_used(code_id, user_id, now)
        user = tx.get_user(user_id)
        tx.authorize_user(
            user_id,
            code,
            now,
            set_authorized_at=user is None or user.authorized_at is None,
        )
        return CodeValidationResult.accepted()

    def generate_code(
        self,
        max_uses: int | None = None,
        expires_in_days: int | None = None,
        note: str | None = None,
    ) -> AccessCode:
        """새 active 코드를 만든다.

        - 이미 저장된 적 있는 문자열은 피한다 (사전 조회).
        - 사전 조회와 insert 사이 경합은 uniq_active_code 인덱스가 막고, 충돌 시 새 문자열로 재시도한다.
        """

        now = self._clock()
        expires_at = now + timedelta(days=expires_in_days) if expires_in_days else None

        for _ in range(MAX_GENERATION_ATTEMPTS):
            candidate = self._code_factory()
            if self._repo.exists_by_code(candidate):
                continue

            created = self._repo.insert(
                AccessCode(
                    code=candidate,
                    status=AccessCodeStatus.ACTIVE,
                    used_count=0,
                    max_uses=max_uses,
                    expires_at=expires_at,
                    note=note or "",
                    created_at=now,
                    updated_at=now,
                )
            )
            if created is not None:
                logger.info("access code generated", extra={"code_id": created.id})
                return created

        raise CodeGenerationError(
            f"could not generate a unique access code in {MAX_GENERATION_ATTEMPTS} attempts"
        )

    def list_codes(self, status: AccessCodeStatus | None = None) -> list[AccessCode]:
        return self._repo.list(status)

    def revoke_code(self, code_id: str) -> bool:
        """코드를 폐기한다. 존재하지 않는 code_id 면 False."""

        revoked = self._repo.revoke(code_id, self._clock())
        if revoked:
            logger.info("access code revoked", extra={"code_id": code_id})
        return revoked


def get_access_code_repository(
    db: Database = Depends(get_database),
) -> AccessCodeRepositoryInterface:
    """FastAPI DI용 AccessCodeRepository 팩토리."""

    return AccessCodeRepository(db)


def get_access_code_service(
    repo: AccessCodeRepositoryInterface = Depends(get_access_code_repository),
) -> AccessCodeService:
    """FastAPI DI용 AccessCodeService 팩토리."""

    return AccessCodeService(repo)
