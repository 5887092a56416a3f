from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from ..models.access_code import AccessCode, AccessCodeStatus
from ..models.user import User, Username


T = TypeVar("T")


class RedemptionTransactionInterface(Protocol):
    """코드 사용 트랜잭션 안에서만 쓸 수 있는 읽기/쓰기 연산.

    - 모든 쓰기는 트랜잭션 커밋 시 한꺼번에 반영되거나 전혀 반영되지 않는다.
    - 같은 코드 도큐먼트에 대한 동시 트랜잭션이 충돌하면 저장소가 콜백을 처음부터 다시 실행한다.
    """

    def get_code(
        self, code_id: str
    ) -> AccessCode | None:  # pragma: no cover - Protocol
        ...

    def set_code_status(
        self, code_id: str, status: AccessCodeStatus, now: datetime
    ) -> None:  # pragma: no cover - Protocol
        ...

    def mark_code_used(
        self, code_id: str, user_id: str, now: datetime
    ) -> None:  # pragma: no cover - Protocol
        ...

    def get_user(self, user_id: str) -> User | None:  # pragma: no cover - Protocol
        ...

    def authorize_user(
        self,
        user_id: str,
        code: str,
        now: datetime,
        set_authorized_at: bool,
    ) -> None:  # pragma: no cover - Protocol
        ...


class AccessCodeRepositoryInterface(Protocol):
    """AccessCodeRepository가 따라야 할 최소한의 계약.

    Service 레이어는 이 인터페이스에만 의존하고, 구체 구현(Mongo 등)은 몰라도 된다.
    """

    def find_active_by_code(
        self, code: str
    ) -> AccessCode | None:  # pragma: no cover - Protocol
        ...

    def exists_by_code(self, code: str) -> bool:  # pragma: no cover - Protocol
        ...

    def insert(
        self, access_code: AccessCode
    ) -> AccessCode | None:  # pragma: no cover - Protocol
        """active 코드 문자열이 중복이면 None 을 반환한다."""
        ...

    def list(
        self, status: AccessCodeStatus | None
    ) -> list[AccessCode]:  # pragma: no cover - Protocol
        ...

    def revoke(
        self, code_id: str, now: datetime
    ) -> bool:  # pragma: no cover - Protocol
        ...

    def run_redemption(
        self, callback: Callable[[RedemptionTransactionInterface], T]
    ) -> T:  # pragma: no cover - Protocol
        ...


class UserRepositoryInterface(Protocol):
    def find_by_user_id(self, user_id: str) -> User | None:  # pragma: no cover - Protocol
        ...

    def update_wallet(
        self, user_id: str, wallet_address: str, now: datetime
    ) -> None:  # pragma: no cover - Protocol
        ...

    def record_login(
        self, user_id: str, now: datetime
    ) -> None:  # pragma: no cover - Protocol
        ...


class UsernameRepositoryInterface(Protocol):
    def insert_if_absent(
        self, username: str, now: datetime
    ) -> bool:  # pragma: no cover - Protocol
        """새로 저장했으면 True, 이미 있으면 False."""
        ...

    def list(self) -> list[Username]:  # pragma: no cover - Protocol
        ...
