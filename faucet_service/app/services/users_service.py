from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..models.user import User, Username
from ..repositories.interfaces import (
    UsernameRepositoryInterface,
    UserRepositoryInterface,
)
from ..repositories.user_repository import UsernameRepository, UserRepository


class UsersService:
    """유저 권한 조회, 지갑/로그인 기록, username 저장 비즈니스 로직."""

    def __init__(
        self,
        user_repo: UserRepositoryInterface,
        username_repo: UsernameRepositoryInterface,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_repo = user_repo
        self._username_repo = username_repo
        self._clock = clock

    def check_access(self, user_id: str, wallet_address: str | None = None) -> bool:
        """active 유저이고, 지갑 주소가 주어졌다면 등록된 주소와 일치할 때만 True."""

        user = self._user_repo.find_by_user_id(user_id)
        if user is None or not user.is_active:
            return False
        return not wallet_address or user.wallet_address == wallet_address

    def update_wallet(self, user_id: str, wallet_address: str) -> None:
        self._user_repo.update_wallet(user_id, wallet_address, self._clock())

    def record_login(self, user_id: str) -> None:
        self._user_repo.record_login(user_id, self._clock())

    def get_user(self, user_id: str) -> User | None:
        return self._user_repo.find_by_user_id(user_id)

    def store_username(self, username: str) -> bool:
        """username 을 한 번만 저장한다. 새로 저장했으면 True."""

        return self._username_repo.insert_if_absent(username, self._clock())

    def list_usernames(self) -> list[Username]:
        return self._username_repo.list()


def get_user_repository(
    db: Database = Depends(get_database),
) -> UserRepositoryInterface:
    """FastAPI DI용 UserRepository 팩토리."""

    return UserRepository(db)


def get_username_repository(
    db: Database = Depends(get_database),
) -> UsernameRepositoryInterface:
    return UsernameRepository(db)


def get_users_service(
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
    username_repo: UsernameRepositoryInterface = Depends(get_username_repository),
) -> UsersService:
    """FastAPI DI용 UsersService 팩토리."""

    return UsersService(user_repo=user_repo, username_repo=username_repo)
