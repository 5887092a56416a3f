from __future__ import annotations

from pydantic import Field

from common.types.datetime import UtcDateTime

from ...models.user import User, Username
from .common import RequestModel, ResponseModel


class CheckAccessRequest(RequestModel):
    user_id: str = Field(default="", alias="userId")
    wallet_address: str | None = Field(default=None, alias="walletAddress")


class CheckAccessResponse(ResponseModel):
    is_authorized: bool = Field(alias="isAuthorized")


class UpdateWalletRequest(RequestModel):
    user_id: str = Field(default="", alias="userId")
    wallet_address: str = Field(default="", alias="walletAddress")


class RecordLoginRequest(RequestModel):
    user_id: str = Field(default="", alias="userId")


class UserResponse(ResponseModel):
    id: str
    status: str | None = None
    wallet_address: str | None = Field(default=None, alias="walletAddress")
    authorized_at: UtcDateTime | None = Field(default=None, alias="authorizedAt")
    last_code: str | None = Field(default=None, alias="lastCode")
    last_login: UtcDateTime | None = Field(default=None, alias="lastLogin")
    login_count: int = Field(default=0, alias="loginCount")
    created_at: UtcDateTime = Field(alias="createdAt")
    updated_at: UtcDateTime = Field(alias="updatedAt")

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.user_id,
            status=user.status,
            wallet_address=user.wallet_address,
            authorized_at=user.authorized_at,
            last_code=user.last_code,
            last_login=user.last_login,
            login_count=user.login_count,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class GetUserResponse(ResponseModel):
    user: UserResponse


class StoreUsernameRequest(RequestModel):
    username: str = ""


class UsernameResponse(ResponseModel):
    id: str
    username: str
    created_at: UtcDateTime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, username: Username) -> "UsernameResponse":
        return cls(
            id=username.id or "",
            username=username.username,
            created_at=username.created_at,
        )


class ListUsernamesResponse(ResponseModel):
    usernames: list[UsernameResponse]
