from __future__ import annotations

from common.mongo.types import BaseDocument, OptionalMongoDateTime, from_object_id

from ...models.user import User, Username


class UserDocument(BaseDocument):
    """MongoDB users 컬렉션 도큐먼트 모델.

    upsert 로만 만들어지므로 status/wallet_address 등은 비어 있을 수 있다.
    """

    user_id: str
    status: str | None = None
    wallet_address: str | None = None
    authorized_at: OptionalMongoDateTime = None
    last_code: str | None = None
    last_login: OptionalMongoDateTime = None
    login_count: int = 0

    def to_domain(self) -> User:
        return User(
            user_id=self.user_id,
            status=self.status,
            wallet_address=self.wallet_address,
            authorized_at=self.authorized_at,
            last_code=self.last_code,
            last_login=self.last_login,
            login_count=self.login_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UsernameDocument(BaseDocument):
    """MongoDB usernames 컬렉션 도큐먼트 모델."""

    username: str

    def to_domain(self) -> Username:
        return Username(
            id=from_object_id(self.id),
            username=self.username,
            created_at=self.created_at,
        )
