from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


USER_STATUS_ACTIVE = "active"


class User(BaseModel):
    """접근 권한을 가진(또는 지갑만 등록한) 유저 도메인 모델.

    - user_id 는 호출자가 넘겨주는 외부 식별자다.
    - 첫 코드 사용/지갑 등록/로그인 기록 시 upsert 로 생성되고, 이후에는 merge 만 한다.
    """

    user_id: str
    status: str | None = None
    wallet_address: str | None = None
    authorized_at: datetime | None = None
    last_code: str | None = None
    last_login: datetime | None = None
    login_count: int = 0
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE


class Username(BaseModel):
    id: str | None = None
    username: str
    created_at: datetime
