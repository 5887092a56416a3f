"""공통 스키마 정의.

요청/응답 JSON 필드명은 camelCase 이고, 파이썬 속성은 snake_case 다.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    """모든 요청 바디의 베이스. 정의되지 않은 필드는 400 으로 거절한다."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AdminRequestModel(RequestModel):
    """관리자 요청 바디. 헤더 대신 바디로 adminKey 를 넘길 수 있다 (인증은 require_admin 이 처리)."""

    admin_key: str | None = Field(default=None, alias="adminKey")


class ResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SuccessResponse(ResponseModel):
    success: bool = True
    message: str | None = None
