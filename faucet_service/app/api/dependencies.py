"""라우트 공통 의존성: 설정 조회, 관리자 인증, faucet 요청 제한."""

from __future__ import annotations

import hmac
import logging

from fastapi import Depends, HTTPException, Request, status

from ..config import AppConfig
from ..services.rate_limiter import SlidingWindowRateLimiter


logger = logging.getLogger(__name__)

ADMIN_KEY_HEADER = "x-admin-key"
ADMIN_KEY_FIELD = "adminKey"

ERROR_UNAUTHORIZED = "Unauthorized. Admin privileges required."
ERROR_TOO_MANY_REQUESTS = "Too many requests, please try again later."


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter


async def _read_body_field(request: Request, name: str) -> str | None:
    # 바디가 없거나 JSON 객체가 아니면 무시한다.
    try:
        payload = await request.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    value = payload.get(name)
    return value if isinstance(value, str) else None


async def require_admin(
    request: Request,
    config: AppConfig = Depends(get_app_config),
) -> None:
    """x-admin-key 헤더, 바디 adminKey, 쿼리 adminKey 순서로 관리자 키를 찾아 검증한다.

    ADMIN_SECRET_KEY 가 설정되지 않았으면 항상 401 이다.
    """

    provided = request.headers.get(ADMIN_KEY_HEADER)
    if not provided:
        provided = await _read_body_field(request, ADMIN_KEY_FIELD)
    if not provided:
        provided = request.query_params.get(ADMIN_KEY_FIELD)

    expected = config.admin_secret_key
    if not expected or not provided or not hmac.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning("admin authentication failed (path=%s)", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": ERROR_UNAUTHORIZED},
        )


def enforce_faucet_rate_limit(
    request: Request,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    client_ip = request.client.host if request.client else "unknown"
    if not limiter.hit(client_ip):
        logger.warning("faucet rate limit exceeded (client=%s)", client_ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"success": False, "error": ERROR_TOO_MANY_REQUESTS},
        )


def backend_failure(
    message: str,
    exc: Exception,
    config: AppConfig,
) -> HTTPException:
    """저장소 장애를 500 응답으로 바꾼다. development 환경에서만 details 를 노출한다."""

    detail: dict[str, object] = {"error": message}
    if config.is_development:
        detail["details"] = str(exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
    )
