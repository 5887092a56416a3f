"""예외 -> JSON 응답 변환.

모든 오류 응답은 최상위에 error 필드를 둔다 ({"detail": ...} 로 감싸지 않는다).
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)

ERROR_UNEXPECTED = "Something went wrong!"

# loc 의 첫 요소가 이 값이면 필드 경로에서 뺀다.
_LOCATION_PREFIXES = {"body", "query", "path", "header"}

# 이 라우트들은 실패 응답에도 valid=false 를 함께 내려준다.
_VALID_FLAG_ROUTES = {"validate_code"}


def describe_validation_errors(errors: Sequence[Any]) -> str:
    """pydantic 검증 오류 목록 중 첫 번째를 사람이 읽을 수 있는 한 줄로 만든다."""

    if not errors:
        return "Invalid request"

    first = errors[0]
    loc = [str(part) for part in first.get("loc", ())]
    if loc and loc[0] in _LOCATION_PREFIXES and len(loc) > 1:
        loc = loc[1:]
    field = ".".join(loc) or "request"

    if first.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        content: dict[str, object] = {"error": describe_validation_errors(exc.errors())}
        route = request.scope.get("route")
        if getattr(route, "name", None) in _VALID_FLAG_ROUTES:
            content = {"valid": False, **content}
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "unhandled error (method=%s, path=%s)", request.method, request.url.path
        )
        content: dict[str, str] = {"error": ERROR_UNEXPECTED}
        config = getattr(request.app.state, "config", None)
        if config is not None and config.is_development:
            content["details"] = str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content
        )
