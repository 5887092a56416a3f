from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo.errors import PyMongoError

from ...config import AppConfig
from ...exceptions import CodeGenerationError
from ...models.access_code import CODE_LENGTH, AccessCodeStatus, ValidationOutcome
from ...services.access_code_service import AccessCodeService, get_access_code_service
from ..dependencies import backend_failure, get_app_config, require_admin
from ..schemas.access_codes import (
    AccessCodeResponse,
    GenerateCodeRequest,
    GenerateCodeResponse,
    ListCodesResponse,
    RevokeCodeRequest,
    ValidateCodeRequest,
    ValidateCodeResponse,
)
from ..schemas.common import SuccessResponse


logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_ALL = "all"


@router.post(
    "/validate-code",
    response_model=ValidateCodeResponse,
    response_model_exclude_none=True,
    summary="접근 코드 검증",
    description=(
        "코드를 검증하고, 처음 사용하는 코드라면 userId 에게 귀속시킨다. "
        "검증 실패는 200 + valid=false 로 응답한다."
    ),
)
def validate_code(
    body: ValidateCodeRequest,
    service: AccessCodeService = Depends(get_access_code_service),
    config: AppConfig = Depends(get_app_config),
) -> ValidateCodeResponse:
    if len(body.code) != CODE_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"valid": False, "error": "Invalid code format"},
        )
    if not body.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"valid": False, "error": "userId is required"},
        )

    result = service.validate_code(body.code, body.user_id)
    if result.outcome is ValidationOutcome.BACKEND_ERROR:
        detail: dict[str, object] = {"valid": False, "error": "Failed to validate code"}
        if config.is_development:
            detail["details"] = result.detail
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )
    return ValidateCodeResponse.from_domain(result)


@router.post(
    "/generate-code",
    response_model=GenerateCodeResponse,
    dependencies=[Depends(require_admin)],
    summary="접근 코드 생성 (관리자)",
)
def generate_code(
    body: GenerateCodeRequest,
    service: AccessCodeService = Depends(get_access_code_service),
    config: AppConfig = Depends(get_app_config),
) -> GenerateCodeResponse:
    try:
        created = service.generate_code(
            max_uses=body.max_uses,
            expires_in_days=body.expires_in_days,
            note=body.note,
        )
    except (CodeGenerationError, PyMongoError) as exc:
        logger.exception("failed to generate access code")
        raise backend_failure("Failed to generate code", exc, config) from exc
    return GenerateCodeResponse.from_domain(created)


@router.get(
    "/list-codes",
    response_model=ListCodesResponse,
    dependencies=[Depends(require_admin)],
    summary="접근 코드 목록 조회 (관리자)",
    description="created_at 내림차순. status 를 생략하거나 all 이면 전체를 반환한다.",
)
def list_codes(
    code_status: str | None = Query(default=None, alias="status"),
    service: AccessCodeService = Depends(get_access_code_service),
    config: AppConfig = Depends(get_app_config),
) -> ListCodesResponse:
    status_filter: AccessCodeStatus | None = None
    if code_status and code_status != STATUS_ALL:
        try:
            status_filter = AccessCodeStatus(code_status)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": f"Invalid status: {code_status}"},
            ) from None

    try:
        codes = service.list_codes(status_filter)
    except PyMongoError as exc:
        logger.exception("failed to list access codes")
        raise backend_failure("Failed to list codes", exc, config) from exc
    return ListCodesResponse(codes=[AccessCodeResponse.from_domain(c) for c in codes])


@router.post(
    "/revoke-code",
    response_model=SuccessResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)],
    summary="접근 코드 폐기 (관리자)",
)
def revoke_code(
    body: RevokeCodeRequest,
    service: AccessCodeService = Depends(get_access_code_service),
    config: AppConfig = Depends(get_app_config),
) -> SuccessResponse:
    if not body.code_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "codeId is required"},
        )

    try:
        revoked = service.revoke_code(body.code_id)
    except PyMongoError as exc:
        logger.exception("failed to revoke access code", extra={"code_id": body.code_id})
        raise backend_failure("Failed to revoke code", exc, config) from exc
    if not revoked:
        raise HTTPException(status_code=404, detail="Code not found")
    return SuccessResponse()
