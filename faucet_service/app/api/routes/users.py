from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.errors import PyMongoError

from ...config import AppConfig
from ...services.users_service import UsersService, get_users_service
from ..dependencies import backend_failure, get_app_config, require_admin
from ..schemas.common import SuccessResponse
from ..schemas.users import (
    CheckAccessRequest,
    CheckAccessResponse,
    GetUserResponse,
    ListUsernamesResponse,
    RecordLoginRequest,
    StoreUsernameRequest,
    UpdateWalletRequest,
    UsernameResponse,
    UserResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter()


def _bad_request(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail={"error": message}
    )


@router.post(
    "/check-access",
    response_model=CheckAccessResponse,
    summary="유저 권한 확인",
    description="active 유저이고, walletAddress 를 넘겼다면 등록된 지갑과 같을 때만 isAuthorized=true.",
)
def check_access(
    body: CheckAccessRequest,
    service: UsersService = Depends(get_users_service),
    config: AppConfig = Depends(get_app_config),
) -> CheckAccessResponse:
    if not body.user_id:
        raise _bad_request("userId is required")

    try:
        authorized = service.check_access(body.user_id, body.wallet_address)
    except PyMongoError as exc:
        logger.exception("failed to check access", extra={"user_id": body.user_id})
        raise backend_failure("Failed to check authorization", exc, config) from exc
    return CheckAccessResponse(is_authorized=authorized)


@router.post(
    "/update-wallet",
    response_model=SuccessResponse,
    response_model_exclude_none=True,
    summary="유저 지갑 주소 등록/변경",
)
def update_wallet(
    body: UpdateWalletRequest,
    service: UsersService = Depends(get_users_service),
    config: AppConfig = Depends(get_app_config),
) -> SuccessResponse:
    if not body.user_id or not body.wallet_address:
        raise _bad_request("userId and walletAddress are required")

    try:
        service.update_wallet(body.user_id, body.wallet_address)
    except PyMongoError as exc:
        logger.exception("failed to update wallet", extra={"user_id": body.user_id})
        raise backend_failure("Failed to update wallet address", exc, config) from exc
    return SuccessResponse()


@router.post(
    "/record-login",
    response_model=SuccessResponse,
    response_model_exclude_none=True,
    summary="유저 로그인 기록",
)
def record_login(
    body: RecordLoginRequest,
    service: UsersService = Depends(get_users_service),
    config: AppConfig = Depends(get_app_config),
) -> SuccessResponse:
    if not body.user_id:
        raise _bad_request("userId is required")

    try:
        service.record_login(body.user_id)
    except PyMongoError as exc:
        logger.exception("failed to record login", extra={"user_id": body.user_id})
        raise backend_failure("Failed to record login", exc, config) from exc
    return SuccessResponse()


@router.get(
    "/user/{user_id}",
    response_model=GetUserResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)],
    summary="유저 조회 (관리자)",
)
def get_user(
    user_id: str,
    service: UsersService = Depends(get_users_service),
    config: AppConfig = Depends(get_app_config),
) -> GetUserResponse:
    try:
        user = service.get_user(user_id)
    except PyMongoError as exc:
        logger.exception("failed to fetch user", extra={"user_id": user_id})
        raise backend_failure("Failed to fetch user", exc, config) from exc
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return GetUserResponse(user=UserResponse.from_domain(user))


@router.post(
    "/store-username",
    response_model=SuccessResponse,
    summary="username 저장",
    description="이미 저장된 username 이어도 success=true 이며 message 로 구분한다.",
)
def store_username(
    body: StoreUsernameRequest,
    service: UsersService = Depends(get_users_service),
    config: AppConfig = Depends(get_app_config),
) -> SuccessResponse:
    if not body.username:
        raise _bad_request("username is required")

    try:
        created = service.store_username(body.username)
    except PyMongoError as exc:
        logger.exception("failed to store username")
        raise backend_failure("Failed to store username", exc, config) from exc
    message = "Username stored successfully" if created else "Username already exists"
    return SuccessResponse(message=message)


@router.get(
    "/list-usernames",
    response_model=ListUsernamesResponse,
    dependencies=[Depends(require_admin)],
    summary="username 목록 조회 (관리자)",
)
def list_usernames(
    service: UsersService = Depends(get_users_service),
    config: AppConfig = Depends(get_app_config),
) -> ListUsernamesResponse:
    try:
        usernames = service.list_usernames()
    except PyMongoError as exc:
        logger.exception("failed to list usernames")
        raise backend_failure("Failed to list usernames", exc, config) from exc
    return ListUsernamesResponse(
        usernames=[UsernameResponse.from_domain(u) for u in usernames]
    )
