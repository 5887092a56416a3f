from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, HTTPException, status

from ...config import AppConfig
from ...services.faucet_service import FaucetDispatcher, get_faucet_dispatcher
from ..dependencies import enforce_faucet_rate_limit, get_app_config
from ..schemas.faucet import (
    AccessCodeFaucetRequest,
    ChainsResponse,
    FaucetRequest,
    FaucetResponse,
)


router = APIRouter()


def _drip(
    body: FaucetRequest, dispatcher: FaucetDispatcher
) -> FaucetResponse:
    if not body.address:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"success": False, "error": "Address is required"},
        )
    if not body.chain:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "success": False,
                "error": "Chain is required",
                "supportedChains": dispatcher.supported_chains,
            },
        )
    return FaucetResponse.from_domain(dispatcher.drip(body.address, body.chain))


@router.get(
    "/chains",
    response_model=ChainsResponse,
    summary="지원 체인 목록",
)
def list_chains(config: AppConfig = Depends(get_app_config)) -> ChainsResponse:
    return ChainsResponse(chains=config.faucet.chain_keys)


@router.post(
    "",
    response_model=FaucetResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_faucet_rate_limit)],
    summary="테스트넷 토큰 요청",
    description="잔액이 체인별 최소 잔액보다 적을 때만 전송한다. IP 당 요청 수 제한이 있다.",
)
def request_faucet(
    body: FaucetRequest,
    dispatcher: FaucetDispatcher = Depends(get_faucet_dispatcher),
) -> FaucetResponse:
    return _drip(body, dispatcher)


@router.post(
    "/access-code",
    response_model=FaucetResponse,
    response_model_exclude_none=True,
    summary="접근 코드가 필요한 테스트넷 토큰 요청",
)
def request_faucet_with_access_code(
    body: AccessCodeFaucetRequest,
    dispatcher: FaucetDispatcher = Depends(get_faucet_dispatcher),
    config: AppConfig = Depends(get_app_config),
) -> FaucetResponse:
    expected = config.faucet.access_code
    if not expected or not hmac.compare_digest(
        body.access_code.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"success": False, "error": "Invalid access code"},
        )
    return _drip(body, dispatcher)
