"""faucet 디스패처.

요청 주소의 잔액이 체인별 최소 잔액보다 적을 때만 고정 금액을 전송한다.
모든 외부 호출 실패는 FaucetResult(success=False) 로 돌려주며 예외를 밖으로 내보내지 않는다.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping

from fastapi import HTTPException, Request, status
from web3 import Web3

from ..config import ChainConfig
from ..chains.client import ChainClientInterface
from ..models.faucet import (
    ERROR_INVALID_ADDRESS,
    ERROR_TRANSACTION_REVERTED,
    MESSAGE_SUFFICIENT_BALANCE,
    FaucetResult,
)


logger = logging.getLogger(__name__)


def format_ether(value_wei: int) -> str:
    """wei 를 ether 10진수 문자열로 바꾼다. 정수여도 소수점 한 자리를 남긴다 (1 -> "1.0")."""

    # from_wei 는 0 에 대해 int 를 돌려준다.
    text = format(Decimal(Web3.from_wei(value_wei, "ether")).normalize(), "f")
    return text if "." in text else f"{text}.0"


class FaucetDispatcher:
    """체인 설정과 체인 클라이언트를 묶어 faucet 요청을 처리한다."""

    def __init__(
        self,
        chains: Mapping[str, ChainConfig],
        clients: Mapping[str, ChainClientInterface],
    ) -> None:
        self._chains = dict(chains)
        self._clients = dict(clients)

    @property
    def supported_chains(self) -> list[str]:
        return list(self._chains)

    def drip(self, address: str, chain: str) -> FaucetResult:
        chain_config = self._chains.get(chain)
        if chain_config is None:
            return FaucetResult(
                success=False, chain=chain, error=f"Unsupported chain: {chain}"
            )

        if not Web3.is_address(address):
            return FaucetResult(success=False, chain=chain, error=ERROR_INVALID_ADDRESS)

        client = self._clients.get(chain)
        if client is None:
            return FaucetResult(
                success=False,
                chain=chain,
                error=f"RPC is not configured for chain: {chain}",
            )

        try:
            return self._drip(client, chain_config, address)
        except Exception as exc:  # noqa: BLE001 - RPC/서명/전송 실패는 모두 실패 응답으로 변환
            logger.warning(
                "faucet drip failed: %s", exc, extra={"chain": chain}, exc_info=True
            )
            return FaucetResult(success=False, chain=chain, error=str(exc))

    def _drip(
        self,
        client: ChainClientInterface,
        chain_config: ChainConfig,
        address: str,
    ) -> FaucetResult:
        chain = chain_config.key
        balance = client.get_balance(address)

        if balance >= chain_config.min_balance_wei:
            return FaucetResult(
                success=False,
                chain=chain,
                message=MESSAGE_SUFFICIENT_BALANCE,
                current_balance=format_ether(balance),
            )

        receipt = client.send_value(address, chain_config.faucet_amount_wei)
        if not receipt.succeeded:
            logger.warning(
                "faucet transaction reverted",
                extra={"chain": chain, "tx_hash": receipt.tx_hash},
            )
            return FaucetResult(
                success=False, chain=chain, error=ERROR_TRANSACTION_REVERTED
            )

        logger.info("faucet drip sent", extra={"chain": chain, "tx_hash": receipt.tx_hash})
        return FaucetResult(
            success=True,
            chain=chain,
            tx_hash=receipt.tx_hash,
            amount=format_ether(chain_config.faucet_amount_wei),
            explorer_url=chain_config.explorer_tx_url(receipt.tx_hash),
        )


def get_faucet_dispatcher(request: Request) -> FaucetDispatcher:
    """FastAPI DI용 FaucetDispatcher 팩토리. lifespan 에서 만든 인스턴스를 쓴다."""

    dispatcher = getattr(request.app.state, "faucet_dispatcher", None)
    if dispatcher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"success": False, "error": "Faucet is not configured"},
        )
    return dispatcher
