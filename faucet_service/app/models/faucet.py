from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


MESSAGE_SUFFICIENT_BALANCE = "Address already has sufficient balance"
ERROR_INVALID_ADDRESS = "Invalid Ethereum address"
ERROR_TRANSACTION_REVERTED = "Transaction reverted"


class FaucetResult(BaseModel):
    """faucet 요청 한 건의 결과. 실패도 예외가 아니라 이 모델로 표현한다."""

    success: bool
    chain: str
    tx_hash: str | None = None
    amount: str | None = None  # ether 단위 10진수 문자열
    explorer_url: str | None = None
    message: str | None = None
    current_balance: str | None = None
    error: str | None = None


@dataclass(slots=True)
class TransferReceipt:
    tx_hash: str
    status: int
    block_number: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1
