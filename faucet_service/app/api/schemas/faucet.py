from __future__ import annotations

from pydantic import Field

from ...models.faucet import FaucetResult
from .common import RequestModel, ResponseModel


class FaucetRequest(RequestModel):
    address: str = ""
    chain: str = ""


class AccessCodeFaucetRequest(FaucetRequest):
    access_code: str = Field(default="", alias="accessCode")


class FaucetResponse(ResponseModel):
    success: bool
    chain: str
    tx_hash: str | None = Field(default=None, alias="txHash")
    amount: str | None = None
    explorer_url: str | None = Field(default=None, alias="explorerUrl")
    message: str | None = None
    current_balance: str | None = Field(default=None, alias="currentBalance")
    error: str | None = None

    @classmethod
    def from_domain(cls, result: FaucetResult) -> "FaucetResponse":
        return cls(
            success=result.success,
            chain=result.chain,
            tx_hash=result.tx_hash,
            amount=result.amount,
            explorer_url=result.explorer_url,
            message=result.message,
            current_balance=result.current_balance,
            error=result.error,
        )


class ChainsResponse(ResponseModel):
    success: bool = True
    chains: list[str]
