"""EVM 체인 클라이언트.

체인마다 Web3 인스턴스와 hot wallet 계정을 하나씩 가진다.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from ..config import ChainConfig, FaucetConfig
from ..models.faucet import TransferReceipt


logger = logging.getLogger(__name__)


class ChainClientInterface(Protocol):
    def get_balance(self, address: str) -> int:  # pragma: no cover - Protocol
        """주소의 잔액(wei)."""
        ...

    def send_value(
        self, to: str, value_wei: int
    ) -> TransferReceipt:  # pragma: no cover - Protocol
        """hot wallet 에서 value_wei 를 보내고 receipt 를 기다린다."""
        ...


class Web3ChainClient(ChainClientInterface):
    """web3.py 기반 체인 클라이언트.

    같은 체인에 대한 nonce 조회~전송 구간은 lock 으로 직렬화한다.
    동시에 들어온 요청이 같은 nonce 를 쓰지 않게 하기 위함이다.
    """

    def __init__(
        self,
        chain: ChainConfig,
        private_key: str,
        tx_timeout_seconds: float = 120.0,
        web3: Web3 | None = None,
    ) -> None:
        self._chain = chain
        self._w3 = web3 or Web3(Web3.HTTPProvider(chain.rpc_url))
        # Mumbai 등 POA 체인의 extraData 를 허용한다.
        self._w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self._account = self._w3.eth.account.from_key(private_key)
        self._tx_timeout_seconds = tx_timeout_seconds
        self._send_lock = threading.Lock()

    @property
    def sender_address(self) -> str:
        return self._account.address

    def get_balance(self, address: str) -> int:
        return int(self._w3.eth.get_balance(Web3.to_checksum_address(address)))

    def send_value(self, to: str, value_wei: int) -> TransferReceipt:
        recipient = Web3.to_checksum_address(to)

        with self._send_lock:
            tx = {
                "from": self._account.address,
                "to": recipient,
                "value": value_wei,
                "chainId": self._chain.chain_id,
                "nonce": self._w3.eth.get_transaction_count(
                    self._account.address, "pending"
                ),
                "gasPrice": self._w3.eth.gas_price,
            }
            tx["gas"] = self._w3.eth.estimate_gas(tx)
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)

        receipt = self._w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._tx_timeout_seconds
        )
        return TransferReceipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            status=int(receipt["status"]),
            block_number=receipt.get("blockNumber"),
        )


def build_chain_clients(config: FaucetConfig) -> dict[str, ChainClientInterface]:
    """RPC URL 이 설정된 체인마다 Web3ChainClient 를 만든다.

    private key 가 없으면 빈 dict 를 반환한다 (faucet 전송 불가).
    """

    if not config.private_key:
        logger.warning("faucet private key is not configured; faucet transfers are disabled")
        return {}

    clients: dict[str, ChainClientInterface] = {}
    for key, chain in config.chains.items():
        if not chain.rpc_url:
            logger.warning("RPC URL is not configured", extra={"chain": key})
            continue
        client = Web3ChainClient(
            chain,
            private_key=config.private_key,
            tx_timeout_seconds=config.tx_timeout_seconds,
        )
        logger.info(
            "chain client ready (sender=%s)", client.sender_address, extra={"chain": key}
        )
        clients[key] = client
    return clients
