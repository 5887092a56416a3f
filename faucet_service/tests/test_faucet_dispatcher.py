from __future__ import annotations

import pytest
from web3 import Web3

from faucet_service.app.chains.client import Web3ChainClient, build_chain_clients
from faucet_service.app.config import ChainConfig, FaucetConfig
from faucet_service.app.services.faucet_service import FaucetDispatcher, format_ether

from fakes import FakeChainClient


ADDRESS = "0x" + "11" * 20


def _chain(key: str = "sepolia") -> ChainConfig:
    return ChainConfig(
        key=key,
        chain_id=11155111,
        name="Sepolia",
        symbol="ETH",
        explorer_url="https://sepolia.etherscan.io/",
        rpc_url="http://localhost:8545",
        faucet_amount_wei=Web3.to_wei("0.1", "ether"),
        min_balance_wei=Web3.to_wei("0.05", "ether"),
    )


def _dispatcher(client: FakeChainClient | None) -> FaucetDispatcher:
    clients = {"sepolia": client} if client is not None else {}
    return FaucetDispatcher({"sepolia": _chain()}, clients)


def test_unsupported_chain() -> None:
    result = _dispatcher(FakeChainClient()).drip(ADDRESS, "solana")

    assert result.success is False
    assert result.chain == "solana"
    assert result.error == "Unsupported chain: solana"


def test_invalid_address() -> None:
    client = FakeChainClient()

    result = _dispatcher(client).drip("not-an-address", "sepolia")

    assert result.error == "Invalid Ethereum address"
    assert client.sent == []


def test_chain_without_client() -> None:
    result = _dispatcher(None).drip(ADDRESS, "sepolia")

    assert result.success is False
    assert result.error == "RPC is not configured for chain: sepolia"


def test_sufficient_balance_never_transfers() -> None:
    client = FakeChainClient(balance=Web3.to_wei("1.5", "ether"))

    result = _dispatcher(client).drip(ADDRESS, "sepolia")

    assert result.success is False
    assert result.message == "Address already has sufficient balance"
    assert result.current_balance == "1.5"
    assert client.sent == []


def test_balance_equal_to_minimum_is_sufficient() -> None:
    client = FakeChainClient(balance=Web3.to_wei("0.05", "ether"))

    result = _dispatcher(client).drip(ADDRESS, "sepolia")

    assert result.message == "Address already has sufficient balance"
    assert client.sent == []


def test_low_balance_sends_faucet_amount() -> None:
    client = FakeChainClient(balance=0)

    result = _dispatcher(client).drip(ADDRESS, "sepolia")

    tx_hash = "0x" + "ab" * 32
    assert result.success is True
    assert result.tx_hash == tx_hash
    assert result.amount == "0.1"
    assert result.explorer_url == f"https://sepolia.etherscan.io/tx/{tx_hash}"
    assert client.sent == [(ADDRESS, Web3.to_wei("0.1", "ether"))]


def test_reverted_transaction() -> None:
    client = FakeChainClient(balance=0, receipt_status=0)

    result = _dispatcher(client).drip(ADDRESS, "sepolia")

    assert result.success is False
    assert result.error == "Transaction reverted"


def test_rpc_error_is_returned_not_raised() -> None:
    client = FakeChainClient(error=ConnectionError("rpc unavailable"))

    result = _dispatcher(client).drip(ADDRESS, "sepolia")

    assert result.success is False
    assert result.error == "rpc unavailable"


def test_supported_chains_follow_config_order() -> None:
    dispatcher = FaucetDispatcher({"b": _chain("b"), "a": _chain("a")}, {})

    assert dispatcher.supported_chains == ["b", "a"]


@pytest.mark.parametrize(
    ("wei", "expected"),
    [
        (0, "0.0"),
        (10**18, "1.0"),
        (10**17, "0.1"),
        (15 * 10**17, "1.5"),
        (1, "0.000000000000000001"),
    ],
)
def test_format_ether(wei: int, expected: str) -> None:
    assert format_ether(wei) == expected


def test_build_chain_clients_requires_private_key() -> None:
    config = FaucetConfig(chains={"sepolia": _chain()}, private_key=None)

    assert build_chain_clients(config) == {}


def test_build_chain_clients_skips_chains_without_rpc() -> None:
    no_rpc = _chain("mumbai")
    no_rpc.rpc_url = None
    config = FaucetConfig(
        chains={"sepolia": _chain(), "mumbai": no_rpc},
        private_key="11" * 32,
    )

    clients = build_chain_clients(config)

    assert list(clients) == ["sepolia"]
    client = clients["sepolia"]
    assert isinstance(client, Web3ChainClient)
    assert Web3.is_checksum_address(client.sender_address)
