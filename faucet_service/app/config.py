from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from web3 import Web3

from common.mongo.config import MongoConfig, load_mongo_config

from .exceptions import ConfigError


DEFAULT_CONFIG_FILE_NAME = "config.yaml"

FAUCET_CONFIG_PATH = "FAUCET_CONFIG_PATH"
ADMIN_SECRET_KEY = "ADMIN_SECRET_KEY"
FAUCET_ACCESS_CODE = "FAUCET_ACCESS_CODE"
FAUCET_PRIVATE_KEY = "FAUCET_PRIVATE_KEY"
LEGACY_PRIVATE_KEY = "PRIVATE_KEY"
FAUCET_TX_TIMEOUT_SECONDS = "FAUCET_TX_TIMEOUT_SECONDS"
FAUCET_RATE_LIMIT_MAX_REQUESTS = "FAUCET_RATE_LIMIT_MAX_REQUESTS"
FAUCET_RATE_LIMIT_WINDOW_SECONDS = "FAUCET_RATE_LIMIT_WINDOW_SECONDS"
APP_ENV = "APP_ENV"
CORS_ALLOW_ORIGINS = "CORS_ALLOW_ORIGINS"


@dataclass(slots=True)
class ChainConfig:
    """faucet 이 지원하는 EVM 체인 하나의 설정.

    금액은 모두 wei 정수로 보관한다.
    """

    key: str
    chain_id: int
    name: str
    symbol: str
    explorer_url: str
    rpc_url: str | None
    faucet_amount_wei: int
    min_balance_wei: int

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


@dataclass(slots=True)
class RateLimitConfig:
    max_requests: int = 5
    window_seconds: float = 60.0


@dataclass(slots=True)
class FaucetConfig:
    chains: dict[str, ChainConfig]
    private_key: str | None = None
    access_code: str | None = None
    tx_timeout_seconds: float = 120.0
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    @property
    def chain_keys(self) -> list[str]:
        return list(self.chains)


@dataclass(slots=True)
class AppConfig:
    """faucet-service 전체 설정 루트.

    create_app 에서 한 번 만들어 app.state 에 두고, 핸들러는 의존성 주입으로만 접근한다.
    """

    mongo: MongoConfig
    faucet: FaucetConfig
    admin_secret_key: str | None = None
    env: str = "production"
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def is_development(self) -> bool:
        return self.env == "development"


def _find_config_path() -> Path:
    """FAUCET_CONFIG_PATH 가 있으면 그 경로를, 없으면 현재 작업 디렉토리부터 상위로 올라가며 config.yaml 을 찾는다."""

    override = os.getenv(FAUCET_CONFIG_PATH, "").strip()
    if override:
        path = Path(override)
        if not path.is_file():
            raise ConfigError(f"{FAUCET_CONFIG_PATH} points to a missing file: {override}")
        return path

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

    raise ConfigError(
        f"{DEFAULT_CONFIG_FILE_NAME} not found. Place config.yaml in project root.",
    )


def _parse_ether_amount(raw: Any, *, chain_key: str, field_name: str) -> int:
    try:
        value = Web3.to_wei(str(raw), "ether")
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ConfigError(
            f"invalid faucet.chains.{chain_key}.{field_name}: {raw!r}",
        ) from exc
    if value < 0:
        raise ConfigError(f"faucet.chains.{chain_key}.{field_name} must be >= 0")
    return int(value)


def parse_chain_config(key: str, item: dict[str, Any]) -> ChainConfig:
    """config.yaml 의 체인 항목 하나를 ChainConfig 로 변환한다."""

    try:
        chain_id = int(item["chain_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(
            f"faucet.chains.{key}.chain_id is required and must be an integer",
        ) from exc

    explorer_url = str(item.get("explorer_url") or "").strip()
    if not explorer_url:
        raise ConfigError(f"faucet.chains.{key}.explorer_url is required")

    rpc_url = str(item.get("rpc_url") or "").strip() or None
    rpc_url_env = str(item.get("rpc_url_env") or "").strip()
    if rpc_url is None and rpc_url_env:
        rpc_url = os.getenv(rpc_url_env, "").strip() or None

    return ChainConfig(
        key=key,
        chain_id=chain_id,
        name=str(item.get("name") or key),
        symbol=str(item.get("symbol") or "ETH"),
        explorer_url=explorer_url,
        rpc_url=rpc_url,
        faucet_amount_wei=_parse_ether_amount(
            item.get("faucet_amount", "0.1"), chain_key=key, field_name="faucet_amount"
        ),
        min_balance_wei=_parse_ether_amount(
            item.get("min_balance", "0.05"), chain_key=key, field_name="min_balance"
        ),
    )


def load_chain_configs(path: Path | None = None) -> dict[str, ChainConfig]:
    path = path or _find_config_path()
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    faucet = data.get("faucet") or {}
    chains_raw = faucet.get("chains") or {}
    if not isinstance(chains_raw, dict):
        raise ConfigError(f"faucet.chains in {path} must be a mapping")

    chains: dict[str, ChainConfig] = {}
    for key, item in chains_raw.items():
        if not isinstance(item, dict):
            continue
        chains[str(key)] = parse_chain_config(str(key), item)
    return chains


def _read_positive_number(name: str, default: float, *, as_int: bool) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw) if as_int else float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number if set, got: {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got: {value}")
    return value


def load_private_key() -> str | None:
    raw = (os.getenv(FAUCET_PRIVATE_KEY) or os.getenv(LEGACY_PRIVATE_KEY) or "").strip()
    if not raw:
        return None
    return raw.removeprefix("0x")


def load_faucet_config() -> FaucetConfig:
    admin_secret = os.getenv(ADMIN_SECRET_KEY) or None
    return FaucetConfig(
        chains=load_chain_configs(),
        private_key=load_private_key(),
        access_code=os.getenv(FAUCET_ACCESS_CODE) or admin_secret,
        tx_timeout_seconds=_read_positive_number(
            FAUCET_TX_TIMEOUT_SECONDS, 120.0, as_int=False
        ),
        rate_limit=RateLimitConfig(
            max_requests=int(
                _read_positive_number(FAUCET_RATE_LIMIT_MAX_REQUESTS, 5, as_int=True)
            ),
            window_seconds=_read_positive_number(
                FAUCET_RATE_LIMIT_WINDOW_SECONDS, 60.0, as_int=False
            ),
        ),
    )


def load_cors_origins() -> list[str]:
    raw = os.getenv(CORS_ALLOW_ORIGINS, "").strip()
    if not raw:
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_config() -> AppConfig:
    """faucet-service 설정을 로드하여 AppConfig 로 반환한다."""

    return AppConfig(
        mongo=load_mongo_config(),
        faucet=load_faucet_config(),
        admin_secret_key=os.getenv(ADMIN_SECRET_KEY) or None,
        env=(os.getenv(APP_ENV) or "production").strip().lower(),
        cors_allow_origins=load_cors_origins(),
    )
