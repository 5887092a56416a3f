from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ConnectionFailure
from web3 import Web3

from common.mongo.config import MongoConfig
from faucet_service.app.config import (
    AppConfig,
    ChainConfig,
    FaucetConfig,
    RateLimitConfig,
)
from faucet_service.app.main import create_app
from faucet_service.app.models.access_code import AccessCode, AccessCodeStatus
from faucet_service.app.services.access_code_service import (
    AccessCodeService,
    get_access_code_service,
)
from faucet_service.app.services.faucet_service import FaucetDispatcher
from faucet_service.app.services.users_service import UsersService, get_users_service

from fakes import (
    FakeAccessCodeRepository,
    FakeChainClient,
    FakeUsernameRepository,
    FakeUserRepository,
)


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
ADMIN_KEY = "admin-secret"
FAUCET_ACCESS_CODE = "faucet-secret"
ADDRESS = "0x" + "22" * 20
ADMIN_HEADERS = {"x-admin-key": ADMIN_KEY}


def _config(env: str = "production", max_requests: int = 5) -> AppConfig:
    chain = ChainConfig(
        key="sepolia",
        chain_id=11155111,
        name="Sepolia",
        symbol="ETH",
        explorer_url="https://sepolia.etherscan.io",
        rpc_url="http://localhost:8545",
        faucet_amount_wei=Web3.to_wei("0.1", "ether"),
        min_balance_wei=Web3.to_wei("0.05", "ether"),
    )
    return AppConfig(
        mongo=MongoConfig(uri="mongodb://localhost:27017/faucet"),
        faucet=FaucetConfig(
            chains={"sepolia": chain},
            private_key="11" * 32,
            access_code=FAUCET_ACCESS_CODE,
            rate_limit=RateLimitConfig(max_requests=max_requests, window_seconds=60),
        ),
        admin_secret_key=ADMIN_KEY,
        env=env,
    )


@dataclass
class ApiFixture:
    client: TestClient
    codes: FakeAccessCodeRepository
    users: FakeUserRepository
    usernames: FakeUsernameRepository
    chain_client: FakeChainClient


def _build_fixture(
    env: str = "production",
    max_requests: int = 5,
    with_dispatcher: bool = True,
) -> ApiFixture:
    config = _config(env=env, max_requests=max_requests)
    chain_client = FakeChainClient(balance=0)
    dispatcher = (
        FaucetDispatcher(config.faucet.chains, {"sepolia": chain_client})
        if with_dispatcher
        else None
    )
    app = create_app(config=config, faucet_dispatcher=dispatcher)

    codes = FakeAccessCodeRepository()
    users = FakeUserRepository()
    usernames = FakeUsernameRepository()
    app.dependency_overrides[get_access_code_service] = lambda: AccessCodeService(
        codes, clock=lambda: NOW
    )
    app.dependency_overrides[get_users_service] = lambda: UsersService(
        users, usernames, clock=lambda: NOW
    )

    return ApiFixture(
        client=TestClient(app, raise_server_exceptions=False),
        codes=codes,
        users=users,
        usernames=usernames,
        chain_client=chain_client,
    )


def _add_code(fixture: ApiFixture, code: str = "AB234C", **kwargs: object) -> AccessCode:
    return fixture.codes.add(
        AccessCode(
            code=code,
            created_at=NOW - timedelta(days=1),
            updated_at=NOW - timedelta(days=1),
            **kwargs,
        )
    )


def test_health() -> None:
    fixture = _build_fixture()

    response = fixture.client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_validate_code_flow() -> None:
    fixture = _build_fixture()
    _add_code(fixture, max_uses=1)

    first = fixture.client.post("/api/validate-code", json={"code": "ab234c", "userId": "u1"})
    again = fixture.client.post("/api/validate-code", json={"code": "AB234C", "userId": "u1"})
    other = fixture.client.post("/api/validate-code", json={"code": "AB234C", "userId": "u2"})

    assert first.status_code == 200
    assert first.json() == {"valid": True}
    assert again.json() == {"valid": True, "message": "Code already used by this user"}
    assert other.status_code == 200
    assert other.json() == {"valid": False, "error": "Code usage limit reached"}


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({"code": "ABC", "userId": "u1"}, "Invalid code format"),
        ({"userId": "u1"}, "Invalid code format"),
        ({"code": "AB234C"}, "userId is required"),
        ({"code": "AB234C", "userId": ""}, "userId is required"),
    ],
)
def test_validate_code_rejects_malformed_input(body: dict, error: str) -> None:
    fixture = _build_fixture()

    response = fixture.client.post("/api/validate-code", json=body)

    assert response.status_code == 400
    assert response.json() == {"valid": False, "error": error}


@pytest.mark.parametrize(
    ("body", "field"),
    [
        ({"code": "AB234C", "userId": "u1", "admin": True}, "admin"),
        ({"code": "AB234C", "userId": 42}, "userId"),
    ],
)
def test_validate_code_schema_errors_keep_valid_flag(body: dict, field: str) -> None:
    fixture = _build_fixture()

    response = fixture.client.post("/api/validate-code", json=body)

    assert response.status_code == 400
    payload = response.json()
    assert payload["valid"] is False
    assert payload["error"].startswith(f"{field}:")


def test_schema_errors_on_other_routes_have_no_valid_flag() -> None:
    fixture = _build_fixture()

    response = fixture.client.post("/api/store-username", json={"username": "neo", "x": 1})

    assert response.status_code == 400
    assert "valid" not in response.json()


def test_validate_code_backend_error_hides_details_in_production() -> None:
    fixture = _build_fixture()
    fixture.codes.error = ConnectionFailure("mongo down")

    response = fixture.client.post("/api/validate-code", json={"code": "AB234C", "userId": "u1"})

    assert response.status_code == 500
    assert response.json() == {"valid": False, "error": "Failed to validate code"}


def test_validate_code_backend_error_details_in_development() -> None:
    fixture = _build_fixture(env="development")
    fixture.codes.error = ConnectionFailure("mongo down")

    response = fixture.client.post("/api/validate-code", json={"code": "AB234C", "userId": "u1"})

    assert response.status_code == 500
    assert response.json() == {
        "valid": False,
        "error": "Failed to validate code",
        "details": "mongo down",
    }


@pytest.mark.parametrize(
    "request_kwargs",
    [
        {"headers": {"x-admin-key": "wrong"}},
        {"json": {"adminKey": "wrong"}},
        {},
    ],
)
def test_admin_endpoints_require_admin_key(request_kwargs: dict) -> None:
    fixture = _build_fixture()

    response = fixture.client.post("/api/generate-code", **request_kwargs)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized. Admin privileges required."}


def test_admin_key_accepted_from_header_body_or_query() -> None:
    fixture = _build_fixture()

    by_header = fixture.client.post("/api/generate-code", json={}, headers=ADMIN_HEADERS)
    by_body = fixture.client.post("/api/generate-code", json={"adminKey": ADMIN_KEY})
    by_query = fixture.client.get("/api/list-codes", params={"adminKey": ADMIN_KEY})

    assert by_header.status_code == 200
    assert by_body.status_code == 200
    assert by_query.status_code == 200
    assert len(by_query.json()["codes"]) == 2


def test_generate_code_returns_new_code() -> None:
    fixture = _build_fixture()

    response = fixture.client.post(
        "/api/generate-code",
        json={"maxUses": 3, "expiresInDays": 2, "note": "beta"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["code"]) == 6
    assert body["maxUses"] == 3
    assert body["expiresAt"] == (NOW + timedelta(days=2)).isoformat()
    stored = fixture.codes.get(body["id"])
    assert stored.note == "beta"


@pytest.mark.parametrize(
    ("body", "field"),
    [
        ({"maxUses": 0}, "maxUses"),
        ({"maxUses": 2**31}, "maxUses"),
        ({"maxUses": 2**63}, "maxUses"),
        ({"expiresInDays": 0}, "expiresInDays"),
        ({"expiresInDays": 36501}, "expiresInDays"),
        ({"expiresInDays": 5_000_000}, "expiresInDays"),
    ],
)
def test_generate_code_rejects_out_of_range_limits(body: dict, field: str) -> None:
    fixture = _build_fixture()

    response = fixture.client.post("/api/generate-code", json=body, headers=ADMIN_HEADERS)

    assert response.status_code == 400
    assert response.json()["error"].startswith(f"{field}:")
    assert fixture.codes.store.codes == {}


def test_generate_code_accepts_upper_limits() -> None:
    fixture = _build_fixture()

    response = fixture.client.post(
        "/api/generate-code",
        json={"maxUses": 2**31 - 1, "expiresInDays": 36500},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["maxUses"] == 2**31 - 1


def test_list_codes_filters_by_status() -> None:
    fixture = _build_fixture()
    _add_code(fixture, code="ACT234")
    _add_code(fixture, code="RVK234", status=AccessCodeStatus.REVOKED)

    active = fixture.client.get("/api/list-codes", params={"status": "active"}, headers=ADMIN_HEADERS)
    everything = fixture.client.get("/api/list-codes", params={"status": "all"}, headers=ADMIN_HEADERS)
    invalid = fixture.client.get("/api/list-codes", params={"status": "bogus"}, headers=ADMIN_HEADERS)

    assert [c["code"] for c in active.json()["codes"]] == ["ACT234"]
    assert active.json()["codes"][0]["status"] == "active"
    assert active.json()["codes"][0]["usedCount"] == 0
    assert len(everything.json()["codes"]) == 2
    assert invalid.status_code == 400


def test_revoke_code() -> None:
    fixture = _build_fixture()
    stored = _add_code(fixture)

    response = fixture.client.post(
        "/api/revoke-code", json={"codeId": stored.id}, headers=ADMIN_HEADERS
    )
    missing = fixture.client.post(
        "/api/revoke-code", json={"codeId": "ffffffffffffffffffffffff"}, headers=ADMIN_HEADERS
    )
    empty = fixture.client.post("/api/revoke-code", json={}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert fixture.codes.get(stored.id).status is AccessCodeStatus.REVOKED
    assert missing.status_code == 404
    assert missing.json() == {"error": "Code not found"}
    assert empty.status_code == 400
    assert empty.json() == {"error": "codeId is required"}


def test_check_access_after_redemption_and_wallet_update() -> None:
    fixture = _build_fixture()
    _add_code(fixture)

    before = fixture.client.post("/api/check-access", json={"userId": "u1"})
    fixture.client.post("/api/validate-code", json={"code": "AB234C", "userId": "u1"})
    # 코드 사용은 access-code 레포의 users 에 기록되므로 유저 레포에 직접 반영한다.
    fixture.users.users["u1"] = fixture.codes.store.users["u1"]
    wallet = fixture.client.post(
        "/api/update-wallet", json={"userId": "u1", "walletAddress": ADDRESS}
    )
    after = fixture.client.post(
        "/api/check-access", json={"userId": "u1", "walletAddress": ADDRESS}
    )
    mismatch = fixture.client.post(
        "/api/check-access", json={"userId": "u1", "walletAddress": "0xother"}
    )

    assert before.json() == {"isAuthorized": False}
    assert wallet.json() == {"success": True}
    assert after.json() == {"isAuthorized": True}
    assert mismatch.json() == {"isAuthorized": False}


def test_user_endpoints_validate_input() -> None:
    fixture = _build_fixture()

    check = fixture.client.post("/api/check-access", json={})
    wallet = fixture.client.post("/api/update-wallet", json={"userId": "u1"})
    login = fixture.client.post("/api/record-login", json={})
    username = fixture.client.post("/api/store-username", json={})

    assert check.status_code == 400
    assert check.json() == {"error": "userId is required"}
    assert wallet.json() == {"error": "userId and walletAddress are required"}
    assert login.json() == {"error": "userId is required"}
    assert username.json() == {"error": "username is required"}


def test_record_login_and_get_user() -> None:
    fixture = _build_fixture()

    fixture.client.post("/api/record-login", json={"userId": "u1"})
    response = fixture.client.get("/api/user/u1", headers=ADMIN_HEADERS)
    missing = fixture.client.get("/api/user/nobody", headers=ADMIN_HEADERS)
    unauthorized = fixture.client.get("/api/user/u1")

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["id"] == "u1"
    assert user["loginCount"] == 1
    assert user["lastLogin"] == NOW.isoformat()
    assert missing.status_code == 404
    assert missing.json() == {"error": "User not found"}
    assert unauthorized.status_code == 401


def test_user_backend_failure_is_500() -> None:
    fixture = _build_fixture()
    fixture.users.error = ConnectionFailure("mongo down")

    response = fixture.client.post("/api/check-access", json={"userId": "u1"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to check authorization"}


def test_store_and_list_usernames() -> None:
    fixture = _build_fixture()

    first = fixture.client.post("/api/store-username", json={"username": "alice"})
    second = fixture.client.post("/api/store-username", json={"username": "alice"})
    listed = fixture.client.get("/api/list-usernames", headers=ADMIN_HEADERS)

    assert first.json() == {"success": True, "message": "Username stored successfully"}
    assert second.json() == {"success": True, "message": "Username already exists"}
    assert [u["username"] for u in listed.json()["usernames"]] == ["alice"]


def test_faucet_chains() -> None:
    fixture = _build_fixture()

    response = fixture.client.get("/api/faucet/chains")

    assert response.json() == {"success": True, "chains": ["sepolia"]}


def test_faucet_sends_to_low_balance_address() -> None:
    fixture = _build_fixture()

    response = fixture.client.post("/api/faucet", json={"address": ADDRESS, "chain": "sepolia"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["chain"] == "sepolia"
    assert body["amount"] == "0.1"
    assert body["explorerUrl"] == f"https://sepolia.etherscan.io/tx/{body['txHash']}"


def test_faucet_declines_when_balance_is_sufficient() -> None:
    fixture = _build_fixture()
    fixture.chain_client.balance = Web3.to_wei("2", "ether")

    response = fixture.client.post("/api/faucet", json={"address": ADDRESS, "chain": "sepolia"})

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "chain": "sepolia",
        "message": "Address already has sufficient balance",
        "currentBalance": "2.0",
    }
    assert fixture.chain_client.sent == []


def test_faucet_requires_address_and_chain() -> None:
    fixture = _build_fixture()

    no_address = fixture.client.post("/api/faucet", json={"chain": "sepolia"})
    no_chain = fixture.client.post("/api/faucet", json={"address": ADDRESS})

    assert no_address.status_code == 400
    assert no_address.json() == {"success": False, "error": "Address is required"}
    assert no_chain.status_code == 400
    assert no_chain.json() == {
        "success": False,
        "error": "Chain is required",
        "supportedChains": ["sepolia"],
    }


def test_faucet_is_rate_limited_per_client() -> None:
    fixture = _build_fixture(max_requests=2)
    body = {"address": ADDRESS, "chain": "sepolia"}

    statuses = [fixture.client.post("/api/faucet", json=body).status_code for _ in range(3)]
    limited = fixture.client.post("/api/faucet", json=body)

    assert statuses == [200, 200, 429]
    assert limited.json() == {
        "success": False,
        "error": "Too many requests, please try again later.",
    }


def test_faucet_access_code_endpoint() -> None:
    fixture = _build_fixture()

    wrong = fixture.client.post(
        "/api/faucet/access-code",
        json={"address": ADDRESS, "chain": "sepolia", "accessCode": "nope"},
    )
    ok = fixture.client.post(
        "/api/faucet/access-code",
        json={"address": ADDRESS, "chain": "sepolia", "accessCode": FAUCET_ACCESS_CODE},
    )

    assert wrong.status_code == 401
    assert wrong.json() == {"success": False, "error": "Invalid access code"}
    assert ok.status_code == 200
    assert ok.json()["success"] is True


def test_faucet_without_dispatcher_is_unavailable() -> None:
    fixture = _build_fixture(with_dispatcher=False)

    response = fixture.client.post("/api/faucet", json={"address": ADDRESS, "chain": "sepolia"})
    chains = fixture.client.get("/api/faucet/chains")

    assert response.status_code == 503
    assert response.json() == {"success": False, "error": "Faucet is not configured"}
    assert chains.status_code == 200


def test_unexpected_error_is_generic_500() -> None:
    fixture = _build_fixture()

    def broken_service() -> AccessCodeService:
        raise ValueError("boom")

    fixture.client.app.dependency_overrides[get_access_code_service] = broken_service  # type: ignore[attr-defined]

    response = fixture.client.post("/api/validate-code", json={"code": "AB234C", "userId": "u1"})

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong!"}


def test_request_id_header_is_echoed() -> None:
    fixture = _build_fixture()

    response = fixture.client.get("/api/faucet/chains", headers={"X-Request-Id": "req-1"})

    assert response.headers["X-Request-Id"] == "req-1"
