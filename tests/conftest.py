# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("JWT_SECRET", "test-secret-key-for-ethos-gate")
os.environ.pop("REDIS_URL", None)

from ethos_gate.api.v1.dependencies import get_access_service_dep
from ethos_gate.main import app as fastapi_app
from ethos_gate.services.access import AccessService
from ethos_gate.services.cache import TTLCache
from ethos_gate.services.replay import ReplayProtectionService
from ethos_gate.services.reputation import ReputationClient, ReputationSnapshot
from ethos_gate.services.signing import SignatureVerifier, build_challenge_message
from ethos_gate.services.tokens import TokenService

TEST_SECRET = "unit-test-secret"
UPSTREAM_URL = "https://ethos.test/api/v2"


class FakeClock:
    """Manually advanced clock usable wherever a ``time.time`` callable is expected."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeUpstream:
    """In-memory stand-in for the Ethos API, served through httpx.MockTransport."""

    scores: dict[str, int] = field(default_factory=dict)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)
    fail: bool = False
    status_code: int | None = None
    calls: int = 0

    def add(self, address: str, score: int, **counters: int) -> None:
        address = address.lower()
        self.scores[address] = score
        self.profiles[address] = {
            "id": len(self.profiles) + 1,
            "vouchCount": counters.get("vouches", 0),
            "reviewCount": counters.get("reviews", 0),
            "positiveReviewCount": counters.get("positive", 0),
            "negativeReviewCount": counters.get("negative", 0),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.fail:
            raise httpx.ConnectError("upstream unreachable", request=request)
        if self.status_code is not None:
            return httpx.Response(self.status_code, json={"error": "upstream"})

        path = request.url.path
        if path.endswith("/score/address"):
            address = request.url.params.get("address", "").lower()
            if address not in self.scores:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json={"score": self.scores[address]})
        if "/user/by/address/" in path:
            address = path.rsplit("/", 1)[-1].lower()
            if address not in self.profiles:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json=self.profiles[address])
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def sign_challenge(account: Any, nonce: str, issued_at: str) -> str:
    """Sign the canonical challenge for ``account`` the way a wallet would."""
    message = build_challenge_message(account.address.lower(), nonce, issued_at)
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


def iso_now(offset_seconds: float = 0.0) -> str:
    return datetime.fromtimestamp(datetime.now(UTC).timestamp() + offset_seconds, UTC).isoformat()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def wallet() -> Any:
    """Return a freshly generated secp256k1 account."""
    return Account.create()


@pytest.fixture()
def other_wallet() -> Any:
    return Account.create()


@pytest.fixture()
def signed_payload(wallet: Any) -> Callable[..., dict[str, Any]]:
    """Build a signed challenge body for ``wallet`` with a unique nonce."""

    counter = iter(range(1, 1_000_000))

    def _build(**overrides: Any) -> dict[str, Any]:
        nonce = overrides.pop("nonce", f"nonce-{next(counter)}-{os.urandom(4).hex()}")
        issued_at = overrides.pop("issuedAt", iso_now())
        payload = {
            "address": wallet.address,
            "signature": sign_challenge(wallet, nonce, issued_at),
            "nonce": nonce,
            "issuedAt": issued_at,
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def reputation_client(upstream: FakeUpstream) -> ReputationClient:
    return ReputationClient(
        [UPSTREAM_URL],
        client_id="ethos-gate-tests",
        timeout_seconds=2.0,
        cache=TTLCache[ReputationSnapshot](ttl_seconds=300, max_size=100),
        transport=upstream.transport(),
    )


@pytest.fixture()
def replay_service() -> ReplayProtectionService:
    return ReplayProtectionService(None, ttl_seconds=300)


@pytest.fixture()
def token_service() -> TokenService:
    return TokenService(TEST_SECRET, algorithm="HS256", ttl_seconds=300)


@pytest.fixture()
def access_service(
    reputation_client: ReputationClient,
    replay_service: ReplayProtectionService,
    token_service: TokenService,
) -> AccessService:
    return AccessService(
        reputation=reputation_client,
        verifier=SignatureVerifier(replay_service, max_age_seconds=60),
        tokens=token_service,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_access_service(app: FastAPI, access_service: AccessService) -> Iterator[None]:
    app.dependency_overrides[get_access_service_dep] = lambda: access_service
    app.state.rate_limiter.reset()
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_access_service_dep, None)
        app.state.rate_limiter.reset()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
