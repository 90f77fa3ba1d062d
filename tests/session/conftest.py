"""Fixtures for session tests: a controllable refresher and a fake API."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from zik_client.security.auth.token_storage import CredentialStore, TokenSet
from zik_client.session.logout import SessionLogoutBroadcaster
from zik_client.session.pipeline import RequestPipeline
from zik_client.session.refresh import RefreshCoordinator

REFRESHED_ACCESS_TOKEN = "access-refreshed"


class FakeRefresher:
    """TokenRefresher double.

    Holds every call at `gate` until the test opens it, then either raises
    `error` or returns a token set with REFRESHED_ACCESS_TOKEN.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.gate = asyncio.Event()
        self.gate.set()
        self.error: Exception | None = None

    async def refresh(self, refresh_token: str) -> TokenSet:
        self.calls.append(refresh_token)
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        now = datetime.now(timezone.utc)
        return TokenSet(
            access_token=REFRESHED_ACCESS_TOKEN,
            id_token="id-refreshed",
            refresh_token=refresh_token,
            issued_at=now,
            expires_at=now + timedelta(hours=1),
        )


class FakeApi:
    """API double accepting only the access tokens in `valid_tokens`."""

    def __init__(self) -> None:
        self.valid_tokens: set[str] = {"access-1"}
        self.requests: list[httpx.Request] = []
        self.status_for_valid = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token not in self.valid_tokens:
            return httpx.Response(401, json={"message": "Unauthorized"})
        return httpx.Response(self.status_for_valid, json={"path": request.url.path})

    def tokens_seen(self) -> list[str]:
        return [r.headers.get("Authorization", "") for r in self.requests]


@pytest.fixture
def fake_refresher() -> FakeRefresher:
    """Refresher that succeeds immediately unless configured otherwise."""
    return FakeRefresher()


@pytest.fixture
def fake_api() -> FakeApi:
    """API accepting access-1 only."""
    return FakeApi()


@pytest.fixture
def broadcaster() -> SessionLogoutBroadcaster:
    """Logout broadcaster without subscriber."""
    return SessionLogoutBroadcaster()


@pytest.fixture
def coordinator(store: CredentialStore, fake_refresher: FakeRefresher) -> RefreshCoordinator:
    """Coordinator over the in-memory store with a short timeout."""
    return RefreshCoordinator(store, fake_refresher, timeout_seconds=1.0)


@pytest.fixture
async def http_client(fake_api: FakeApi):
    """AsyncClient routed to the fake API."""
    async with httpx.AsyncClient(
        base_url="https://api.zik.test",
        transport=httpx.MockTransport(fake_api.handler),
    ) as client:
        yield client


@pytest.fixture
def pipeline(
    store: CredentialStore,
    coordinator: RefreshCoordinator,
    broadcaster: SessionLogoutBroadcaster,
    http_client: httpx.AsyncClient,
) -> RequestPipeline:
    """Pipeline wired to the fakes."""
    return RequestPipeline(store, coordinator, broadcaster, http_client)
