"""Tests for RefreshCoordinator.

Tests cover:
- Single-flight: concurrent callers share one refresher call and one outcome
- Persist-before-release ordering
- Session id carried across refreshes
- Failure delivery without touching the store
- A logout or new login during the exchange is never overwritten
- Timeout as RefreshUnavailable
- The late-401 shortcut
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest

from zik_client.exceptions import RefreshRejected, RefreshUnavailable
from zik_client.security.auth.token_storage import CredentialStore, TokenSet
from zik_client.session.refresh import RefreshCoordinator

if TYPE_CHECKING:
    from tests.session.conftest import FakeRefresher

REFRESHED_ACCESS_TOKEN = "access-refreshed"


class TestSingleFlight:
    """Concurrent refresh requests collapse into one attempt."""

    async def test_concurrent_requests_call_refresher_once(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given 10 concurrent refresh requests, the refresher runs once and all get the same set."""
        # Arrange
        await store.save(token_set)
        fake_refresher.gate.clear()

        # Act
        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(10)]
        await asyncio.sleep(0)
        assert coordinator.in_progress
        fake_refresher.gate.set()
        results = await asyncio.gather(*tasks)

        # Assert
        assert fake_refresher.calls == ["refresh-1"]
        assert all(result is results[0] for result in results)
        assert results[0].access_token == REFRESHED_ACCESS_TOKEN
        assert not coordinator.in_progress

    async def test_failure_is_shared_by_all_waiters(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given a rejected refresh, every waiter receives the same exception instance."""
        # Arrange
        await store.save(token_set)
        fake_refresher.gate.clear()
        fake_refresher.error = RefreshRejected("revoked")

        # Act
        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(5)]
        await asyncio.sleep(0)
        fake_refresher.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Assert
        assert len(fake_refresher.calls) == 1
        assert all(result is fake_refresher.error for result in results)

    async def test_cancelled_waiter_does_not_cancel_attempt(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given the first waiter is cancelled, the others still get the refreshed set."""
        # Arrange
        await store.save(token_set)
        fake_refresher.gate.clear()
        first = asyncio.create_task(coordinator.request_refresh())
        second = asyncio.create_task(coordinator.request_refresh())
        await asyncio.sleep(0)

        # Act
        first.cancel()
        await asyncio.sleep(0)
        fake_refresher.gate.set()
        result = await second

        # Assert
        assert result.access_token == REFRESHED_ACCESS_TOKEN
        assert (await store.load()).access_token == REFRESHED_ACCESS_TOKEN

    async def test_attempt_cleared_after_failure(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given a failed attempt, the next request starts a new attempt."""
        # Arrange
        await store.save(token_set)
        fake_refresher.error = RefreshUnavailable("offline")
        with pytest.raises(RefreshUnavailable):
            await coordinator.request_refresh()

        # Act
        fake_refresher.error = None
        result = await coordinator.request_refresh()

        # Assert
        assert len(fake_refresher.calls) == 2
        assert result.access_token == REFRESHED_ACCESS_TOKEN


class TestPersistence:
    """The refreshed set is saved before anyone is released."""

    async def test_saved_before_waiters_resume(
        self,
        token_set: TokenSet,
        fake_refresher: FakeRefresher,
        memory_storage,
    ) -> None:
        """Given a slow medium, waiters resume only after the save completed."""
        # Arrange
        events: list[str] = []
        original_set = memory_storage.set

        async def slow_set(key: str, value: str) -> None:
            await asyncio.sleep(0.01)
            await original_set(key, value)
            events.append("saved")

        store = CredentialStore(memory_storage)
        await store.save(token_set)
        memory_storage.set = slow_set
        coordinator = RefreshCoordinator(store, fake_refresher)

        async def waiter() -> None:
            await coordinator.request_refresh()
            events.append("released")

        # Act
        await asyncio.gather(waiter(), waiter(), waiter())

        # Assert
        assert events[0] == "saved"
        assert events.count("released") == 3

    async def test_session_id_carried_over(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
    ) -> None:
        """Given a refresh, the new set keeps the session's id."""
        await store.save(token_set)

        result = await coordinator.request_refresh()

        assert result.session_id == token_set.session_id
        assert (await store.load()) == result

    async def test_failure_leaves_store_untouched(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given a rejected refresh, the coordinator does not clear the store."""
        await store.save(token_set)
        fake_refresher.error = RefreshRejected("revoked")

        with pytest.raises(RefreshRejected):
            await coordinator.request_refresh()

        assert await store.load() == token_set

    async def test_no_stored_session_is_rejected(
        self,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given an empty store, raises RefreshRejected without calling the refresher."""
        with pytest.raises(RefreshRejected):
            await coordinator.request_refresh()

        assert fake_refresher.calls == []


class TestSessionEndsDuringRefresh:
    """The refreshed set is only saved while its session is still stored."""

    async def test_logout_during_refresh_is_not_undone(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given the store is cleared while the exchange runs, nothing is saved and waiters get RefreshRejected."""
        # Arrange
        await store.save(token_set)
        fake_refresher.gate.clear()
        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(3)]
        while not fake_refresher.calls:
            await asyncio.sleep(0)

        # Act
        await store.clear()
        fake_refresher.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Assert
        assert all(isinstance(result, RefreshRejected) for result in results)
        assert await store.load() is None
        assert not coordinator.in_progress

    async def test_login_during_refresh_is_kept(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        token_factory,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given a new login is saved while the old session refreshes, the new login stays stored."""
        # Arrange
        await store.save(token_set)
        fake_refresher.gate.clear()
        task = asyncio.create_task(coordinator.request_refresh())
        while not fake_refresher.calls:
            await asyncio.sleep(0)
        new_login = token_factory("new", session_id="session-2")

        # Act
        await store.save(new_login)
        fake_refresher.gate.set()

        # Assert
        with pytest.raises(RefreshRejected):
            await task
        assert await store.load() == new_login


class TestTimeout:
    """The refresher call is bounded."""

    async def test_hanging_refresher_becomes_unavailable(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given a refresher that never answers, raises RefreshUnavailable and keeps the session."""
        # Arrange
        await store.save(token_set)
        fake_refresher.gate.clear()
        coordinator = RefreshCoordinator(store, fake_refresher, timeout_seconds=0.05)

        # Act
        results = await asyncio.gather(
            coordinator.request_refresh(),
            coordinator.request_refresh(),
            return_exceptions=True,
        )

        # Assert
        assert all(isinstance(result, RefreshUnavailable) for result in results)
        assert await store.load() == token_set
        assert not coordinator.in_progress


class TestLateUnauthorized:
    """A 401 for a token that was already replaced reuses the stored set."""

    async def test_returns_stored_set_without_refreshing(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        token_factory,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given the stored access token differs from the failed one, no refresh happens."""
        # Arrange
        newer = token_factory("2", session_id=token_set.session_id)
        await store.save(newer)

        # Act
        result = await coordinator.request_refresh(failed=token_set)

        # Assert
        assert result == newer
        assert fake_refresher.calls == []

    async def test_refreshes_when_failed_token_is_current(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        coordinator: RefreshCoordinator,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given the failed token is still stored, a refresh happens."""
        await store.save(token_set)

        await coordinator.request_refresh(failed=token_set)

        assert fake_refresher.calls == ["refresh-1"]


class TestAuthLogging:
    """Auth events are recorded for every settled attempt."""

    async def test_success_logged_with_waiter_count(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given 3 callers share a refresh, the auth log reports 3 waiters."""
        # Arrange
        await store.save(token_set)
        auth_logger = MagicMock()
        coordinator = RefreshCoordinator(store, fake_refresher, auth_logger=auth_logger)
        fake_refresher.gate.clear()

        # Act
        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(3)]
        await asyncio.sleep(0)
        fake_refresher.gate.set()
        await asyncio.gather(*tasks)

        # Assert
        auth_logger.log_token_refreshed.assert_called_once()
        assert auth_logger.log_token_refreshed.call_args.kwargs["waiters"] == 3
        assert auth_logger.log_token_refreshed.call_args.kwargs["session_id"] == token_set.session_id

    async def test_failure_logged(
        self,
        store: CredentialStore,
        token_set: TokenSet,
        fake_refresher: FakeRefresher,
    ) -> None:
        """Given a rejected refresh, a failure event is logged."""
        await store.save(token_set)
        auth_logger = MagicMock()
        coordinator = RefreshCoordinator(store, fake_refresher, auth_logger=auth_logger)
        fake_refresher.error = RefreshRejected("revoked")

        with pytest.raises(RefreshRejected):
            await coordinator.request_refresh()

        kwargs = auth_logger.log_token_refresh_failed.call_args.kwargs
        assert kwargs["error_type"] == "RefreshRejected"
