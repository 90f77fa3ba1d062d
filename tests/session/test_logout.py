"""Tests for SessionLogoutBroadcaster."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

from zik_client.session.logout import SessionLogoutBroadcaster


class TestSubscription:
    """Subscriber slot management."""

    async def test_notify_without_subscriber_is_noop(self) -> None:
        """Given no subscriber, notify() completes silently."""
        broadcaster = SessionLogoutBroadcaster()

        await broadcaster.notify()

        assert not broadcaster.has_subscriber

    async def test_subscribe_replaces_previous(self) -> None:
        """Given two subscribe() calls, only the latest callback is invoked."""
        # Arrange
        broadcaster = SessionLogoutBroadcaster()
        first, second = MagicMock(), MagicMock()
        broadcaster.subscribe(first)
        broadcaster.subscribe(second)

        # Act
        await broadcaster.notify()

        # Assert
        first.assert_not_called()
        second.assert_called_once_with()

    async def test_unsubscribe(self) -> None:
        """Given unsubscribe(), the callback is no longer invoked."""
        broadcaster = SessionLogoutBroadcaster()
        callback = MagicMock()
        broadcaster.subscribe(callback)

        broadcaster.unsubscribe()
        await broadcaster.notify()

        callback.assert_not_called()
        assert not broadcaster.has_subscriber

    async def test_async_subscriber_is_awaited(self) -> None:
        """Given a coroutine callback, it is awaited."""
        broadcaster = SessionLogoutBroadcaster()
        callback = AsyncMock()
        broadcaster.subscribe(callback)

        await broadcaster.notify()

        callback.assert_awaited_once()


class TestCollapsedDelivery:
    """Concurrent notifications reach the subscriber once."""

    async def test_concurrent_notify_calls_subscriber_once(self) -> None:
        """Given 5 concurrent notify() calls, the slow subscriber runs once and all return."""
        # Arrange
        broadcaster = SessionLogoutBroadcaster()
        release = asyncio.Event()
        calls: list[int] = []

        async def slow_subscriber() -> None:
            calls.append(1)
            await release.wait()

        broadcaster.subscribe(slow_subscriber)

        # Act
        tasks = [asyncio.create_task(broadcaster.notify()) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(*tasks)

        # Assert
        assert calls == [1]

    async def test_sequential_notify_calls_subscriber_each_time(self) -> None:
        """Given two notifications one after another, the subscriber runs twice."""
        broadcaster = SessionLogoutBroadcaster()
        callback = MagicMock()
        broadcaster.subscribe(callback)

        await broadcaster.notify()
        await broadcaster.notify()

        assert callback.call_count == 2


class TestInvalidators:
    """Session-scoped hooks."""

    async def test_invalidators_run_before_subscriber(self) -> None:
        """Given an invalidator and a subscriber, the invalidator runs first."""
        # Arrange
        broadcaster = SessionLogoutBroadcaster()
        order: list[str] = []
        broadcaster.register_invalidator(lambda: order.append("cache"))
        broadcaster.subscribe(lambda: order.append("ui"))

        # Act
        await broadcaster.notify()

        # Assert
        assert order == ["cache", "ui"]

    async def test_invalidators_do_not_take_subscriber_slot(self) -> None:
        """Given only invalidators, has_subscriber stays False and they still run."""
        broadcaster = SessionLogoutBroadcaster()
        invalidator = MagicMock()
        broadcaster.register_invalidator(invalidator)

        await broadcaster.notify()

        invalidator.assert_called_once_with()
        assert not broadcaster.has_subscriber

    async def test_register_is_idempotent(self) -> None:
        """Given the same invalidator registered twice, it runs once per notification."""
        broadcaster = SessionLogoutBroadcaster()
        invalidator = MagicMock()
        broadcaster.register_invalidator(invalidator)
        broadcaster.register_invalidator(invalidator)

        await broadcaster.notify()

        invalidator.assert_called_once_with()


class TestListenerErrors:
    """Listener failures never propagate."""

    async def test_subscriber_error_is_swallowed(self) -> None:
        """Given a raising subscriber, notify() returns normally."""
        broadcaster = SessionLogoutBroadcaster()
        broadcaster.subscribe(MagicMock(side_effect=RuntimeError("boom")))

        await broadcaster.notify()

    async def test_async_subscriber_error_is_swallowed(self) -> None:
        """Given a raising coroutine subscriber, notify() returns normally."""
        broadcaster = SessionLogoutBroadcaster()
        broadcaster.subscribe(AsyncMock(side_effect=RuntimeError("boom")))

        await broadcaster.notify()

    async def test_invalidator_error_does_not_skip_others(self) -> None:
        """Given a raising invalidator, later invalidators and the subscriber still run."""
        # Arrange
        broadcaster = SessionLogoutBroadcaster()
        later = MagicMock()
        subscriber = MagicMock()
        broadcaster.register_invalidator(MagicMock(side_effect=ValueError("bad")))
        broadcaster.register_invalidator(later)
        broadcaster.subscribe(subscriber)

        # Act
        await broadcaster.notify()

        # Assert
        later.assert_called_once_with()
        subscriber.assert_called_once_with()
