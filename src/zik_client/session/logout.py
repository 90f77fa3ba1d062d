"""Session logout broadcaster.

Announces "the session is over" to the application exactly once per
teardown, however many failing requests discover it at the same time.

Two kinds of listeners:
- One application subscriber (the session owner, e.g. the UI's navigation
  to the login screen). Subscribing again replaces it.
- Any number of invalidators registered by session-scoped caches. They are
  synchronous, run first, and do not occupy the subscriber slot.

Listener failures are logged and never reach the request that triggered
the logout.
"""

from __future__ import annotations

__all__ = [
    "Invalidator",
    "LogoutCallback",
    "SessionLogoutBroadcaster",
]

import asyncio
import inspect
from typing import Awaitable, Callable, Union

from zik_client.telemetry.system.system_logger import get_system_logger

_logger = get_system_logger()

LogoutCallback = Callable[[], Union[Awaitable[None], None]]
Invalidator = Callable[[], None]


class SessionLogoutBroadcaster:
    """Single-subscriber logout notification with collapsed delivery.

    Usage:
        broadcaster = SessionLogoutBroadcaster()
        broadcaster.subscribe(go_to_login)
        broadcaster.register_invalidator(profile_cache.invalidate)
        await broadcaster.notify()
    """

    def __init__(self) -> None:
        self._subscriber: LogoutCallback | None = None
        self._invalidators: list[Invalidator] = []
        self._in_flight: asyncio.Future[None] | None = None

    @property
    def has_subscriber(self) -> bool:
        return self._subscriber is not None

    def subscribe(self, callback: LogoutCallback) -> None:
        """Set the application subscriber, replacing any previous one."""
        self._subscriber = callback

    def unsubscribe(self) -> None:
        """Remove the application subscriber."""
        self._subscriber = None

    def register_invalidator(self, invalidator: Invalidator) -> None:
        """Register a synchronous hook run on every notification."""
        if invalidator not in self._invalidators:
            self._invalidators.append(invalidator)

    async def notify(self) -> None:
        """Run invalidators, then the subscriber.

        A notify() issued while another is running joins it instead of
        invoking the listeners a second time.
        """
        if self._in_flight is not None:
            _logger.debug({"event": "logout_notify_joined", "message": "Logout notification already running"})
            await asyncio.shield(self._in_flight)
            return

        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._in_flight = done
        try:
            self._run_invalidators()
            await self._call_subscriber()
        finally:
            self._in_flight = None
            if not done.done():
                done.set_result(None)

    def _run_invalidators(self) -> None:
        for invalidator in list(self._invalidators):
            try:
                invalidator()
            except Exception as e:
                _logger.error(
                    {
                        "event": "logout_invalidator_failed",
                        "message": f"Session invalidator raised: {e}",
                        "error_type": type(e).__name__,
                    }
                )

    async def _call_subscriber(self) -> None:
        callback = self._subscriber
        if callback is None:
            _logger.debug({"event": "logout_no_subscriber", "message": "No logout subscriber registered"})
            return

        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            _logger.error(
                {
                    "event": "logout_subscriber_failed",
                    "message": f"Logout subscriber raised: {e}",
                    "error_type": type(e).__name__,
                }
            )
            return

        _logger.info({"event": "logout_notified", "message": "Logout subscriber notified"})
