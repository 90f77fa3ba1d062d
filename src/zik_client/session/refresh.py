"""Single-flight token refresh.

Any number of requests can hit a 401 at the same moment. Only the first one
starts a refresh; every other caller joins it and receives the same outcome
(the same TokenSet, or the same exception instance). The refresh runs in its
own task, so a caller that is cancelled while waiting never cancels the
shared attempt for everyone else.

Ordering guarantees:
- The refreshed TokenSet is saved to the credential store before any
  waiter is released, and only while the refreshed session is still the
  stored one. A logout or login that lands during the exchange wins, and
  the attempt fails with RefreshRejected.
- The attempt is cleared as soon as it settles, so the next 401 after a
  failed refresh starts a fresh attempt.
- The coordinator never clears the store. Deciding that a session is over
  is the request pipeline's job.
"""

from __future__ import annotations

__all__ = [
    "RefreshAttempt",
    "RefreshCoordinator",
]

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from zik_client.constants import DEFAULT_REFRESH_TIMEOUT_SECONDS
from zik_client.exceptions import RefreshRejected, RefreshUnavailable
from zik_client.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from zik_client.security.auth.token_refresh import TokenRefresher
    from zik_client.security.auth.token_storage import CredentialStore, TokenSet
    from zik_client.telemetry.auth_logger import AuthLogger

_logger = get_system_logger()


@dataclass
class RefreshAttempt:
    """The one in-flight refresh.

    Attributes:
        started_at: Monotonic timestamp when the attempt started.
        result: Future every waiter awaits.
        waiters: Number of callers sharing this attempt (including the starter).
    """

    started_at: float
    result: asyncio.Future[TokenSet]
    waiters: int = 1


def _consume_outcome(future: asyncio.Future) -> None:
    # Marks the exception as retrieved when every waiter was cancelled
    if not future.cancelled():
        future.exception()


class RefreshCoordinator:
    """Collapses concurrent refresh requests into one refresher call.

    Usage:
        coordinator = RefreshCoordinator(store, refresher, timeout_seconds=10)
        token_set = await coordinator.request_refresh(failed=token_that_got_401)
    """

    def __init__(
        self,
        store: "CredentialStore",
        refresher: "TokenRefresher",
        *,
        timeout_seconds: float = DEFAULT_REFRESH_TIMEOUT_SECONDS,
        auth_logger: "AuthLogger | None" = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Credential store holding the refresh token.
            refresher: Performs the network exchange.
            timeout_seconds: Upper bound for one refresher call.
            auth_logger: Optional auth event logger.
        """
        self._store = store
        self._refresher = refresher
        self._timeout_seconds = timeout_seconds
        self._auth_logger = auth_logger
        self._attempt: RefreshAttempt | None = None
        # Strong references so running attempts are not garbage collected
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_progress(self) -> bool:
        """True while a refresh attempt is running."""
        return self._attempt is not None

    async def request_refresh(self, failed: "TokenSet | None" = None) -> "TokenSet":
        """Obtain a refreshed token set, starting or joining the single attempt.

        Args:
            failed: Token set whose access token was just rejected. When the
                stored access token already differs from it and no attempt is
                running, a refresh has completed since that request was sent,
                and the stored set is returned without another exchange.

        Returns:
            The refreshed (and already persisted) TokenSet.

        Raises:
            RefreshRejected: If the refresh credential was denied, no
                session is stored, or the session was cleared or replaced
                while the exchange ran.
            RefreshUnavailable: If the exchange could not complete or timed out.
            StorageFailure: If the credential store failed.
        """
        if self._attempt is not None:
            return await self._join(self._attempt)

        if failed is not None:
            current = await self._store.load()
            # An attempt may have started while the store was being read
            if self._attempt is not None:
                return await self._join(self._attempt)
            if current is not None and current.access_token != failed.access_token:
                _logger.debug(
                    {
                        "event": "refresh_skipped",
                        "message": "Stored token already replaced since the request was sent",
                        "session_id": current.session_id,
                    }
                )
                return current

        return await self._start()

    async def _join(self, attempt: RefreshAttempt) -> "TokenSet":
        attempt.waiters += 1
        _logger.debug(
            {
                "event": "refresh_joined",
                "message": "Joining in-flight token refresh",
                "waiters": attempt.waiters,
            }
        )
        return await asyncio.shield(attempt.result)

    async def _start(self) -> "TokenSet":
        loop = asyncio.get_running_loop()
        attempt = RefreshAttempt(started_at=time.monotonic(), result=loop.create_future())
        attempt.result.add_done_callback(_consume_outcome)
        self._attempt = attempt

        _logger.debug({"event": "refresh_started", "message": "Starting token refresh"})

        task = loop.create_task(self._run(attempt))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return await asyncio.shield(attempt.result)

    async def _run(self, attempt: RefreshAttempt) -> None:
        """Perform the refresh and settle the attempt's future."""
        session_id: str | None = None
        try:
            current = await self._store.load()
            if current is None:
                raise RefreshRejected("No stored session to refresh")
            session_id = current.session_id

            try:
                refreshed = await asyncio.wait_for(
                    self._refresher.refresh(current.refresh_token),
                    timeout=self._timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                raise RefreshUnavailable(
                    f"Token refresh timed out after {self._timeout_seconds:g}s"
                ) from e

            # A refresh continues the same login
            refreshed = refreshed.model_copy(update={"session_id": current.session_id})
            if not await self._store.replace(current, refreshed):
                raise RefreshRejected("Session was logged out or replaced during refresh")

        except asyncio.CancelledError:
            self._attempt = None
            attempt.result.cancel()
            raise

        except Exception as e:
            duration_ms = (time.monotonic() - attempt.started_at) * 1000
            self._log_failure(attempt, e, session_id, duration_ms)
            self._attempt = None
            attempt.result.set_exception(e)
            return

        duration_ms = (time.monotonic() - attempt.started_at) * 1000
        _logger.info(
            {
                "event": "refresh_succeeded",
                "message": "Token refreshed",
                "session_id": refreshed.session_id,
                "duration_ms": round(duration_ms, 1),
                "waiters": attempt.waiters,
            }
        )
        if self._auth_logger is not None:
            self._auth_logger.log_token_refreshed(
                session_id=refreshed.session_id,
                duration_ms=duration_ms,
                waiters=attempt.waiters,
            )

        self._attempt = None
        attempt.result.set_result(refreshed)

    def _log_failure(
        self,
        attempt: RefreshAttempt,
        error: Exception,
        session_id: str | None,
        duration_ms: float,
    ) -> None:
        # Rejection ends the session (error), anything else keeps it (warning)
        log = _logger.error if isinstance(error, RefreshRejected) else _logger.warning
        log(
            {
                "event": "refresh_failed",
                "message": str(error),
                "error_type": type(error).__name__,
                "session_id": session_id,
                "duration_ms": round(duration_ms, 1),
                "waiters": attempt.waiters,
            }
        )
        if self._auth_logger is not None:
            self._auth_logger.log_token_refresh_failed(
                session_id=session_id,
                error_type=type(error).__name__,
                error_message=str(error),
                duration_ms=duration_ms,
                waiters=attempt.waiters,
            )
