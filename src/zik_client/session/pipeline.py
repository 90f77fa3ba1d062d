"""Authenticated request pipeline.

Every API call goes through RequestPipeline.send():

1. Load the stored token set (none -> Unauthenticated, nothing is sent).
2. Send with "Authorization: Bearer <access token>".
3. Anything but a 401 is returned to the caller unchanged; business errors
   are the caller's to interpret.
4. On a 401, refresh through the RefreshCoordinator and replay the original
   request exactly once. A 401 on the replay is final: the session is torn
   down like a rejected refresh and Unauthenticated is raised.

Refresh outcomes are translated here:
- RefreshRejected   -> clear credentials, notify logout, SessionExpired
- RefreshUnavailable -> keep credentials, NetworkUnavailable

Logout escalation is single-flight per session and compare-and-clear:
credentials are only cleared (and the logout broadcast only sent) while the
store still holds the session whose refresh was rejected. Requests that
discover the same rejection later, or that were sent before a new login,
never log the user out a second time. A user logout never joins a teardown
of some older session; it waits for it and then clears whatever is stored.
"""

from __future__ import annotations

__all__ = [
    "RequestPipeline",
    "RequestSpec",
    "is_authorization_failure",
]

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

import httpx

from zik_client.constants import AUTHORIZATION_FAILURE_STATUS
from zik_client.exceptions import (
    NetworkUnavailable,
    RefreshRejected,
    RefreshUnavailable,
    SessionExpired,
    Unauthenticated,
)
from zik_client.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from zik_client.security.auth.token_storage import CredentialStore, TokenSet
    from zik_client.session.logout import SessionLogoutBroadcaster
    from zik_client.session.refresh import RefreshCoordinator
    from zik_client.telemetry.auth_logger import AuthLogger

_logger = get_system_logger()


def is_authorization_failure(response: httpx.Response) -> bool:
    """The one place that decides whether a response means "credential rejected"."""
    return response.status_code == AUTHORIZATION_FAILURE_STATUS


@dataclass(frozen=True)
class RequestSpec:
    """Everything needed to send (and replay) one request.

    Attributes:
        method: HTTP method.
        url: Absolute URL, or a path relative to the client's base URL.
        params: Query parameters.
        json: JSON body.
        headers: Extra headers (Authorization is always overwritten).
        content: Raw body (mutually exclusive with json).
        timeout: Per-request timeout in seconds (client default when None).
    """

    method: str
    url: str
    params: Mapping[str, Any] | None = None
    json: Any = None
    headers: Mapping[str, str] | None = None
    content: bytes | str | None = None
    timeout: float | None = None


class RequestPipeline:
    """Sends requests with the stored credential and recovers from one 401.

    Usage:
        pipeline = RequestPipeline(store, coordinator, broadcaster, http_client)
        response = await pipeline.request("GET", "/profile")
    """

    def __init__(
        self,
        store: "CredentialStore",
        coordinator: "RefreshCoordinator",
        broadcaster: "SessionLogoutBroadcaster",
        http_client: httpx.AsyncClient,
        *,
        proactive_refresh: bool = True,
        auth_logger: "AuthLogger | None" = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Credential store.
            coordinator: Single-flight refresh coordinator.
            broadcaster: Logout broadcaster.
            http_client: Transport for API requests.
            proactive_refresh: Refresh before sending when the stored access
                token is already past its expiry.
            auth_logger: Optional auth event logger.
        """
        self._store = store
        self._coordinator = coordinator
        self._broadcaster = broadcaster
        self._http_client = http_client
        self._proactive_refresh = proactive_refresh
        self._auth_logger = auth_logger
        # Session id the running teardown is for (None: user logout), and its outcome
        self._escalation: tuple[str | None, asyncio.Future[None]] | None = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        content: bytes | str | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Build a RequestSpec and send it (see send())."""
        return await self.send(
            RequestSpec(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=headers,
                content=content,
                timeout=timeout,
            )
        )

    async def send(self, spec: RequestSpec) -> httpx.Response:
        """Send an authenticated request, refreshing and replaying once on 401.

        Args:
            spec: The request.

        Returns:
            The response (any status except a final 401).

        Raises:
            Unauthenticated: No stored session (nothing is cleared or
                notified), or the request was rejected again with refreshed
                credentials (the session is cleared and the logout broadcast
                sent, as for SessionExpired).
            SessionExpired: The refresh credential was rejected; the session
                has been cleared and the logout broadcast sent.
            NetworkUnavailable: Transport failure, timeout, or a refresh that
                could not complete. The session is kept.
            StorageFailure: The credential store failed.
        """
        token = await self._store.load()
        if token is None:
            raise Unauthenticated("Not logged in")

        refreshed = False
        if self._proactive_refresh and token.is_expired:
            _logger.debug(
                {
                    "event": "access_token_expired",
                    "message": "Stored access token is past expiry, refreshing before send",
                    "session_id": token.session_id,
                }
            )
            token = await self._refresh(token)
            refreshed = True

        response = await self._send_once(spec, token)
        if not is_authorization_failure(response):
            return response

        if refreshed:
            # The proactive refresh already used this request's one retry
            await self._escalate(
                expected_session_id=token.session_id,
                reason="Request rejected with freshly refreshed credentials",
            )
            raise Unauthenticated("Request rejected with freshly refreshed credentials")

        _logger.info(
            {
                "event": "request_unauthorized",
                "message": "Request rejected with 401, refreshing credentials",
                "method": spec.method,
                "url": spec.url,
                "session_id": token.session_id,
            }
        )
        token = await self._refresh(token)

        response = await self._send_once(spec, token)
        if is_authorization_failure(response):
            _logger.warning(
                {
                    "event": "replay_unauthorized",
                    "message": "Replayed request rejected again after refresh",
                    "method": spec.method,
                    "url": spec.url,
                    "session_id": token.session_id,
                }
            )
            await self._escalate(
                expected_session_id=token.session_id,
                reason="Request rejected again after refreshing credentials",
            )
            raise Unauthenticated("Request rejected again after refreshing credentials")
        return response

    async def logout(self) -> None:
        """User-initiated logout: clear credentials and notify, unconditionally.

        Raises:
            StorageFailure: If the credential store could not be cleared.
        """
        await self._escalate(expected_session_id=None, reason="User logout")

    async def _refresh(self, token: "TokenSet") -> "TokenSet":
        try:
            return await self._coordinator.request_refresh(failed=token)
        except RefreshRejected as e:
            await self._escalate(expected_session_id=token.session_id, reason=str(e))
            raise SessionExpired("Session expired. Please log in again.") from e
        except RefreshUnavailable as e:
            raise NetworkUnavailable(f"Could not refresh credentials: {e}") from e

    async def _send_once(self, spec: RequestSpec, token: "TokenSet") -> httpx.Response:
        headers = dict(spec.headers or {})
        headers["Authorization"] = f"Bearer {token.access_token}"

        try:
            return await self._http_client.request(
                spec.method,
                spec.url,
                params=spec.params,
                json=spec.json,
                content=spec.content,
                headers=headers,
                timeout=spec.timeout if spec.timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            raise NetworkUnavailable(f"Request timed out: {spec.method} {spec.url}") from e
        except httpx.TransportError as e:
            raise NetworkUnavailable(f"Network error: {e}") from e

    async def _escalate(self, *, expected_session_id: str | None, reason: str) -> None:
        """Clear credentials and notify logout, at most once at a time per session.

        Args:
            expected_session_id: Only tear down if the store still holds this
                session. None tears down whatever is stored.
            reason: Why the session ended (for logs).
        """
        while self._escalation is not None:
            running_for, running = self._escalation
            await asyncio.shield(running)
            if running_for == expected_session_id:
                return

        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._escalation = (expected_session_id, done)
        try:
            cleared, previous = await self._store.clear(expected_session_id)
            if not cleared:
                _logger.debug(
                    {
                        "event": "session_teardown_skipped",
                        "message": "Session already torn down or replaced",
                        "session_id": expected_session_id,
                    }
                )
                return

            session_id = previous.session_id if previous is not None else None
            if expected_session_id is None:
                _logger.info({"event": "logout", "message": reason, "session_id": session_id})
                if self._auth_logger is not None:
                    self._auth_logger.log_logout(session_id=session_id, message=reason)
            else:
                _logger.warning({"event": "session_expired", "message": reason, "session_id": session_id})
                if self._auth_logger is not None:
                    self._auth_logger.log_session_expired(session_id=session_id, message=reason)

            await self._broadcaster.notify()
        finally:
            self._escalation = None
            if not done.done():
                done.set_result(None)
