"""ZikClient: the access layer wired together.

Builds the credential store, refresher, refresh coordinator, logout
broadcaster, request pipeline and profile cache from one ClientConfig, and
exposes the operations application code needs.

Usage:
    async with ZikClient(load_client_config()) as client:
        client.on_logout(show_login_screen)
        await client.login("ada@example.com", password)
        profile = await client.get_profile()
        response = await client.request("GET", "/quests")
"""

from __future__ import annotations

__all__ = [
    "ZikClient",
]

import time
from types import TracebackType
from typing import TYPE_CHECKING, Any, Mapping

import httpx

from zik_client.constants import AUTH_LOG_FILENAME
from zik_client.exceptions import LoginFailed, NetworkUnavailable
from zik_client.profile.cache import Clock, ProfileCache
from zik_client.profile.service import ProfileService
from zik_client.security.auth.login import login_with_password
from zik_client.security.auth.token_parser import UserIdentity, decode_identity
from zik_client.security.auth.token_refresh import CognitoTokenRefresher, TokenRefresher
from zik_client.security.auth.token_storage import CredentialStore
from zik_client.security.storage import KeyValueStorage, create_storage
from zik_client.session.logout import LogoutCallback, SessionLogoutBroadcaster
from zik_client.session.pipeline import RequestPipeline, RequestSpec
from zik_client.session.refresh import RefreshCoordinator
from zik_client.telemetry.auth_logger import AuthLogger, create_auth_logger
from zik_client.telemetry.system.system_logger import get_system_logger

if TYPE_CHECKING:
    from zik_client.config import ClientConfig
    from zik_client.profile.models import UserProfile

_logger = get_system_logger()


def _create_auth_logger(config: "ClientConfig") -> AuthLogger | None:
    if not config.logging.auth_log:
        return None
    log_path = config.logging.resolved_log_dir / AUTH_LOG_FILENAME
    try:
        return create_auth_logger(log_path)
    except OSError as e:
        _logger.warning(
            {
                "event": "auth_log_unavailable",
                "message": f"Auth events will not be logged: {e}",
                "path": str(log_path),
            }
        )
        return None


class ZikClient:
    """Authenticated API access for one user session."""

    def __init__(
        self,
        config: "ClientConfig",
        *,
        storage: KeyValueStorage | None = None,
        http_client: httpx.AsyncClient | None = None,
        refresher: TokenRefresher | None = None,
        clock: Clock | None = None,
        auth_logger: AuthLogger | None = None,
    ) -> None:
        """Wire the components.

        Args:
            config: Client configuration.
            storage: Credential medium (default: from config.storage).
            http_client: Transport (default: a client on config.api_base_url,
                owned and closed by this object).
            refresher: Token refresher (default: Cognito).
            clock: Clock for the profile cache (default: time.monotonic).
            auth_logger: Auth event logger (default: auth.jsonl in the log dir,
                if enabled in config).
        """
        self._config = config
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            base_url=config.api_base_url,
            timeout=config.request_timeout_seconds,
        )
        self._auth_logger = auth_logger if auth_logger is not None else _create_auth_logger(config)

        self._store = CredentialStore(storage if storage is not None else create_storage(config.storage))
        self._refresher = refresher or CognitoTokenRefresher(
            config.cognito,
            http_client=self._http_client,
            timeout=config.refresh_timeout_seconds,
        )
        self._coordinator = RefreshCoordinator(
            self._store,
            self._refresher,
            timeout_seconds=config.refresh_timeout_seconds,
            auth_logger=self._auth_logger,
        )
        self._broadcaster = SessionLogoutBroadcaster()
        self._pipeline = RequestPipeline(
            self._store,
            self._coordinator,
            self._broadcaster,
            self._http_client,
            proactive_refresh=config.proactive_refresh,
            auth_logger=self._auth_logger,
        )
        self._profile_cache = ProfileCache(
            ttl_seconds=config.profile_cache_ttl_seconds,
            clock=clock or time.monotonic,
        )
        self._broadcaster.register_invalidator(self._profile_cache.invalidate)
        self._profiles = ProfileService(self._pipeline, self._store, self._profile_cache)

    async def __aenter__(self) -> "ZikClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def config(self) -> "ClientConfig":
        return self._config

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    @property
    def profile_cache(self) -> ProfileCache:
        return self._profile_cache

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def login(self, username: str, password: str) -> UserIdentity:
        """Log in with username and password and persist the new session.

        Returns:
            Identity of the logged-in user.

        Raises:
            LoginFailed: If the credentials were rejected.
            NetworkUnavailable: If the identity provider is unreachable.
            Unauthenticated: If the returned ID token is unusable.
            StorageFailure: If the session could not be saved.
        """
        try:
            token_set = await login_with_password(
                self._config.cognito,
                username,
                password,
                http_client=self._http_client,
                timeout=self._config.request_timeout_seconds,
            )
        except (LoginFailed, NetworkUnavailable) as e:
            if self._auth_logger is not None:
                self._auth_logger.log_login(
                    success=False,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
            raise

        identity = decode_identity(token_set.id_token)
        # Nothing cached under the previous login may leak into this one
        self._profile_cache.invalidate()
        await self._store.save(token_set)

        _logger.info(
            {
                "event": "login",
                "message": "Logged in",
                "session_id": token_set.session_id,
                "user_id": identity.user_id,
            }
        )
        if self._auth_logger is not None:
            self._auth_logger.log_login(
                success=True,
                session_id=token_set.session_id,
                user_id=identity.user_id,
            )
        return identity

    async def logout(self) -> None:
        """Clear the session and notify the logout subscriber."""
        await self._pipeline.logout()

    def on_logout(self, callback: LogoutCallback) -> None:
        """Set the (single) logout subscriber, replacing any previous one."""
        self._broadcaster.subscribe(callback)

    async def is_authenticated(self) -> bool:
        """True if a usable token set is stored."""
        return await self._store.exists()

    async def current_identity(self) -> UserIdentity | None:
        """Identity from the stored ID token, or None when logged out."""
        token_set = await self._store.load()
        if token_set is None:
            return None
        return decode_identity(token_set.id_token)

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

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
        """Send an authenticated request (see RequestPipeline.send)."""
        return await self._pipeline.request(
            method,
            url,
            params=params,
            json=json,
            headers=headers,
            content=content,
            timeout=timeout,
        )

    async def send(self, spec: RequestSpec) -> httpx.Response:
        return await self._pipeline.send(spec)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def get_profile(self, force_refresh: bool = False) -> "UserProfile":
        """Current user's profile (cached for the configured TTL).

        Args:
            force_refresh: Bypass the cache and fetch from the API.
        """
        if force_refresh:
            return await self._profiles.refresh_profile()
        return await self._profiles.get_profile()

    def invalidate_profile(self) -> None:
        self._profiles.invalidate()

    async def aclose(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_http_client:
            await self._http_client.aclose()
