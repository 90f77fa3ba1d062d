"""Token refresh for the Cognito REFRESH_TOKEN_AUTH flow.

When the access token expires, the refresh token is exchanged for a new
access/ID token pair without user interaction.

Each refresh is exactly one network exchange; retry policy belongs to the
caller. Failures are split in two, because they lead to opposite outcomes:

- RefreshRejected: the provider denied the refresh token (expired, revoked,
  user disabled). The session is over and the user must log in again.
- RefreshUnavailable: the exchange could not complete (timeout, network
  error, throttling, 5xx). The refresh token may still be good, so the
  session must be kept.
"""

from __future__ import annotations

__all__ = [
    "CognitoTokenRefresher",
    "REJECTION_ERROR_TYPES",
    "TokenRefresher",
]

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from zik_client.constants import DEFAULT_REFRESH_TIMEOUT_SECONDS
from zik_client.exceptions import RefreshRejected, RefreshUnavailable
from zik_client.security.auth.cognito import CognitoServiceError, initiate_auth
from zik_client.security.auth.token_parser import parse_authentication_result
from zik_client.security.auth.token_storage import TokenSet

if TYPE_CHECKING:
    from zik_client.config import CognitoConfig

# Provider errors meaning "this refresh token will never work again"
REJECTION_ERROR_TYPES: frozenset[str] = frozenset(
    {
        "NotAuthorizedException",
        "UserNotFoundException",
        "UserNotConfirmedException",
        "PasswordResetRequiredException",
    }
)


@runtime_checkable
class TokenRefresher(Protocol):
    """Exchanges a refresh token for a new token set."""

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Perform one refresh exchange.

        Raises:
            RefreshRejected: If the provider denied the refresh token.
            RefreshUnavailable: If the exchange could not complete.
        """
        ...


class CognitoTokenRefresher:
    """TokenRefresher backed by Cognito InitiateAuth (REFRESH_TOKEN_AUTH).

    Cognito does not rotate refresh tokens on this flow, so the presented
    refresh token is carried into the returned TokenSet when the response
    has none.

    Usage:
        refresher = CognitoTokenRefresher(config.cognito, http_client=client)
        token_set = await refresher.refresh(stored.refresh_token)
    """

    def __init__(
        self,
        config: "CognitoConfig",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_REFRESH_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the refresher.

        Args:
            config: User pool settings.
            http_client: Optional shared client (a private one is used per call otherwise).
            timeout: Timeout for the exchange in seconds.
        """
        self._config = config
        self._http_client = http_client
        self._timeout = timeout

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Exchange refresh_token for a new TokenSet.

        Raises:
            RefreshRejected: If the refresh token was denied, or the provider
                answered with a challenge instead of tokens.
            RefreshUnavailable: On timeouts, transport errors, throttling, 5xx,
                or an unusable response.
        """
        try:
            data = await initiate_auth(
                self._config,
                "REFRESH_TOKEN_AUTH",
                {"REFRESH_TOKEN": refresh_token},
                http_client=self._http_client,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise RefreshUnavailable(f"Token refresh timed out: {e}") from e
        except httpx.HTTPError as e:
            raise RefreshUnavailable(f"HTTP error during token refresh: {e}") from e
        except CognitoServiceError as e:
            if e.error_type in REJECTION_ERROR_TYPES:
                raise RefreshRejected(
                    f"Refresh token rejected ({e.error_type}). Please log in again."
                ) from e
            raise RefreshUnavailable(f"Token refresh failed: {e}") from e

        result = data.get("AuthenticationResult")
        if not isinstance(result, dict):
            # A challenge (e.g. NEW_PASSWORD_REQUIRED) cannot be answered silently
            challenge = data.get("ChallengeName", "unknown")
            raise RefreshRejected(f"Token refresh returned a challenge ({challenge}) instead of tokens")

        try:
            return parse_authentication_result(result, refresh_token=refresh_token)
        except (KeyError, ValidationError) as e:
            raise RefreshUnavailable(f"Malformed token refresh response: {e}") from e
