"""Custom exceptions for zik-client.

This module contains all custom exceptions used throughout the package.
Exceptions are organized into three categories:

Session outcomes (surfaced to UI code):
    - Unauthenticated: No valid session, or a token stayed invalid after refresh
    - SessionExpired: Refresh credential rejected; session has been torn down
    - NetworkUnavailable: Transient failure; session preserved, retry later
    - StorageFailure: Persistence medium error

Refresh outcomes (internal to the request pipeline):
    - RefreshRejected: Identity provider denied the refresh credential
    - RefreshUnavailable: Refresh could not complete (network, 5xx, timeout)

Other:
    - LoginFailed, ApiError, ConfigurationError

Usage:
    from zik_client.exceptions import SessionExpired, Unauthenticated
"""

from __future__ import annotations

__all__ = [
    "ApiError",
    "ConfigurationError",
    "LoginFailed",
    "NetworkUnavailable",
    "RefreshRejected",
    "RefreshUnavailable",
    "SessionExpired",
    "StorageFailure",
    "TokenRefreshError",
    "Unauthenticated",
    "ZikClientError",
]


class ZikClientError(Exception):
    """Base exception for all zik-client errors."""


# =============================================================================
# Session outcomes (what UI code sees)
# =============================================================================


class Unauthenticated(ZikClientError):
    """No valid session is present.

    Raised when:
    - No token set is stored (user never logged in, or logged out)
    - A request was still rejected after one refresh-and-replay cycle

    Recovered by routing the user to login. Never retried automatically.
    """


class SessionExpired(Unauthenticated):
    """The refresh credential was rejected by the identity provider.

    Same user-visible outcome as Unauthenticated (and catchable as one), but
    distinguished because it is the outcome that clears stored credentials and
    triggers the logout broadcast.
    """


class NetworkUnavailable(ZikClientError):
    """Transient network failure during a request or a refresh.

    The session is preserved. Callers may retry the original operation later.
    """


class StorageFailure(ZikClientError):
    """The persistence medium failed (keychain, encrypted file, ...).

    Surfaced to the caller of save/load/clear. Does not trigger logout.
    """


# =============================================================================
# Refresh outcomes (translated by the request pipeline)
# =============================================================================


class TokenRefreshError(ZikClientError):
    """Token refresh failed."""


class RefreshRejected(TokenRefreshError):
    """Refresh credential expired or revoked - user must re-authenticate."""


class RefreshUnavailable(TokenRefreshError):
    """Refresh could not complete (timeout, network error, 5xx).

    The refresh credential may still be valid, so the session is kept.
    """


# =============================================================================
# Other errors
# =============================================================================


class LoginFailed(ZikClientError):
    """Credentials were rejected, or the identity provider asked for a challenge."""


class ApiError(ZikClientError):
    """A typed API helper received a non-success response.

    The request pipeline itself never raises this; it passes business errors
    through untouched. Helpers that need a parsed body (e.g. the profile
    fetch) raise it.

    Attributes:
        status_code: HTTP status code of the response.
        message: Error message from the response body, or the status line.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"API error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class ConfigurationError(ZikClientError):
    """Configuration is invalid or incomplete.

    Raised when:
    - Config file does not exist (not initialized)
    - Config file contains invalid JSON
    - Config file fails Pydantic validation
    """
