"""Username/password login (Cognito USER_PASSWORD_AUTH).

Creates the token set of a new session. Persisting it is the caller's job
(see ZikClient.login).
"""

from __future__ import annotations

__all__ = [
    "LOGIN_REJECTION_MESSAGES",
    "login_with_password",
]

from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from zik_client.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from zik_client.exceptions import LoginFailed, NetworkUnavailable
from zik_client.security.auth.cognito import CognitoServiceError, initiate_auth
from zik_client.security.auth.token_parser import parse_authentication_result
from zik_client.security.auth.token_storage import TokenSet

if TYPE_CHECKING:
    from zik_client.config import CognitoConfig

# User-facing messages for provider errors that mean "not with these credentials"
LOGIN_REJECTION_MESSAGES: dict[str, str] = {
    "NotAuthorizedException": "Incorrect username or password.",
    "UserNotFoundException": "Incorrect username or password.",
    "UserNotConfirmedException": "Account is not confirmed yet. Check your email for the code.",
    "PasswordResetRequiredException": "A password reset is required for this account.",
}


async def login_with_password(
    config: "CognitoConfig",
    username: str,
    password: str,
    *,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
) -> TokenSet:
    """Authenticate with username and password.

    Args:
        config: User pool settings.
        username: User name or email.
        password: Password.
        http_client: Optional shared client.
        timeout: Request timeout in seconds.

    Returns:
        TokenSet of a brand-new session.

    Raises:
        LoginFailed: If the credentials were rejected or a challenge was required.
        NetworkUnavailable: On timeouts, transport errors, or provider outages.
    """
    try:
        data = await initiate_auth(
            config,
            "USER_PASSWORD_AUTH",
            {"USERNAME": username, "PASSWORD": password},
            http_client=http_client,
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        raise NetworkUnavailable(f"Could not reach the identity provider: {e}") from e
    except CognitoServiceError as e:
        if e.error_type in LOGIN_REJECTION_MESSAGES:
            raise LoginFailed(LOGIN_REJECTION_MESSAGES[e.error_type]) from e
        if e.status_code >= 500 or e.error_type == "TooManyRequestsException":
            raise NetworkUnavailable(f"Identity provider unavailable: {e}") from e
        raise LoginFailed(f"Login failed: {e.message}") from e

    result = data.get("AuthenticationResult")
    if not isinstance(result, dict):
        challenge = data.get("ChallengeName", "unknown")
        raise LoginFailed(f"Login requires an unsupported challenge: {challenge}")

    try:
        return parse_authentication_result(result)
    except (KeyError, ValidationError) as e:
        raise LoginFailed(f"Identity provider returned incomplete tokens: {e}") from e
