"""Minimal Cognito user-pool client for InitiateAuth.

Both the password login and the refresh exchange are one unauthenticated
JSON call to the regional user-pool endpoint:

    POST https://cognito-idp.<region>.amazonaws.com/
    X-Amz-Target: AWSCognitoIdentityProviderService.InitiateAuth
    Content-Type: application/x-amz-json-1.1
    {"AuthFlow": "...", "ClientId": "...", "AuthParameters": {...}}

Errors come back as JSON with a "__type" naming the exception class
(e.g. "NotAuthorizedException") and a "message".
"""

from __future__ import annotations

__all__ = [
    "CognitoServiceError",
    "initiate_auth",
]

import json
from typing import TYPE_CHECKING, Any

import httpx

from zik_client.constants import (
    COGNITO_CONTENT_TYPE,
    COGNITO_TARGET_PREFIX,
    DEFAULT_REFRESH_TIMEOUT_SECONDS,
)

if TYPE_CHECKING:
    from zik_client.config import CognitoConfig


class CognitoServiceError(Exception):
    """Cognito answered with an error document (or an unusable body).

    Attributes:
        error_type: Exception name without namespace (e.g. "NotAuthorizedException").
        message: Provider message.
        status_code: HTTP status of the response.
    """

    def __init__(self, error_type: str, message: str, status_code: int) -> None:
        super().__init__(f"{error_type}: {message}")
        self.error_type = error_type
        self.message = message
        self.status_code = status_code


def _parse_error(response: httpx.Response) -> CognitoServiceError:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        data = {}
    if not isinstance(data, dict):
        data = {}

    # "__type" may be namespaced: "com.amazon...#NotAuthorizedException"
    error_type = str(data.get("__type") or f"HTTP{response.status_code}").split("#")[-1]
    message = str(data.get("message") or data.get("Message") or response.reason_phrase)
    return CognitoServiceError(error_type, message, response.status_code)


async def initiate_auth(
    config: "CognitoConfig",
    auth_flow: str,
    auth_parameters: dict[str, str],
    *,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_REFRESH_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """Call Cognito InitiateAuth.

    Args:
        config: User pool settings.
        auth_flow: "USER_PASSWORD_AUTH" or "REFRESH_TOKEN_AUTH".
        auth_parameters: Flow parameters (USERNAME/PASSWORD or REFRESH_TOKEN).
        http_client: Optional client (for testing / connection reuse).
        timeout: Request timeout in seconds.

    Returns:
        The decoded response document.

    Raises:
        CognitoServiceError: On an error response or an unparseable body.
        httpx.HTTPError: On transport errors and timeouts.
    """
    client = http_client or httpx.AsyncClient(timeout=timeout)
    owns_client = http_client is None

    try:
        response = await client.post(
            config.endpoint,
            content=json.dumps(
                {
                    "AuthFlow": auth_flow,
                    "ClientId": config.client_id,
                    "AuthParameters": auth_parameters,
                }
            ),
            headers={
                "Content-Type": COGNITO_CONTENT_TYPE,
                "X-Amz-Target": f"{COGNITO_TARGET_PREFIX}.InitiateAuth",
            },
            timeout=timeout,
        )

        if response.status_code != 200:
            raise _parse_error(response)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CognitoServiceError("InvalidResponse", f"Response is not JSON: {e}", 200) from e
        if not isinstance(data, dict):
            raise CognitoServiceError("InvalidResponse", "Response is not a JSON object", 200)
        return data

    finally:
        if owns_client:
            await client.aclose()
