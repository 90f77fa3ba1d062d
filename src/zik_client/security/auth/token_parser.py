"""Shared token response parsing.

Turns Cognito's AuthenticationResult (returned by both the password login
and the refresh exchange) into a TokenSet, and reads the user's claims out
of an ID token.
"""

from __future__ import annotations

__all__ = [
    "UserIdentity",
    "decode_identity",
    "parse_authentication_result",
]

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from pydantic import BaseModel

from zik_client.constants import DEFAULT_TOKEN_LIFETIME_SECONDS
from zik_client.exceptions import Unauthenticated
from zik_client.security.auth.token_storage import TokenSet


class UserIdentity(BaseModel):
    """User claims from the ID token.

    Attributes:
        user_id: Subject ("sub") claim.
        user_name: "name" claim (may be empty).
        email: "email" claim (may be empty).
    """

    user_id: str
    user_name: str = ""
    email: str = ""


def parse_authentication_result(
    result: dict[str, Any],
    refresh_token: str | None = None,
) -> TokenSet:
    """Parse a Cognito AuthenticationResult into a TokenSet.

    Handles the standard fields:
    - AccessToken, IdToken (required)
    - RefreshToken (optional - absent on refresh responses)
    - TokenType (optional, default "Bearer")
    - ExpiresIn (optional, default 1h)

    Args:
        result: The AuthenticationResult object.
        refresh_token: Refresh token to keep when the result has none.

    Returns:
        TokenSet with a fresh session_id (callers refreshing an existing
        session carry the old session_id over).

    Raises:
        KeyError: If AccessToken or IdToken is missing.
        pydantic.ValidationError: If a credential is empty.
    """
    now = datetime.now(timezone.utc)
    expires_in = int(result.get("ExpiresIn") or DEFAULT_TOKEN_LIFETIME_SECONDS)

    return TokenSet(
        access_token=result["AccessToken"],
        id_token=result["IdToken"],
        refresh_token=result.get("RefreshToken") or refresh_token or "",
        token_type=result.get("TokenType") or "Bearer",
        issued_at=now,
        expires_at=now + timedelta(seconds=expires_in),
    )


def decode_identity(id_token: str) -> UserIdentity:
    """Read user claims from an ID token without verifying its signature.

    The token came straight from the identity provider over TLS and is only
    used for display and session bookkeeping; the API verifies every access
    token on its side.

    Raises:
        Unauthenticated: If the token cannot be decoded or has no subject.
    """
    try:
        claims = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise Unauthenticated(f"Stored ID token is not decodable: {e}") from e

    subject = claims.get("sub")
    if not subject:
        raise Unauthenticated("Stored ID token has no subject claim")

    return UserIdentity(
        user_id=str(subject),
        user_name=str(claims.get("name") or ""),
        email=str(claims.get("email") or ""),
    )
