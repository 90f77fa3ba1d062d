"""Authentication primitives.

This module provides:
- Token set model and credential store (one atomic storage entry)
- Cognito InitiateAuth client shared by login and refresh
- Token refresh with rejected/unavailable failure split
- ID token decoding for display and session bookkeeping
"""

from zik_client.security.auth.login import login_with_password
from zik_client.security.auth.token_parser import (
    UserIdentity,
    decode_identity,
    parse_authentication_result,
)
from zik_client.security.auth.token_refresh import (
    CognitoTokenRefresher,
    TokenRefresher,
)
from zik_client.security.auth.token_storage import (
    CredentialStore,
    TokenSet,
    new_session_id,
)

__all__ = [
    # Token storage
    "CredentialStore",
    "TokenSet",
    "new_session_id",
    # Refresh
    "CognitoTokenRefresher",
    "TokenRefresher",
    # Login
    "login_with_password",
    # Parsing
    "UserIdentity",
    "decode_identity",
    "parse_authentication_result",
]
