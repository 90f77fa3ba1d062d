"""Application-wide constants for zik-client.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    # Directories
    "USER_CONFIG_DIR",
    "CONFIG_FILENAME",
    # HTTP
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    "MIN_HTTP_TIMEOUT_SECONDS",
    "MAX_HTTP_TIMEOUT_SECONDS",
    "DEFAULT_REFRESH_TIMEOUT_SECONDS",
    "AUTHORIZATION_FAILURE_STATUS",
    # Identity provider
    "DEFAULT_AWS_REGION",
    "COGNITO_TARGET_PREFIX",
    "COGNITO_CONTENT_TYPE",
    "DEFAULT_TOKEN_LIFETIME_SECONDS",
    # Storage
    "STORAGE_BACKENDS",
    "TOKEN_STORAGE_KEY",
    "ENCRYPTED_FILE_SUFFIX",
    # Profile cache
    "CACHE_DURATION_SECONDS",
    "PROFILE_ENDPOINT",
    # Logging
    "SYSTEM_LOG_FILENAME",
    "AUTH_LOG_FILENAME",
]

import os

from platformdirs import user_config_dir

# ============================================================================
# Application Identity
# ============================================================================

# Application name used for directory names, keyring service names, etc.
APP_NAME: str = "zik-client"

# ============================================================================
# Directories
# ============================================================================

# OS-specific config directory, also the default home of encrypted token files.
# - macOS: ~/Library/Application Support/zik-client/
# - Linux: ~/.config/zik-client/
# - Windows: %APPDATA%\zik-client\
USER_CONFIG_DIR: str = os.path.realpath(user_config_dir(APP_NAME))

CONFIG_FILENAME: str = "config.json"

# ============================================================================
# HTTP
# ============================================================================

# Default per-request timeout (matches the mobile app's 10s axios timeout)
DEFAULT_HTTP_TIMEOUT_SECONDS: float = 10.0

MIN_HTTP_TIMEOUT_SECONDS: float = 1.0
MAX_HTTP_TIMEOUT_SECONDS: float = 300.0  # 5 minutes

# Upper bound for one refresh exchange. A refresh that takes longer is
# reported as RefreshUnavailable so a slow network never destroys a session.
DEFAULT_REFRESH_TIMEOUT_SECONDS: float = 10.0

# The one status code that triggers refresh-and-replay
AUTHORIZATION_FAILURE_STATUS: int = 401

# ============================================================================
# Identity Provider (AWS Cognito user pool)
# ============================================================================

DEFAULT_AWS_REGION: str = "us-east-1"

# X-Amz-Target prefix for Cognito user-pool JSON API operations
COGNITO_TARGET_PREFIX: str = "AWSCognitoIdentityProviderService"

COGNITO_CONTENT_TYPE: str = "application/x-amz-json-1.1"

# Used when the identity provider omits ExpiresIn (Cognito default is 1h)
DEFAULT_TOKEN_LIFETIME_SECONDS: int = 3600

# ============================================================================
# Storage
# ============================================================================

STORAGE_BACKENDS: tuple[str, ...] = ("auto", "keychain", "encrypted_file", "memory")

# Single key holding the whole token set (one write = atomic persistence)
TOKEN_STORAGE_KEY: str = "auth_tokens"

ENCRYPTED_FILE_SUFFIX: str = ".enc"

# ============================================================================
# Profile Cache
# ============================================================================

# Profile data is served from memory for at most 30 minutes
CACHE_DURATION_SECONDS: int = 30 * 60

PROFILE_ENDPOINT: str = "/profile"

# ============================================================================
# Logging
# ============================================================================

SYSTEM_LOG_FILENAME: str = "system.jsonl"
AUTH_LOG_FILENAME: str = "auth.jsonl"
