"""Application configuration for zik-client.

Defines configuration models for the API endpoint, the Cognito user pool,
token storage, timeouts, the profile cache and logging. Users create the
config via `zik init`; it is stored as JSON in the OS-appropriate app
directory (via click.get_app_dir).

Example usage:
    # Load from config file
    config = ClientConfig.load_from_file(config_path)

    # Save new configuration
    config.save_to_file(config_path)
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_LOG_DIR",
    "ClientConfig",
    "CognitoConfig",
    "LoggingConfig",
    "StorageConfig",
    "get_config_path",
    "load_client_config",
]

import json
import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from zik_client.constants import (
    APP_NAME,
    CACHE_DURATION_SECONDS,
    CONFIG_FILENAME,
    DEFAULT_AWS_REGION,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_REFRESH_TIMEOUT_SECONDS,
    MAX_HTTP_TIMEOUT_SECONDS,
    MIN_HTTP_TIMEOUT_SECONDS,
    USER_CONFIG_DIR,
)
from zik_client.exceptions import ConfigurationError
from zik_client.utils.file_helpers import (
    get_app_dir,
    load_validated_json,
    require_file_exists,
    set_secure_permissions,
)


def _get_platform_log_dir() -> str:
    """Get platform-appropriate base log directory following OS conventions.

    Platform conventions:
        - macOS: ~/Library/Logs
        - Linux: $XDG_STATE_HOME or ~/.local/state
        - Windows: ~/AppData/Local
    """
    if sys.platform == "darwin":
        return "~/Library/Logs"
    elif sys.platform == "win32":
        return "~/AppData/Local"
    else:
        return os.environ.get("XDG_STATE_HOME", "~/.local/state")


# Default base log directory; logs go in <base>/zik-client/
DEFAULT_LOG_DIR = _get_platform_log_dir()


class CognitoConfig(BaseModel):
    """Cognito user pool settings used for login and token refresh.

    Attributes:
        region: AWS region hosting the user pool.
        client_id: App client ID (public client, no secret).
        user_pool_id: User pool ID (informational; InitiateAuth only needs the client ID).
    """

    region: str = Field(default=DEFAULT_AWS_REGION, min_length=1)
    client_id: str = Field(min_length=1)
    user_pool_id: str | None = None

    @property
    def endpoint(self) -> str:
        """Regional Cognito user-pool API endpoint."""
        return f"https://cognito-idp.{self.region}.amazonaws.com/"


class StorageConfig(BaseModel):
    """Where the token set is persisted.

    Attributes:
        backend: "auto" (keychain if usable, else encrypted file), "keychain",
            "encrypted_file", or "memory" (nothing survives the process).
        directory: Directory for encrypted token files (default: user config dir).
    """

    backend: Literal["auto", "keychain", "encrypted_file", "memory"] = "auto"
    directory: str | None = None

    @property
    def resolved_directory(self) -> Path:
        """Directory for encrypted files, with ~ expanded."""
        if self.directory:
            return Path(self.directory).expanduser()
        return Path(USER_CONFIG_DIR)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        log_dir: Base directory; files go in <log_dir>/zik-client/.
        log_level: Console level for the system logger.
        auth_log: Whether to write auth.jsonl.
    """

    log_dir: str = Field(default=DEFAULT_LOG_DIR, min_length=1)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    auth_log: bool = True

    @property
    def resolved_log_dir(self) -> Path:
        """<log_dir>/zik-client with ~ expanded."""
        return Path(self.log_dir).expanduser() / APP_NAME


class ClientConfig(BaseModel):
    """Main configuration for the access layer.

    Attributes:
        api_base_url: Base URL of the Zik API.
        cognito: Identity provider settings.
        request_timeout_seconds: Timeout for each API request and replay.
        refresh_timeout_seconds: Timeout for one refresh exchange.
        profile_cache_ttl_seconds: How long a fetched profile is served from memory.
        proactive_refresh: Refresh before sending when the stored token is past expiry.
        storage: Token storage settings.
        logging: Logging settings.
    """

    api_base_url: str = Field(min_length=1)
    cognito: CognitoConfig
    request_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )
    refresh_timeout_seconds: float = Field(
        default=DEFAULT_REFRESH_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )
    profile_cache_ttl_seconds: int = Field(default=CACHE_DURATION_SECONDS, ge=1)
    proactive_refresh: bool = True
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "ClientConfig":
        """Load and validate configuration from a JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            Validated ClientConfig.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not valid JSON or fails validation.
        """
        require_file_exists(config_path, file_type="configuration")
        return load_validated_json(
            config_path,
            cls,
            file_type="config",
            recovery_hint="Fix the file or re-run 'zik init'.",
        )

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to JSON file.

        Creates parent directories if they don't exist, with owner-only
        permissions on the directory (0o700) and file (0o600).

        Args:
            config_path: Path where the config JSON file should be saved.
        """
        config_path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(config_path.parent, is_directory=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(), f, indent=2)

        set_secure_permissions(config_path)


def get_config_path() -> Path:
    """Default config file location (<app dir>/config.json)."""
    return get_app_dir() / CONFIG_FILENAME


def load_client_config(config_path: Path | None = None) -> ClientConfig:
    """Load the client config, translating file problems to ConfigurationError.

    Args:
        config_path: Config file (default: get_config_path()).

    Returns:
        Validated ClientConfig.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    path = config_path or get_config_path()
    try:
        return ClientConfig.load_from_file(path)
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(str(e)) from e
