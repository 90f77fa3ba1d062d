"""Shared CLI utility functions.

Commands are synchronous click callbacks; the client is async. These helpers
load the configuration, set up logging, run one coroutine against a fresh
ZikClient and turn client errors into click errors.
"""

from __future__ import annotations

__all__ = [
    "get_config_path_option",
    "load_config_or_exit",
    "run_with_client",
]

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import click

from zik_client.client import ZikClient
from zik_client.config import ClientConfig, load_client_config
from zik_client.constants import SYSTEM_LOG_FILENAME
from zik_client.exceptions import (
    ConfigurationError,
    LoginFailed,
    NetworkUnavailable,
    SessionExpired,
    StorageFailure,
    Unauthenticated,
    ZikClientError,
)
from zik_client.telemetry.system.system_logger import (
    configure_system_logger_file,
    set_console_level,
)

T = TypeVar("T")


def get_config_path_option(ctx: click.Context) -> Path | None:
    """Config path passed to the top-level --config option, if any."""
    root = ctx.find_root()
    if root.obj is None:
        return None
    return root.obj.get("config_path")


def load_config_or_exit(ctx: click.Context) -> ClientConfig:
    """Load the client configuration and set up logging, exiting on failure.

    Returns:
        ClientConfig instance.

    Raises:
        click.ClickException: If config not found or invalid.
    """
    try:
        config = load_client_config(get_config_path_option(ctx))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    set_console_level(config.logging.log_level)
    configure_system_logger_file(
        config.logging.resolved_log_dir / SYSTEM_LOG_FILENAME,
        level=logging.WARNING,
    )
    return config


def run_with_client(config: ClientConfig, action: Callable[[ZikClient], Awaitable[T]]) -> T:
    """Run action against a ZikClient built from config.

    Args:
        config: Client configuration.
        action: Coroutine function receiving the client.

    Returns:
        Whatever action returns.

    Raises:
        click.ClickException: For every client error, with a next step.
    """

    async def _run() -> T:
        async with ZikClient(config) as client:
            return await action(client)

    try:
        return asyncio.run(_run())
    except SessionExpired as e:
        raise click.ClickException("Session expired. Run 'zik auth login' to log in again.") from e
    except Unauthenticated as e:
        raise click.ClickException(f"{e}. Run 'zik auth login' to authenticate.") from e
    except LoginFailed as e:
        raise click.ClickException(f"Login failed: {e}") from e
    except NetworkUnavailable as e:
        raise click.ClickException(f"Network unavailable: {e}\nYour session was kept; try again later.") from e
    except StorageFailure as e:
        raise click.ClickException(f"Credential storage failed: {e}") from e
    except ZikClientError as e:
        raise click.ClickException(str(e)) from e
