"""Init command for zik CLI.

Creates the client configuration (API endpoint, Cognito app client,
credential storage, logging) at the OS-appropriate location.
"""

from __future__ import annotations

__all__ = ["init"]

from pathlib import Path

import click
from pydantic import ValidationError

from zik_client.config import (
    DEFAULT_LOG_DIR,
    ClientConfig,
    CognitoConfig,
    LoggingConfig,
    StorageConfig,
    get_config_path,
)
from zik_client.constants import DEFAULT_AWS_REGION, STORAGE_BACKENDS
from zik_client.utils.cli import get_config_path_option

from ..styling import style_dim, style_success, style_warning


def _validate_base_url(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is not None and not value.startswith(("https://", "http://")):
        raise click.BadParameter("must start with https:// (or http:// for local development)")
    return value.rstrip("/") if value else value


@click.command()
@click.option(
    "--api-base-url",
    prompt="API base URL",
    callback=_validate_base_url,
    help="Base URL of the Zik API (e.g., https://api.zik.app)",
)
@click.option("--client-id", prompt="Cognito app client ID", help="Cognito user pool app client ID")
@click.option(
    "--region",
    default=DEFAULT_AWS_REGION,
    show_default=True,
    help="AWS region of the Cognito user pool",
)
@click.option("--user-pool-id", help="Cognito user pool ID (informational)")
@click.option(
    "--storage",
    type=click.Choice(list(STORAGE_BACKENDS), case_sensitive=False),
    default="auto",
    show_default=True,
    help="Credential storage: keychain, encrypted_file, memory, or auto",
)
@click.option("--log-dir", help=f"Log directory path (default: {DEFAULT_LOG_DIR})")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Console logging verbosity",
)
@click.option("--force", is_flag=True, help="Overwrite existing config without prompting")
@click.pass_context
def init(
    ctx: click.Context,
    api_base_url: str,
    client_id: str,
    region: str,
    user_pool_id: str | None,
    storage: str,
    log_dir: str | None,
    log_level: str,
    force: bool,
) -> None:
    """Initialize client configuration.

    Creates configuration at the OS-appropriate location:
    - macOS: ~/Library/Application Support/zik-client/
    - Linux: ~/.config/zik-client/
    - Windows: %APPDATA%/zik-client/

    Use --config on the main command to write somewhere else.
    """
    config_path: Path = get_config_path_option(ctx) or get_config_path()

    if config_path.exists() and not force:
        click.echo(style_warning(f"Configuration already exists at {config_path}"))
        if not click.confirm("Overwrite it?", default=False):
            click.echo(style_dim("Aborted. Existing configuration kept."))
            return

    try:
        config = ClientConfig(
            api_base_url=api_base_url,
            cognito=CognitoConfig(region=region, client_id=client_id, user_pool_id=user_pool_id),
            storage=StorageConfig(backend=storage.lower()),
            logging=LoggingConfig(
                log_dir=log_dir or DEFAULT_LOG_DIR,
                log_level=log_level.upper(),
            ),
        )
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    try:
        config.save_to_file(config_path)
    except OSError as e:
        raise click.ClickException(f"Failed to save configuration: {e}") from e

    click.echo(style_success(f"Configuration saved to {config_path}"))
    click.echo(f"  API: {config.api_base_url}")
    click.echo(f"  Identity provider: {config.cognito.endpoint}")
    click.echo(f"  Credential storage: {config.storage.backend}")
    click.echo()
    click.echo("Run 'zik auth login' to authenticate.")
