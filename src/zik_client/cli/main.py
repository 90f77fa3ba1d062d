"""Main CLI entry point for zik.

Defines the CLI group and registers all subcommands.

Commands:
    auth     - Authentication commands (login, logout, status)
    init     - Initialize client configuration
    profile  - User profile (show)
    request  - Send an authenticated API request

Subcommand help:
    zik COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli"]

import sys
from pathlib import Path

import click

from zik_client import __version__

from .commands.auth import auth
from .commands.init import init
from .commands.profile import profile
from .commands.request import request


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  zik init --api-base-url https://api.zik.app --client-id <app-client-id>
  zik auth login                   Log in (password is prompted)
  zik profile show                 Check that the session works

Raw Requests:
  zik request GET /quests
  zik request POST /goals --data '{"title": "Run 5k"}'
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="ZIK_CONFIG",
    help="Config file to use (default: OS app config directory)",
)
@click.pass_context
def cli(ctx: click.Context, version: bool, config_path: Path | None) -> None:
    """zik: authenticated access to the Zik API."""
    if version:
        click.echo(f"zik-client {__version__}")
        sys.exit(0)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(auth)
cli.add_command(init)
cli.add_command(profile)
cli.add_command(request)


def main() -> None:
    """CLI entry point."""
    cli()
