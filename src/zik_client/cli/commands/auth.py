"""Authentication commands for zik CLI.

Commands:
    auth login   - Log in with username and password
    auth logout  - Clear stored credentials
    auth status  - Show session status
"""

from __future__ import annotations

__all__ = ["auth"]

import json as json_module
from typing import TYPE_CHECKING, Any

import click

from zik_client.exceptions import Unauthenticated
from zik_client.security.auth.token_parser import decode_identity
from zik_client.security.storage import get_storage_info
from zik_client.utils.cli import load_config_or_exit, run_with_client

from ..styling import format_duration, style_dim, style_header, style_label, style_success

if TYPE_CHECKING:
    from zik_client.client import ZikClient
    from zik_client.security.auth.token_parser import UserIdentity


@click.group()
def auth() -> None:
    """Authentication commands."""
    pass


@auth.command()
@click.option("--username", prompt="Username or email", help="Username or email address")
@click.pass_context
def login(ctx: click.Context, username: str) -> None:
    """Log in with your Zik account.

    The password is always prompted (never passed as a flag). Tokens are
    stored in your OS keychain, or in an encrypted file when no keychain
    is available.
    """
    config = load_config_or_exit(ctx)
    password = click.prompt("Password", hide_input=True)

    async def _login(client: "ZikClient") -> tuple["UserIdentity", dict[str, str]]:
        identity = await client.login(username, password)
        return identity, get_storage_info(client.store.storage)

    identity, storage_info = run_with_client(config, _login)

    click.echo(click.style(style_success("Login successful!"), bold=True))
    click.echo()
    click.echo(f"  Logged in as: {identity.email or identity.user_name or identity.user_id}")
    click.echo(f"  Token stored in: {storage_info['backend']}")


@auth.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Clear stored credentials.

    You will need to run 'zik auth login' again to use the API.
    """
    config = load_config_or_exit(ctx)

    async def _logout(client: "ZikClient") -> bool:
        if not await client.is_authenticated():
            return False
        await client.logout()
        return True

    if not run_with_client(config, _logout):
        click.echo(style_dim("No stored credentials found."))
        return

    click.echo(style_success("Local credentials cleared."))
    click.echo()
    click.echo("Run 'zik auth login' to authenticate again.")


@auth.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show authentication status.

    Displays session state, user info, token expiry and storage backend.
    Reads local state only; nothing is sent to the API.
    """
    config = load_config_or_exit(ctx)

    async def _status(client: "ZikClient") -> dict[str, Any]:
        result: dict[str, Any] = {
            "authenticated": False,
            "status": "not_authenticated",
            "storage": get_storage_info(client.store.storage),
        }
        token = await client.store.load()
        if token is None:
            return result

        result["authenticated"] = True
        result["session_id"] = token.session_id
        result["token"] = {
            "issued_at": token.issued_at.isoformat(),
            "expires_in_seconds": token.seconds_until_expiry,
        }
        # An expired access token is fine: the next request refreshes it
        result["status"] = "access_token_expired" if token.is_expired else "authenticated"

        try:
            identity = decode_identity(token.id_token)
            result["user"] = identity.model_dump()
        except Unauthenticated:
            pass  # Display only

        return result

    result = run_with_client(config, _status)

    if as_json:
        click.echo(json_module.dumps(result, indent=2))
        return

    _print_status_formatted(result)


def _print_status_formatted(result: dict[str, Any]) -> None:
    """Print auth status in human-readable format."""
    storage_info = result["storage"]
    click.echo(style_header("Storage"))
    click.echo(f"  {style_label('Backend')} {storage_info['backend']}")
    if "keyring_backend" in storage_info:
        click.echo(f"  {style_label('Keyring')} {storage_info['keyring_backend']}")
    if "location" in storage_info:
        click.echo(f"  {style_label('Location')} {storage_info['location']}")
    click.echo()

    if not result["authenticated"]:
        click.echo(click.style("Status: Not authenticated", fg="yellow"))
        click.echo()
        click.echo("Run 'zik auth login' to authenticate.")
        return

    click.echo(style_header("Session"))
    if result["status"] == "access_token_expired":
        click.echo(click.style("  Status: Authenticated (access token expired, refreshes on next request)", fg="yellow"))
    else:
        click.echo(click.style("  Status: Authenticated", fg="green"))

    user = result.get("user")
    if user:
        click.echo(f"  {style_label('User')} {user.get('email') or user.get('user_name') or user['user_id']}")
        click.echo(f"  {style_label('User ID')} {user['user_id']}")

    expires_in = result["token"]["expires_in_seconds"]
    if expires_in is not None:
        label = "Expired" if expires_in < 0 else "Expires in"
        click.echo(f"  {style_label(label)} {format_duration(expires_in)}")
