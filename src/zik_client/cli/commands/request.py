"""Raw authenticated request command for zik CLI.

Sends one request through the same pipeline the app uses (bearer header,
refresh-and-replay on 401), which makes it handy for checking a session.
"""

from __future__ import annotations

__all__ = ["request"]

import json as json_module
import sys
from typing import TYPE_CHECKING, Any

import click
import httpx

from zik_client.utils.cli import load_config_or_exit, run_with_client

from ..styling import style_http_status

if TYPE_CHECKING:
    from zik_client.client import ZikClient

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _parse_data(ctx: click.Context, param: click.Parameter, value: str | None) -> Any:
    if value is None:
        return None
    try:
        return json_module.loads(value)
    except json_module.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}") from e


@click.command()
@click.argument("method", type=click.Choice(HTTP_METHODS, case_sensitive=False))
@click.argument("path")
@click.option("--data", callback=_parse_data, help="JSON request body")
@click.pass_context
def request(ctx: click.Context, method: str, path: str, data: Any) -> None:
    """Send an authenticated request to the API.

    PATH is relative to the configured API base URL (e.g. /quests).
    Exits with status 1 when the API answers with an error status.
    """
    config = load_config_or_exit(ctx)

    async def _send(client: "ZikClient") -> httpx.Response:
        return await client.request(method.upper(), path, json=data)

    response = run_with_client(config, _send)

    click.echo(style_http_status(response.status_code, response.reason_phrase), err=True)
    try:
        click.echo(json_module.dumps(response.json(), indent=2))
    except (json_module.JSONDecodeError, UnicodeDecodeError):
        if response.text:
            click.echo(response.text)

    if response.is_error:
        sys.exit(1)
