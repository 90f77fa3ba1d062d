"""Profile commands for zik CLI.

Commands:
    profile show  - Show the logged-in user's profile
"""

from __future__ import annotations

__all__ = ["profile"]

from typing import TYPE_CHECKING

import click

from zik_client.utils.cli import load_config_or_exit, run_with_client

from ..styling import style_dim, style_header, style_label

if TYPE_CHECKING:
    from zik_client.client import ZikClient
    from zik_client.profile.models import UserProfile


@click.group()
def profile() -> None:
    """User profile commands."""
    pass


@profile.command()
@click.option("--refresh", is_flag=True, help="Bypass the profile cache")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON (API field names)")
@click.pass_context
def show(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """Show your profile."""
    config = load_config_or_exit(ctx)

    async def _get(client: "ZikClient") -> "UserProfile":
        return await client.get_profile(force_refresh=refresh)

    user_profile = run_with_client(config, _get)

    if as_json:
        click.echo(user_profile.model_dump_json(by_alias=True, indent=2))
        return

    click.echo(style_header("Profile"))
    click.echo(f"  {style_label('Display name')} {user_profile.display_name or style_dim('(not set)')}")
    click.echo(f"  {style_label('Username')} {user_profile.username}")
    click.echo(f"  {style_label('Email')} {user_profile.email}")
    click.echo(f"  {style_label('User ID')} {user_profile.user_id}")
    onboarding = "completed" if user_profile.onboarding_completed else "not completed"
    click.echo(f"  {style_label('Onboarding')} {onboarding}")
    if user_profile.created_at is not None:
        click.echo(f"  {style_label('Member since')} {user_profile.created_at.date().isoformat()}")

    prefs = user_profile.preferences
    click.echo()
    click.echo(style_header("Preferences"))
    click.echo(f"  {style_label('Theme')} {prefs.theme}")
    click.echo(f"  {style_label('Timezone')} {prefs.timezone}")
    click.echo(f"  {style_label('Language')} {prefs.language}")
    if prefs.quest_categories:
        click.echo(f"  {style_label('Quest categories')} {', '.join(prefs.quest_categories)}")
