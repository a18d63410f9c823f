"""
Local setup commands, run with ``flask --app wsgi <command>``.

In production profiles and access tokens come from the hosted auth
service. For a local ``sql`` backend these commands create the first
administrator and mint a development token for it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import click
import jwt
from flask import Flask, current_app

from .errors import TeamboardError
from .extension import get_services
from .validation import validate_role


def issue_dev_token(profile_id: str, expires_in: timedelta = timedelta(hours=12)) -> str:
    """Sign an access token for ``profile_id`` with the configured secret."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": profile_id,
        "aud": current_app.config["JWT_AUDIENCE"],
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, current_app.config["SUPABASE_JWT_SECRET"], algorithm="HS256")


@click.command("add-profile")
@click.argument("name")
@click.option("--role", default="user", show_default=True, help="user, manager or admin")
@click.option("--phone", default=None, help="Optional contact number")
@click.option("--id", "profile_id", default=None, help="Reuse an existing auth user id")
def add_profile_command(name: str, role: str, phone: str | None, profile_id: str | None) -> None:
    """Create a team member profile."""
    try:
        profile = asyncio.run(
            get_services().profiles.create(
                name, role=validate_role(role), phone=phone, profile_id=profile_id
            )
        )
    except TeamboardError as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(f"Created {profile.role.value} profile {profile.name} ({profile.id})")


@click.command("dev-token")
@click.argument("profile_id")
@click.option("--hours", default=12, show_default=True, type=int)
def dev_token_command(profile_id: str, hours: int) -> None:
    """Print a development access token for PROFILE_ID."""
    click.echo(issue_dev_token(profile_id, timedelta(hours=hours)))


def register_commands(app: Flask) -> None:
    app.cli.add_command(add_profile_command)
    app.cli.add_command(dev_token_command)
