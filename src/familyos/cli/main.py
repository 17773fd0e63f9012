"""
Main CLI entry point for FamilyOS.

Evaluates single access decisions for a member of a YAML roster and reads
back the encrypted audit trail.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional

import click

from ..core.config import Config
from ..core.exceptions import FamilyOSError, InvalidInputError
from ..core.logging import (
    clear_member_context,
    configure_logging,
    generate_session_id,
    set_member_context,
)
from ..features.parental_controls import (
    FamilyMember,
    ParentalControlService,
    create_parental_control_service,
    load_roster,
)
from ..features.security import SystemSecurityService


def _load_member(roster: Path, username: str) -> FamilyMember:
    try:
        members = load_roster(roster)
    except FamilyOSError as e:
        click.echo(f"Error loading roster: {e}", err=True)
        raise click.Abort()

    member = members.get(username)
    if member is None:
        click.echo(f"Unknown family member: {username}", err=True)
        raise click.Abort()

    return member


async def _run_decision(
    config: Config,
    member: FamilyMember,
    decide: Callable[[ParentalControlService], Awaitable[bool]],
) -> bool:
    set_member_context(member.id, generate_session_id())
    service = create_parental_control_service(config)
    await service.initialize()
    try:
        return await decide(service)
    finally:
        await service.shutdown()
        clear_member_context()


def _echo_decision(resource: str, member: FamilyMember, allowed: bool) -> None:
    verdict = "ALLOWED" if allowed else "BLOCKED"
    click.echo(f"{verdict}: {resource} for {member.display_name}")


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(
    ctx: click.Context, config_path: Optional[Path], verbose: bool, debug: bool
) -> None:
    """
    FamilyOS CLI

    Check parental-control decisions for family members and inspect the
    audit trail.
    """
    ctx.ensure_object(dict)

    try:
        config = Config.from_file(config_path) if config_path else Config()
    except FamilyOSError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()
    ctx.obj["config"] = config

    # Flags override the configured level
    if debug or config.debug:
        configure_logging("DEBUG", json_format=False)
    elif verbose:
        configure_logging("INFO", json_format=False)
    else:
        configure_logging(config.log_level, json_format=False)


@cli.command("check-app")
@click.argument("roster", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("username")
@click.argument("app")
@click.pass_context
def check_app(ctx: click.Context, roster: Path, username: str, app: str) -> None:
    """Check whether USERNAME may open APP."""
    member = _load_member(roster, username)
    allowed = asyncio.run(
        _run_decision(
            ctx.obj["config"],
            member,
            lambda service: service.can_access_app(member, app),
        )
    )
    _echo_decision(app, member, allowed)


@cli.command("check-url")
@click.argument("roster", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("username")
@click.argument("url")
@click.pass_context
def check_url(ctx: click.Context, roster: Path, username: str, url: str) -> None:
    """Check whether USERNAME may open URL."""
    member = _load_member(roster, username)
    try:
        allowed = asyncio.run(
            _run_decision(
                ctx.obj["config"],
                member,
                lambda service: service.can_access_url(member, url),
            )
        )
    except InvalidInputError as e:
        click.echo(f"Invalid URL: {e}", err=True)
        raise click.Abort()
    _echo_decision(url, member, allowed)


@cli.command("audit-log")
@click.option(
    "--since",
    help="ISO timestamp of the oldest event to show (default: 24 hours ago)",
)
@click.option(
    "--format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)
@click.pass_context
def audit_log(ctx: click.Context, since: Optional[str], format: str) -> None:
    """Decrypt and print persisted audit events."""
    if since:
        try:
            since_dt = datetime.fromisoformat(since)
        except ValueError:
            click.echo(f"Invalid --since timestamp: {since}", err=True)
            raise click.Abort()
    else:
        since_dt = datetime.now(timezone.utc) - timedelta(hours=24)

    security = SystemSecurityService(ctx.obj["config"])
    try:
        events = asyncio.run(security.get_activity_logs(since_dt))
    except FamilyOSError as e:
        click.echo(f"Error reading audit trail: {e}", err=True)
        raise click.Abort()

    if format == "json":
        click.echo(json.dumps([event.to_dict() for event in events], indent=2))
        return

    if not events:
        click.echo("No audit events found")
        return

    for event in events:
        click.echo(
            f"{event.timestamp.isoformat()} [{event.level.value}] "
            f"{event.member_id}: {event.activity} ({event.details})"
        )


if __name__ == "__main__":
    cli()
