"""Maintenance commands for the church CMS backend.

Every command reads credentials through get_settings() (.env / environment);
nothing is passed or stored as a literal.

    python -m app.cli reconcile-profiles
    python -m app.cli purge-sessions --older-than-days 30
    python -m app.cli set-role --identity <uuid> --role admin
    python -m app.cli set-active --identity <uuid> --inactive
"""

import uuid
from datetime import timedelta

import click
from sqlmodel import Session

from app.core.auth import session_service
from app.core.errors import AccessError
from app.core.identity_provider import SupabaseIdentityProvider
from app.core.roles import Role
from app.database import engine
from app.repositories.profile_repo import ProfileRepository
from app.schemas.profile import ProfileRoleUpdate, ProfileStatusUpdate
from app.services.profile_service import ProfileService
from app.services.profile_sync_service import ProfileSyncService


def open_session() -> Session:
    return Session(engine)


def identity_source():
    return SupabaseIdentityProvider()


@click.group()
def cli():
    """Church CMS maintenance tools."""
    pass


@cli.command("reconcile-profiles")
def reconcile_profiles():
    """
    Create default profiles for identities that have none.

    Lists identities with the service role key, so SUPABASE_SERVICE_ROLE_KEY
    must be set.
    """
    with open_session() as db:
        report = ProfileSyncService(ProfileRepository()).reconcile(db, identity_source())

    click.echo(f"Checked {report.checked} identities")
    click.echo(f"Created {len(report.created)} profiles")
    for identity in report.created:
        click.echo(f"  + {identity}")
    if report.failed:
        click.echo(f"Failed {len(report.failed)} (will retry on next run)")
        for identity in report.failed:
            click.echo(f"  ! {identity}")
    if report.unresolved_sessions:
        click.echo(f"{len(report.unresolved_sessions)} session identities unknown to the provider")
        for identity in report.unresolved_sessions:
            click.echo(f"  ? {identity}")


@cli.command("purge-sessions")
@click.option("--older-than-days", default=30, show_default=True, type=click.IntRange(min=0))
def purge_sessions(older_than_days: int):
    """Delete sessions that expired or were revoked more than N days ago."""
    with open_session() as db:
        removed = session_service.purge(db, timedelta(days=older_than_days))
    click.echo(f"Purged {removed} sessions")


@cli.command("set-role")
@click.option("--identity", "identity", required=True, type=click.UUID, help="Profile identity (auth user id)")
@click.option(
    "--role",
    required=True,
    type=click.Choice([Role.MEMBER.value, Role.ADMIN.value]),
    help="New role",
)
def set_role(identity: uuid.UUID, role: str):
    """Change a profile's role (bootstrap the first admin with this)."""
    with open_session() as db:
        try:
            profile = ProfileService(ProfileRepository()).update_role(
                db, identity, ProfileRoleUpdate(role=Role(role))
            )
        except AccessError as exc:
            raise click.ClickException(f"No profile for {identity}; run reconcile-profiles first") from exc
        click.echo(f"{profile.id} is now {profile.role}")


@cli.command("set-active")
@click.option("--identity", "identity", required=True, type=click.UUID, help="Profile identity (auth user id)")
@click.option("--active/--inactive", default=True, help="Activate or deactivate")
def set_active(identity: uuid.UUID, active: bool):
    """Activate or deactivate a profile."""
    with open_session() as db:
        try:
            profile = ProfileService(ProfileRepository()).set_active(
                db, identity, ProfileStatusUpdate(is_active=active)
            )
        except AccessError as exc:
            raise click.ClickException(f"No profile for {identity}") from exc
        state = "active" if profile.is_active else "inactive"
        click.echo(f"{profile.id} is now {state}")


if __name__ == "__main__":
    cli()
