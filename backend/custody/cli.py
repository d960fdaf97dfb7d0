# Overview: Flask CLI command groups for bootstrap, user inspection, and maintenance.

# backend/custody/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables and, if BOOTSTRAP_ADMIN_USERNAME / BOOTSTRAP_ADMIN_PASSWORD
#   are set and no admin exists yet, the first ADMIN user. Idempotent.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role, tag and active status.
# - python -m flask users create --username jdoe --password "s3cret" --name "Jane Doe" --tag U001 [--role ADMIN]
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired session rows.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import CustodyError
from .extensions import db
from .models import ROLES, ROLE_USER, User
from .services import session_service, user_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and the bootstrap admin.

    The admin is only created when BOOTSTRAP_ADMIN_USERNAME and
    BOOTSTRAP_ADMIN_PASSWORD are configured and no active ADMIN exists.
    """
    click.echo("START Initializing custody ledger...")
    db.create_all()
    click.echo("PASS Tables ready")

    username = current_app.config.get("BOOTSTRAP_ADMIN_USERNAME")
    password = current_app.config.get("BOOTSTRAP_ADMIN_PASSWORD")
    if not username or not password:
        click.echo("SKIP No bootstrap admin configured (BOOTSTRAP_ADMIN_USERNAME / BOOTSTRAP_ADMIN_PASSWORD)")
        return

    try:
        user, created = user_service.ensure_bootstrap_admin(
            username, password, current_app.config.get("BOOTSTRAP_ADMIN_TAG", "ADMIN001")
        )
    except CustodyError as e:
        click.echo(f"FAIL Could not create bootstrap admin: {e.message}")
        raise click.exceptions.Exit(1)

    if created:
        click.echo(f"PASS Created admin: {user.username} (ID: {user.id})")
    else:
        click.echo(f"PASS Admin already present: {user.username} (ID: {user.id})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', prompt=True, help='Display name')
@click.option('--tag', 'user_tag_id', prompt=True, help='User tag id (badge)')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), default=ROLE_USER, show_default=True)
@with_appcontext
def create_user_cli(username, password, name, user_tag_id, role):
    """Create a user. Usernames are stored lower-cased."""
    try:
        user = user_service.create_user(
            username=username,
            password=password,
            name=name,
            user_tag_id=user_tag_id,
            role=role,
        )
    except CustodyError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        raise click.exceptions.Exit(1)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Tag':<12} {'Role':<6} {'Active'}")
    click.echo("=" * 80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.name[:25]:<25} {user.user_tag_id:<12} {user.role:<6} {active_str}"
        )

    click.echo("=" * 80)
    click.echo(f"Total: {len(users)} users\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete session rows whose expiry has passed."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
