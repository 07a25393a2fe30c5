# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/billing/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions --older-than-days 30
#   Delete expired/revoked session tokens.
#
# Users:
# - python -m flask users create --username alice --password "secret1" [--email a@x.io]
#   Register a user (also creates their default shop, best-effort).
# - python -m flask users list
#   List users with their default shop and shop count.
# - python -m flask users ensure-default-shops
#   Retry default-shop creation for users left without any shop.
#
# Shops:
# - python -m flask shops list [--username alice]
#   List shops, or one user's shops with roles.
# - python -m flask shops grant --shop-id 1 --username bob --role EDITOR
#   Associate a user with a shop.

import click
from flask.cli import with_appcontext

from .errors import BillingError
from .extensions import db
from .models import Shop, User, UserShop
from .permissions import ShopRole
from .services import auth_service, default_shop_service, session_service, user_shop_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@system_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked session tokens."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} session tokens older than {older_than_days} days.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', default=None, help='Email address (optional)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(username, email, password):
    """
    Register a new user.

    Same path as POST /api/auth/register: the user's default shop is
    created best-effort afterwards.
    """
    try:
        user = auth_service.register_user(username=username, password=password, email=email)
    except BillingError as e:
        click.echo(f"FAIL Failed to create user: {e.message} ({e.code})")
        return

    click.echo(f"PASS Created user: {user.username} (ID: {user.id})")
    if user.default_shop_id:
        click.echo(f"     Default shop ID: {user.default_shop_id}")
    else:
        click.echo("WARN  Default shop not created; run 'flask users ensure-default-shops'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their default shop and shop count."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Default':<8} {'Shops'}")
    click.echo("=" * 90)

    for user in users:
        shop_count = db.session.query(UserShop).filter_by(user_id=user.id).count()
        active_str = "Yes" if user.is_active else "No"
        default_str = str(user.default_shop_id) if user.default_shop_id else "-"
        click.echo(
            f"{user.id:<5} {user.username:<20} {(user.email or '-'):<30} {active_str:<8} {default_str:<8} {shop_count}"
        )

    click.echo("=" * 90 + "\n")


@users_group.command('ensure-default-shops')
@with_appcontext
def ensure_default_shops_cli():
    """
    Create a default shop for every user that has none.

    Idempotent: users with any shop association or a resolvable default
    are skipped.
    """
    created = 0
    failed = 0
    for (user_id,) in db.session.query(User.id).order_by(User.id.asc()).all():
        try:
            shop = default_shop_service.ensure_default_shop(user_id)
        except Exception as e:
            failed += 1
            click.echo(f"FAIL User {user_id}: {e}")
            continue
        if shop is not None:
            created += 1
            click.echo(f"PASS User {user_id}: created default shop {shop.id}")

    click.echo(f"Done. Created {created} default shops, {failed} failures.")


# =============================================================================
# SHOP COMMANDS
# =============================================================================

@click.group('shops')
def shops_group():
    """Shop inspection and membership commands."""


@shops_group.command('list')
@click.option('--username', default=None, help='Only shops this user is associated with')
@with_appcontext
def list_shops_cli(username):
    """List shops (optionally one user's shops with roles)."""
    if username:
        user = db.session.query(User).filter_by(username=username).first()
        if not user:
            click.echo(f"FAIL User '{username}' not found")
            return
        rows = user_shop_service.list_shops_for_user(user.id)
    else:
        rows = [(shop, "") for shop in db.session.query(Shop).order_by(Shop.id.asc()).all()]

    if not rows:
        click.echo("No shops found.")
        return

    for shop, role in rows:
        suffix = f" [{role}]" if role else ""
        click.echo(f"{shop.id:<5} {shop.name:<40} {shop.gstin or '-'}{suffix}")


@shops_group.command('grant')
@click.option('--shop-id', type=int, required=True)
@click.option('--username', required=True)
@click.option('--role', type=click.Choice(list(ShopRole.ALL), case_sensitive=False), default=ShopRole.VIEWER, show_default=True)
@with_appcontext
def grant_cli(shop_id, username, role):
    """Associate a user with a shop under a role."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    try:
        edge = user_shop_service.associate_user(user.id, shop_id, role)
    except BillingError as e:
        click.echo(f"FAIL {e.message} ({e.code})")
        return

    click.echo(f"PASS {username} is now {edge.role} on shop {shop_id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(shops_group)
