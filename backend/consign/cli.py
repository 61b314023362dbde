# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/consign/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--no-default-users]
#   Idempotent bootstrap: creates tables and default manager/staff/viewer users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --username alice --password "Password123!" --role MANAGER
#   Create a user (prompts if options are omitted).
# - python -m flask users list
#
# Alerts:
# - python -m flask alerts scan [--low-stock-threshold 5] [--overdue-days 14]
#   Run the alert scan once (for cron hosts without HTTP access).
#
# Inventory:
# - python -m flask inventory show [--kind STORAGE]
#   Print non-zero on-hand per product, location and unit type.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import LocationKind, User
from .permissions import Role
from .services import alert_service, inventory_service
from .services.auth_service import PasswordValidationError, create_user
from .validation import ConflictError, ValidationError


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--no-default-users', is_flag=True, help='Only create tables')
@with_appcontext
def init_system(no_default_users):
    """
    Create all tables and, unless disabled, one user per role.

    Default users (password "Password123!"): manager, staff, viewer.

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing consign system...")
    db.create_all()
    click.echo("PASS Tables created")

    if no_default_users:
        return

    click.echo("\nUSERS Creating default users...")
    for username, role in (("manager", Role.MANAGER), ("staff", Role.STAFF), ("viewer", Role.VIEWER)):
        if db.session.query(User).filter_by(username=username).first() is not None:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        create_user(username, DEFAULT_PASSWORD, role=role)
        click.echo(f"PASS Created user: {username} with role {role}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   manager / staff / viewer -> {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the movement ledger!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(Role.ALL)), prompt=True, help='Role')
@click.option('--display-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, password, role, display_name):
    """Create a user."""
    try:
        user = create_user(username, password, role=role, display_name=display_name)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except (ConflictError, ValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role {user.role}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<10} {'Active'}")
    click.echo("="*60)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<10} {active_str}")
    click.echo("="*60 + "\n")


@click.group('alerts')
def alerts_group():
    """Alert engine commands."""


@alerts_group.command('scan')
@click.option('--low-stock-threshold', type=int, default=None, help='Override LOW_STOCK_THRESHOLD')
@click.option('--overdue-days', type=int, default=None, help='Override PAYMENT_OVERDUE_DAYS')
@with_appcontext
def scan_alerts(low_stock_threshold, overdue_days):
    """Run the alert scan once and print how many alerts were created."""
    created = alert_service.run_alert_scan(
        low_stock_threshold=low_stock_threshold,
        overdue_days=overdue_days,
    )
    for alert_type, count in created.items():
        click.echo(f"{alert_type:<20} {count}")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('show')
@click.option('--kind', type=click.Choice(list(LocationKind.ALL)), default=None, help='Only this location kind')
@with_appcontext
def show_inventory(kind):
    """Print non-zero on-hand across active locations."""
    rows = inventory_service.full_inventory()
    if kind:
        rows = [r for r in rows if r["location_kind"] == kind]
    if not rows:
        click.echo("No inventory on hand.")
        return

    click.echo(f"{'Product':<30} {'Location':<25} {'Kind':<8} {'Unit':<5} {'On hand':>8}")
    for row in rows:
        click.echo(
            f"{row['product_name'][:30]:<30} {row['location_name'][:25]:<25} "
            f"{row['location_kind']:<8} {row['unit_type']:<5} {row['on_hand']:>8}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(alerts_group)
    app.cli.add_command(inventory_group)
