# Overview: Flask CLI command groups for bootstrap, stock maintenance and cost control.

# backend/hkinv/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin]
#   Idempotent bootstrap: creates tables, seeds cost items and a default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock:
# - python -m flask stock reconcile [--fix]
#   Recompute stock from the ledger; --fix writes the expected values.
#
# Cost control:
# - python -m flask cost seed
#   Add any missing default laundry cost items.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.cost_control_service import seed_cost_items
from .services.ledger_service import reconcile_stock
from .services.users_service import create_user

DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Username of the default admin')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Password of the default admin')
@with_appcontext
def init_system(admin_username, admin_password):
    """
    Initialize the inventory: schema, laundry cost items and an admin user.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing inventory...")

    db.create_all()
    click.echo("PASS Tables ready")

    added = seed_cost_items()
    click.echo(f"PASS Cost items seeded ({added} added)")

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"PASS Using existing admin: {existing.username} (ID: {existing.id})")
    else:
        result = create_user({
            "username": admin_username,
            "name": "Administrator",
            "email": f"{admin_username}@hotel.local",
            "role": "admin",
            "password": admin_password,
        })
        if not result.success:
            raise click.ClickException(f"Could not create admin: {result.message}")
        click.echo(f"PASS Created admin: {result.payload.username} (ID: {result.payload.id})")

    click.echo("DONE Inventory initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('stock')
def stock_group():
    """Stock ledger maintenance."""


@stock_group.command('reconcile')
@click.option('--fix', is_flag=True, help='Write the expected stock levels')
@with_appcontext
def reconcile_cli(fix):
    """Compare every item's stock with what its ledger adds up to."""
    result = reconcile_stock(fix=fix)
    if not result.success:
        raise click.ClickException(result.message)

    drifts = result.payload or []
    if drifts:
        click.echo("\n" + "=" * 64)
        click.echo(f"{'ID':<6} {'Code':<20} {'Current':>10} {'Expected':>10} {'Drift':>10}")
        click.echo("=" * 64)
        for d in drifts:
            click.echo(f"{d.item_id:<6} {d.code:<20} {d.current_stock:>10} {d.expected_stock:>10} {d.drift:>+10}")
        click.echo("=" * 64 + "\n")
    click.echo(result.message)


@click.group('cost')
def cost_group():
    """Laundry cost control."""


@cost_group.command('seed')
@with_appcontext
def seed_cost_cli():
    """Add any missing default cost items."""
    added = seed_cost_items()
    click.echo(f"PASS {added} cost item(s) added")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(cost_group)
