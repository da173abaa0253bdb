# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/agrimarket/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: roles, permissions and default role permissions.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users and roles:
# - python -m flask users create --email supplier@agri.local --first-name Sam --role SUPPLIER
#   Create a user (always CLIENT, plus any --role given).
# - python -m flask users list
# - python -m flask users token --email supplier@agri.local
#   DEV only: issue a bearer session token for API calls.
# - python -m flask roles grant supplier@agri.local STOCK_MANAGER [--expires-at 2026-01-01T00:00:00Z]
# - python -m flask roles revoke supplier@agri.local STOCK_MANAGER
#
# Catalog and stock:
# - python -m flask catalog add-warehouse --name "Nord" --address "Route 1"
# - python -m flask catalog add-product --name "Tomatoes" --unit kg [--category Vegetables]
# - python -m flask catalog list
# - python -m flask stock list [--warehouse-id 1]
# - python -m flask stock reprice --product-id 1 --warehouse-id 1 --price 2.75
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --days 30

import click
from flask.cli import with_appcontext

from .errors import MarketError
from .extensions import db
from .models import RoleType
from .money import decimal_str
from .services import catalog_service, permission_service, session_service, stock_service, user_service
from .services.concurrency import unit_of_work
from .time_utils import parse_iso_datetime
from .validation import coerce_price

ROLE_CHOICES = [rt.value for rt in RoleType]


def _require_user(email: str):
    user = user_service.get_user_by_email(email)
    if not user:
        raise click.ClickException(f"User {email} not found")
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize roles, permissions and default role permissions.

    Idempotent: safe to run multiple times.
    """
    click.echo("START Initializing marketplace roles...")

    role_count = permission_service.initialize_roles()
    click.echo(f"PASS Created {role_count} roles")

    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@click.option('--role', 'roles', multiple=True, type=click.Choice(ROLE_CHOICES), help='Extra role (repeatable)')
@with_appcontext
def create_user_cli(email, first_name, last_name, roles):
    """Create a user; CLIENT is always granted."""
    try:
        user = user_service.create_user(email, first_name=first_name, last_name=last_name, roles=list(roles))
    except MarketError as e:
        raise click.ClickException(e.message)

    granted = sorted(r.value for r in permission_service.effective_roles(user.id))
    click.echo(f"PASS Created user {user.email} (ID: {user.id}) with roles: {', '.join(granted)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their effective roles."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Email':<35} {'Active':<8} {'Roles'}")
    click.echo("=" * 90)

    for user in users:
        roles = sorted(r.value for r in permission_service.effective_roles(user.id))
        roles_str = ", ".join(roles) if roles else "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {active_str:<8} {roles_str}")

    click.echo("=" * 90 + "\n")


@users_group.command('token')
@click.option('--email', required=True)
@with_appcontext
def issue_token_cli(email):
    """DEV only: create a session and print its bearer token."""
    user = _require_user(email)
    try:
        session, token = session_service.create_session(user.id)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Session {session.id} expires {session.expires_at.isoformat()}Z")
    click.echo(token)


@click.group('roles')
def roles_group():
    """Grant and revoke user roles."""


@roles_group.command('grant')
@click.argument('email')
@click.argument('role_type', type=click.Choice(ROLE_CHOICES))
@click.option('--expires-at', default=None, help='ISO-8601 expiry')
@with_appcontext
def grant_role_cli(email, role_type, expires_at):
    user = _require_user(email)
    try:
        expiry = parse_iso_datetime(expires_at)
    except ValueError:
        raise click.ClickException("--expires-at must be an ISO-8601 datetime")

    if not permission_service.grant_role(user.id, role_type, expires_at=expiry):
        raise click.ClickException(f"Role {role_type} cannot be granted (run 'flask system init'?)")
    click.echo(f"PASS Granted {role_type} to {email}")


@roles_group.command('revoke')
@click.argument('email')
@click.argument('role_type', type=click.Choice(ROLE_CHOICES))
@with_appcontext
def revoke_role_cli(email, role_type):
    user = _require_user(email)
    if not permission_service.revoke_role(user.id, role_type):
        raise click.ClickException(f"Unknown role {role_type}")
    click.echo(f"PASS Revoked {role_type} from {email}")


@click.group('catalog')
def catalog_group():
    """Warehouses and products."""


@catalog_group.command('add-warehouse')
@click.option('--name', required=True)
@click.option('--address', required=True)
@with_appcontext
def add_warehouse_cli(name, address):
    try:
        warehouse = catalog_service.create_warehouse(name, address)
    except MarketError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created warehouse {warehouse.name} (ID: {warehouse.id})")


@catalog_group.command('add-product')
@click.option('--name', required=True)
@click.option('--unit', required=True, help='kg, litre, crate, ...')
@click.option('--description', default=None)
@click.option('--category', default=None)
@with_appcontext
def add_product_cli(name, unit, description, category):
    try:
        product = catalog_service.create_product(name, unit, description=description, category_name=category)
    except MarketError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created product {product.name} (ID: {product.id}, unit: {product.unit})")


@catalog_group.command('list')
@with_appcontext
def list_catalog_cli():
    click.echo("Warehouses:")
    for warehouse in catalog_service.list_warehouses():
        click.echo(f"  {warehouse.id:<5} {warehouse.name:<30} {warehouse.address}")
    click.echo("Products:")
    for product in catalog_service.list_products():
        click.echo(f"  {product.id:<5} {product.name:<30} {product.unit}")


@click.group('stock')
def stock_group():
    """Stock ledger inspection and pricing."""


@stock_group.command('list')
@click.option('--warehouse-id', type=int, default=None)
@with_appcontext
def list_stock_cli(warehouse_id):
    entries, total = stock_service.list_entries(warehouse_id=warehouse_id, page=1, limit=10_000)
    if not entries:
        click.echo("No stock entries found.")
        return

    click.echo(f"{'Warehouse':<10} {'Product':<30} {'Quantity':>12} {'Unit price':>12} {'Value':>14}")
    for entry in entries:
        click.echo(
            f"{entry.warehouse_id:<10} {entry.product.name:<30} {decimal_str(entry.quantity):>12} "
            f"{decimal_str(entry.unit_price):>12} {decimal_str(entry.value):>14}"
        )
    click.echo(f"{total} entries, total value {decimal_str(stock_service.stock_value(warehouse_id))}")


@stock_group.command('reprice')
@click.option('--product-id', type=int, required=True)
@click.option('--warehouse-id', type=int, required=True)
@click.option('--price', required=True)
@with_appcontext
def reprice_stock_cli(product_id, warehouse_id, price):
    """Set a new unit price; existing orders keep their price."""
    try:
        amount = coerce_price(price, "price")
        entry = unit_of_work(lambda session: stock_service.reprice(product_id, warehouse_id, amount))
    except MarketError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Product {product_id} in warehouse {warehouse_id} now {decimal_str(entry.unit_price)}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(days):
    """Delete expired or revoked sessions older than --days."""
    deleted = session_service.cleanup_expired_sessions(days=days)
    click.echo(f"Deleted {deleted} sessions older than {days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(roles_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(maintenance_group)
