# Overview: Flask CLI command groups for bootstrap, serving, and maintenance.

# backend/stockline/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app stockline <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app stockline system init
#   Idempotent bootstrap: creates tables, default users, sample suppliers and products.
# - python -m flask --app stockline system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask --app stockline users list
# - python -m flask --app stockline users create --username alice --password "Password123!" --role "Stock Manager"
#
# Server:
# - python -m flask --app stockline server run [--host 0.0.0.0] [--port 8080]
#   Start the TCP line-protocol server. Ctrl+C / SIGTERM shuts it down gracefully.
#
# Maintenance:
# - python -m flask --app stockline maintenance purge-audit-logs --days 90
#   Delete audit entries older than the retention window.
#
# Migrations (Flask-Migrate):
# - python -m flask --app stockline db upgrade

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import StocklineError
from .extensions import db
from .models import Product, Supplier, User
from .permissions import Role
from .services import audit_service
from .services.auth_service import create_user

DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = (
    ("admin", Role.ADMIN),
    ("manager", Role.STOCK_MANAGER),
    ("cashier", Role.CASHIER),
)

SAMPLE_SUPPLIERS = (
    ("Acme Wholesale", "Jane Porter", "orders@acme-wholesale.example", "12 Harbour Road"),
    ("Northwind Traders", "Luis Ortega", "sales@northwind.example", "4 Market Street"),
)

# (name, category, unit_price_cents, quantity, supplier index)
SAMPLE_PRODUCTS = (
    ("USB-C Cable 1m", "Electronics", 899, 120, 0),
    ("Wireless Mouse", "Electronics", 2499, 35, 0),
    ("A4 Copy Paper (500)", "Office", 649, 8, 1),
    ("Ballpoint Pens (10)", "Office", 399, 0, 1),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the stockline database: tables, default users, sample data.

    Safe to run repeatedly. Existing users are skipped; sample suppliers and
    products are only added to an empty catalogue.
    """
    click.echo("START Initializing stockline...")
    db.create_all()

    click.echo("\nUSERS Creating default users...")
    for username, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            user = create_user(username, DEFAULT_PASSWORD, role)
            click.echo(f"PASS Created user: {user.username} with role '{user.role}'")
        except StocklineError as e:
            click.echo(f"FAIL Failed to create user '{username}': {e.message}")

    if db.session.query(Supplier).count() == 0 and db.session.query(Product).count() == 0:
        click.echo("\nSEED Adding sample suppliers and products...")
        suppliers = [
            Supplier(name=name, contact_info=contact, email=email, address=address)
            for name, contact, email, address in SAMPLE_SUPPLIERS
        ]
        db.session.add_all(suppliers)
        db.session.flush()
        for name, category, price, qty, supplier_idx in SAMPLE_PRODUCTS:
            db.session.add(Product(
                name=name,
                category=category,
                unit_price_cents=price,
                quantity=qty,
                supplier_id=suppliers[supplier_idx].id,
            ))
        db.session.commit()
        click.echo(f"PASS Added {len(SAMPLE_SUPPLIERS)} suppliers, {len(SAMPLE_PRODUCTS)} products")
    else:
        click.echo("\nWARN  Catalogue not empty, skipping sample data")

    click.echo("\n" + "=" * 60)
    click.echo("DONE stockline initialized")
    click.echo("=" * 60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, role in DEFAULT_USERS:
        click.echo(f"   {username:<9} ({role.value}) / {DEFAULT_PASSWORD}")
    click.echo("")


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

    click.echo("PASS Database reset complete. Run 'flask --app stockline system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<15} {'Active':<8} {'Last login'}")
    click.echo("=" * 80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        last_login = user.last_login_at.isoformat(timespec="seconds") if user.last_login_at else "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<15} {active_str:<8} {last_login}")

    click.echo("=" * 80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username (3-50 characters)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, password, role):
    """Create a user."""
    try:
        user = create_user(username, password, role)
    except StocklineError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, Role: {user.role})")


@click.group('server')
def server_group():
    """TCP server commands."""


@server_group.command('run')
@click.option('--host', default=None, help='Bind address (default: SERVER_HOST)')
@click.option('--port', type=int, default=None, help='Bind port (default: SERVER_PORT)')
@with_appcontext
def run_server(host, port):
    """Run the line-protocol server until SIGINT/SIGTERM."""
    from .server.supervisor import ConnectionSupervisor

    app = current_app._get_current_object()
    level = getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    supervisor = ConnectionSupervisor(app, host=host, port=port)
    try:
        supervisor.check_storage()
    except StocklineError as e:
        raise click.ClickException(e.message)

    supervisor.bind()
    bound_host, bound_port = supervisor.address
    click.echo(f"START stockline listening on {bound_host}:{bound_port} (Ctrl+C to stop)")
    supervisor.serve_forever()


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-audit-logs')
@click.option('--days', type=click.IntRange(1, 36500), default=90, show_default=True, help='Retention window in days')
@with_appcontext
def purge_audit_logs_cli(days):
    """Delete audit entries older than the retention window."""
    try:
        deleted = audit_service.purge_older_than(days)
    except StocklineError as e:
        raise click.ClickException(e.message)
    click.echo(f"Deleted {deleted} audit entries older than {days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(server_group)
    app.cli.add_command(maintenance_group)
