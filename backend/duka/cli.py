# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/duka/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and a default admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username jane --email jane@duka.local --password "Password123!" --role cashier
#
# Catalog:
# - python -m flask catalog seed-demo
#   Create demo categories and products (skips names that already exist).
# - python -m flask catalog stock
#   Print stock levels, flagging low stock.
#
# Sales:
# - python -m flask sales revoke 42
#   Revoke a sale and restore its stock.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked session tokens older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import PosError
from .models import User, Category, Product
from .services import auth_service, catalog_service, inventory_coordinator, reporting_service, session_service

DEMO_CATALOG = [
    ("Beverages", "Soft drinks, juices and water", [
        ("Soda 500ml", "60.00", "80.00", 16, 48, "Coastal Bottlers"),
        ("Mineral Water 1L", "45.00", "70.00", 16, 36, "Highland Springs"),
    ]),
    ("Groceries", "Dry foods and staples", [
        ("Maize Flour 2kg", "150.00", "190.00", 0, 30, "Unga Millers"),
        ("Rice 1kg", "140.00", "180.00", 0, 25, "Mwea Growers"),
    ]),
    ("Toiletries", "Personal care", [
        ("Bar Soap", "55.00", "75.00", 16, 4, "Clean Co"),
    ]),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='admin', show_default=True, help='Default admin username')
@click.option('--email', default='admin@duka.local', show_default=True, help='Default admin email')
@click.option('--password', default='Password123!', show_default=True, help='Default admin password')
@with_appcontext
def init_system(username, email, password):
    """
    Create tables and a default admin user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Duka POS...")
    db.create_all()

    admin = db.session.query(User).filter_by(role="admin").first()
    if admin:
        click.echo(f"PASS Using existing admin: {admin.username} ({admin.email})")
        return

    try:
        admin = auth_service.create_user(username, email, password, role="admin")
    except PosError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created admin user: {admin.username} ({admin.email})")


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
    """User account commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'cashier']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """Create a user."""
    try:
        user = auth_service.create_user(username, email, password, role)
    except PosError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created {user.role} user {user.username} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with roles and active status."""
    users = auth_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.username:<20} {u.email:<30} {u.role:<8} {status}")


@click.group('catalog')
def catalog_group():
    """Catalog commands."""


@catalog_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo categories and products (idempotent by name)."""
    created = 0
    for cat_name, cat_desc, products in DEMO_CATALOG:
        category = db.session.query(Category).filter_by(name=cat_name).first()
        if category is None:
            category = catalog_service.create_category(cat_name, cat_desc)

        for name, cost, price, vat, stock, supplier in products:
            if db.session.query(Product).filter_by(name=name).first():
                continue
            catalog_service.create_product({
                "name": name,
                "category_id": category.id,
                "purchase_price": cost,
                "selling_price": price,
                "vat": vat,
                "stock_level": stock,
                "supplier_name": supplier,
            })
            created += 1

    click.echo(f"PASS Seeded {created} products")


@catalog_group.command('stock')
@click.option('--threshold', type=int, help='Low-stock threshold (defaults to LOW_STOCK_THRESHOLD)')
@with_appcontext
def show_stock(threshold):
    """Print stock levels, flagging low stock."""
    status = reporting_service.inventory_status(threshold)
    low_ids = {row["id"] for row in status["low_stock"]}
    for row in reporting_service.inventory_data():
        flag = "  LOW" if row["id"] in low_ids else ""
        click.echo(f"{row['id']:>4}  {row['name']:<30} {row['stock_level']:>6}{flag}")
    click.echo(f"Total units on hand: {status['total_stock']}")


@click.group('sales')
def sales_group():
    """Sale ledger commands."""


@sales_group.command('revoke')
@click.argument('sale_id', type=int)
@with_appcontext
def revoke_sale_cli(sale_id):
    """Revoke a sale and restore its stock."""
    try:
        revoked = inventory_coordinator.revoke_sale(sale_id)
    except PosError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Revoked sale {sale_id}; restored {revoked['quantity']} x {revoked['productName']}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} stale sessions")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(maintenance_group)
