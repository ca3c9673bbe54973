# Overview: Flask CLI command groups for bootstrap, demo data and inventory inspection.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use "flask db upgrade" for managed schemas).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Demo data:
# - python -m flask seed demo [--company "Demo Retail"]
#   Create a company with two stores, a vendor, a customer and three products.
#
# Inventory inspection:
# - python -m flask inventory show --store-id 1 [--low-stock]
#   Print on-hand rows of one store.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Customer, Inventory, Product, Store, Vendor


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask seed demo' for sample data.")


@click.group('seed')
def seed_group():
    """Sample data for local development."""


DEMO_PRODUCTS = [
    # sku, name, cost, price, reorder level
    ("SKU-1001", "Basmati Rice 5kg", "9.50", "12.00", 10),
    ("SKU-1002", "Sunflower Oil 1L", "2.10", "3.25", 20),
    ("SKU-1003", "Green Tea 100 bags", "3.40", "5.00", 5),
]


@seed_group.command('demo')
@click.option('--company', 'company_name', default='Demo Retail', help='Company name')
@with_appcontext
def seed_demo(company_name):
    """Idempotent: an existing company with the same name is left untouched."""
    existing = db.session.query(Company).filter_by(name=company_name).first()
    if existing:
        click.echo(f"SKIP Company '{company_name}' already exists (id={existing.id})")
        return

    company = Company(name=company_name)
    db.session.add(company)
    db.session.flush()

    stores = [
        Store(company_id=company.id, name="Main Street", address="1 Main Street"),
        Store(company_id=company.id, name="Harbour Mall", address="Unit 12, Harbour Mall"),
    ]
    db.session.add_all(stores)
    db.session.add(Vendor(company_id=company.id, name="Acme Wholesale", email="orders@acme.test"))
    db.session.add(Customer(company_id=company.id, name="Walk-in Regular", phone="555-0100"))
    for sku, name, cost, price, reorder in DEMO_PRODUCTS:
        db.session.add(
            Product(
                company_id=company.id,
                sku=sku,
                name=name,
                cost_price=Decimal(cost),
                selling_price=Decimal(price),
                reorder_level=reorder,
            )
        )
    db.session.commit()

    click.echo(f"PASS Company '{company.name}' created (id={company.id})")
    for store in stores:
        click.echo(f"   store {store.id}: {store.name} (prefix {store.number_prefix})")
    click.echo("   Send X-User-Id, X-Company-Id and X-User-Role headers to call the API.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('show')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--low-stock', is_flag=True, help='Only rows at or below reorder level')
@with_appcontext
def show_inventory(store_id, low_stock):
    store = db.session.get(Store, store_id)
    if store is None:
        raise click.ClickException(f"Store {store_id} not found")

    query = (
        db.session.query(Inventory)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Inventory.store_id == store_id)
    )
    if low_stock:
        query = query.filter(Inventory.quantity <= Product.reorder_level)
    rows = query.order_by(Product.name.asc()).all()

    click.echo(f"Inventory of store {store.id} ({store.name}):")
    if not rows:
        click.echo("   (no rows)")
        return
    for row in rows:
        flag = "  LOW" if row.is_low_stock else ""
        click.echo(f"   {row.product.sku or '-':<10} {row.product.name:<30} {row.quantity:>6}{flag}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(seed_group)
    app.cli.add_command(inventory_group)
