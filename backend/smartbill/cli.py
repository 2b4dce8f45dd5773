# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/smartbill/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired or revoked login sessions.
#
# Store directory:
# - python -m flask stores list
#   List all stores with product and invoice counts.
# - python -m flask stores rotate-key 3
#   Issue a new API key for store 3 (the old key stops working).
# - python -m flask stores seed-demo
#   Create a demo store with a small catalog.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .errors import BillingError
from .extensions import db
from .models import Invoice, Product, Store
from .services import catalog_service, session_service, store_service


DEMO_PHONE = "9999900000"
DEMO_PRODUCTS = [
    {"name": "Basmati Rice 5kg", "sku": "RICE-5KG", "price": Decimal("450.00"), "quantity": 40, "unit": "bag"},
    {"name": "Sunflower Oil 1L", "sku": "OIL-1L", "price": Decimal("165.50"), "quantity": 60, "unit": "bottle"},
    {"name": "Toor Dal 1kg", "sku": "DAL-1KG", "price": Decimal("139.00"), "quantity": 80, "unit": "pack"},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask stores seed-demo' for sample data.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked login sessions."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


@click.group('stores')
def stores_group():
    """Store directory commands."""


@stores_group.command('list')
@with_appcontext
def list_stores():
    """List all stores."""
    stores = store_service.list_stores()

    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Phone':<12} {'Products':<10} {'Invoices'}")
    click.echo("="*80)

    for store in stores:
        product_count = db.session.query(Product).filter_by(store_id=store.id).count()
        invoice_count = db.session.query(Invoice).filter_by(store_id=store.id).count()
        click.echo(f"{store.id:<5} {store.store_name:<30} {store.phone:<12} {product_count:<10} {invoice_count}")

    click.echo("="*80 + "\n")


@stores_group.command('rotate-key')
@click.argument('store_id', type=int)
@with_appcontext
def rotate_key(store_id):
    """Issue a new API key for a store."""
    try:
        store = store_service.rotate_api_key(store_id)
    except BillingError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS New API key for store {store.id}: {store.api_key}")


@stores_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create a demo store and catalog (idempotent)."""
    store = db.session.query(Store).filter_by(phone=DEMO_PHONE).first()
    if store:
        click.echo(f"WARN  Demo store already exists (ID: {store.id}), skipping store creation...")
    else:
        store = store_service.register_store(patch={
            "store_name": "Demo Kirana",
            "owner_name": "Demo Owner",
            "phone": DEMO_PHONE,
            "email": "demo@smartbill.local",
        })
        click.echo(f"PASS Created demo store: {store.store_name} (ID: {store.id})")

    for item in DEMO_PRODUCTS:
        exists = db.session.query(Product.id).filter_by(store_id=store.id, sku=item["sku"]).first()
        if exists:
            click.echo(f"WARN  Product '{item['sku']}' already exists, skipping...")
            continue
        product = catalog_service.add_product(store_id=store.id, patch=dict(item))
        click.echo(f"PASS Created product: {product.name} (ID: {product.id})")

    click.echo(f"\nStore ID: {store.id}")
    click.echo(f"API key:  {store.api_key}")
    click.echo(f"Login:    phone {DEMO_PHONE}, OTP from /api/auth/verify-phone")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
