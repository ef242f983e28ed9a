# Overview: Flask CLI command groups for bootstrap, seller accounts and catalog inspection.

# backend/supermart/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--no-sample]
#   Idempotent bootstrap: creates tables, store settings and a sample catalog.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Seller accounts:
# - python -m flask sellers list
# - python -m flask sellers create --email jane@store.local --name "Jane" --password "secret"
#   Create a seller (prompts if options are omitted).
#
# Catalog inspection:
# - python -m flask catalog low-stock
#   List products at or below their minimum threshold.

import click
from flask.cli import with_appcontext

from .extensions import db
from .repositories import get_repositories
from .services import auth_service, catalog_service
from .services.auth_service import DuplicateIdentityError
from .validation import ValidationError

SAMPLE_PRODUCTS = [
    {"name": "Red Apples", "price_cents": 120000, "cost_price_cents": 80000,
     "quantity": 50, "min_threshold": 10, "tags": ["produce"]},
    {"name": "Whole Milk 1L", "price_cents": 150000, "cost_price_cents": 110000,
     "quantity": 8, "min_threshold": 10, "tags": ["dairy"]},
    {"name": "Whole Wheat Bread", "price_cents": 180000, "cost_price_cents": 120000,
     "quantity": 25, "min_threshold": 5, "tags": ["bakery"]},
    {"name": "Chicken Breast 500g", "price_cents": 450000, "cost_price_cents": 320000,
     "quantity": 0, "min_threshold": 5, "tags": ["meat"]},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--no-sample', is_flag=True, help='Skip the sample catalog')
@with_appcontext
def init_system(no_sample):
    """
    Initialize the store: tables, settings row and (when the catalog is
    empty) a small sample catalog.

    The admin passphrase comes from ADMIN_PASSWORD. Change it in production!
    """
    click.echo("START Initializing store...")

    db.create_all()
    settings = auth_service.get_settings()
    click.echo(f"PASS Store settings ready: {settings.name}")

    repos = get_repositories()
    if no_sample:
        click.echo("SKIP Sample catalog")
    elif repos.catalog.count():
        click.echo(f"SKIP Catalog already has {repos.catalog.count()} products")
    else:
        for data in SAMPLE_PRODUCTS:
            product = catalog_service.create_product(repos, patch=dict(data))
            click.echo(f"PASS Created product: {product.sku} {product.name}")

    click.echo("\n" + "="*60)
    click.echo("DONE Store initialized")
    click.echo("="*60)
    click.echo("\nAdmin login uses the ADMIN_PASSWORD passphrase (default: admin).")
    click.echo("Create sellers with: python -m flask sellers create")


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


@click.group('sellers')
def sellers_group():
    """Seller account commands."""


@sellers_group.command('list')
@with_appcontext
def list_sellers():
    sellers = auth_service.list_sellers()
    if not sellers:
        click.echo("No sellers registered.")
        return
    for s in sellers:
        click.echo(f"{s.id}  {s.email:<32} {s.name}")


@sellers_group.command('create')
@click.option('--email', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_seller(email, name, password):
    try:
        seller = auth_service.create_seller(email=email, name=name, password=password)
    except (ValidationError, DuplicateIdentityError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created seller: {seller.name} ({seller.email})")


@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('low-stock')
@with_appcontext
def low_stock():
    products = catalog_service.low_stock_products(get_repositories().catalog.list_all())
    if not products:
        click.echo("PASS No products at or below threshold.")
        return
    for p in products:
        status = "OUT" if p.is_out_of_stock else "LOW"
        click.echo(f"{status:<4} {p.sku:<8} {p.name:<32} qty={p.quantity} min={p.min_threshold}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sellers_group)
    app.cli.add_command(catalog_group)
