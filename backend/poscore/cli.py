# Overview: Flask CLI command groups for bootstrap, settings, catalog setup and maintenance.

# backend/poscore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Settings:
# - python -m flask settings set-vat --enabled --rate 12
#   Turn VAT on at 12%. Use --disabled to turn it off.
#
# Catalog:
# - python -m flask products create --sku A-100 --name "Mug" --channel in-store --price 100.00 --quantity 10
#   Create a product with its stock row.
# - python -m flask promotions active
#   List automatic promotions active today for the register.
#
# Maintenance:
# - python -m flask maintenance sweep-reservations
#   Delete expired stock reservations now.

import click
from flask.cli import with_appcontext

from .extensions import db
from .money import to_cents, format_cents
from .models.inventory import SALE_CHANNELS
from .services import settings_service
from .services.inventory_service import create_product
from .services.promotion_service import get_active_promotions
from .services.reservation_service import sweep_expired


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
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

    click.echo("PASS Database reset complete.")


@click.group('settings')
def settings_group():
    """System settings."""


@settings_group.command('set-vat')
@click.option('--enabled/--disabled', default=True, help='Turn VAT on or off')
@click.option('--rate', type=int, default=None, help='VAT rate in whole percent')
@with_appcontext
def set_vat(enabled, rate):
    try:
        settings_service.configure_vat(enabled, rate)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    state = "enabled" if enabled else "disabled"
    click.echo(f"PASS VAT {state} (rate: {settings_service.get_vat_rate()}%)")


@click.group('products')
def products_group():
    """Catalog setup."""


@products_group.command('create')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--channel', 'sale_channel', type=click.Choice(SALE_CHANNELS), default='in-store', show_default=True)
@click.option('--price', required=True, help='Unit price, e.g. 100.00')
@click.option('--quantity', type=int, default=0, show_default=True)
@click.option('--category-id', type=int, default=None)
@with_appcontext
def create_product_cli(sku, name, sale_channel, price, quantity, category_id):
    try:
        product = create_product(
            sku=sku,
            name=name,
            sale_channel=sale_channel,
            price_cents=to_cents(price),
            quantity=quantity,
            category_id=category_id,
        )
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    click.echo(f"PASS Created {product.sku} ({product.stock_table} stock: {quantity})")


@click.group('promotions')
def promotions_group():
    """Promotion inspection."""


@promotions_group.command('active')
@with_appcontext
def list_active_promotions():
    promotions = get_active_promotions()
    if not promotions:
        click.echo("No active promotions.")
        return
    for p in promotions:
        if p.promo_type == "percentage":
            value = f"{p.discount_value / 100:g}%"
        else:
            value = format_cents(p.discount_value)
        target = p.applies_to_type if p.applies_to_id is None else f"{p.applies_to_type}:{p.applies_to_id}"
        click.echo(f"{p.id:>5}  {p.title:<30} {p.promo_type:<14} {value:>10}  {target}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('sweep-reservations')
@with_appcontext
def sweep_reservations_cli():
    """Delete reservations whose hold has expired."""
    deleted = sweep_expired()
    click.echo(f"Deleted {deleted} expired reservations.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(products_group)
    app.cli.add_command(promotions_group)
    app.cli.add_command(maintenance_group)
