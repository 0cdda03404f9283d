# Overview: Flask CLI command groups for bootstrap, inspection, and daily maintenance.

# backend/fifo_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog reference data (development bootstrap):
# - python -m flask catalog add-store --name "Storeroom" --capability receive-only
# - python -m flask catalog add-item --name "Tonic Water" --brand "Fever-Tree" --category mixers
# - python -m flask catalog add-staff --name "Sam" --title "Bar Manager"
# - python -m flask catalog list
#
# FIFO ledger:
# - python -m flask fifo refresh-priorities [--as-of 2026-03-01]
#   Recompute cached priority scores on active lots (run daily).
# - python -m flask fifo recommend --store-id 1
#   Print the FIFO order for a store.
# - python -m flask fifo expiring [--store-id 1] [--within-days 7]
#   Print active lots expiring soon.
# - python -m flask fifo activity [--store-id 1] [--limit 20]
#   Print the recent activity feed.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Item, StaffMember, Store
from .models.catalog import STORE_CAPABILITIES, STORE_CAPABILITY_BOTH
from .quantities import format_quantity
from .services import activity_service, ledger_service
from .time_utils import parse_iso_date, to_utc_z


def _echo_lots(lots, as_of=None):
    lots = list(lots)
    if not lots:
        click.echo("No lots found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Store':<6} {'Item':<6} {'Qty':>10} {'Expires':<12} {'Days':>5} {'Prio':>5} {'Batch':<24} {'Status'}")
    click.echo("="*100)
    for lot in lots:
        data = lot.to_dict(as_of)
        click.echo(
            f"{lot.id:<6} {lot.store_id:<6} {lot.item_id:<6} {data['quantity']:>10} "
            f"{data['expiration_date']:<12} {data['days_until_expiry']:>5} {data['priority_score']:>5} "
            f"{lot.batch_number:<24} {lot.status}"
        )
    click.echo("="*100 + "\n")


def _parse_as_of(value):
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="--as-of")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables from the current models."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the append-only activity log!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('catalog')
def catalog_group():
    """Reference data: stores, items and staff."""


@catalog_group.command('add-store')
@click.option('--name', required=True, help='Store name')
@click.option('--location', default=None, help='Where the store is')
@click.option('--capability', type=click.Choice(STORE_CAPABILITIES), default=STORE_CAPABILITY_BOTH)
@with_appcontext
def add_store(name, location, capability):
    store = Store(name=name, location=location, capability=capability)
    db.session.add(store)
    db.session.commit()
    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, {store.capability})")


@catalog_group.command('add-item')
@click.option('--name', required=True, help='Item name')
@click.option('--brand', default=None)
@click.option('--category', default=None)
@click.option('--color-code', default=None, help='Dashboard colour tag, e.g. #4caf50')
@click.option('--barcode', default=None)
@with_appcontext
def add_item(name, brand, category, color_code, barcode):
    item = Item(name=name, brand=brand, category=category, color_code=color_code, barcode=barcode)
    db.session.add(item)
    db.session.commit()
    click.echo(f"PASS Created item: {item.name} (ID: {item.id})")


@catalog_group.command('add-staff')
@click.option('--name', required=True, help='Staff member name')
@click.option('--title', default=None)
@with_appcontext
def add_staff(name, title):
    staff = StaffMember(name=name, title=title)
    db.session.add(staff)
    db.session.commit()
    click.echo(f"PASS Created staff member: {staff.name} (ID: {staff.id})")


@catalog_group.command('list')
@click.option('--json', 'as_json', is_flag=True, help='Print JSON instead of a table')
@with_appcontext
def list_catalog(as_json):
    """List stores, items and staff."""
    if as_json:
        click.echo(json.dumps({
            "stores": [s.to_dict() for s in db.session.query(Store).order_by(Store.id).all()],
            "items": [i.to_dict() for i in db.session.query(Item).order_by(Item.id).all()],
            "staff": [m.to_dict() for m in db.session.query(StaffMember).order_by(StaffMember.id).all()],
        }, indent=2))
        return

    click.echo("\nStores:")
    for store in db.session.query(Store).order_by(Store.id).all():
        active = "" if store.is_active else " (inactive)"
        click.echo(f"  {store.id:<5} {store.name:<25} {store.location or '-':<20} {store.capability}{active}")

    click.echo("\nItems:")
    for item in db.session.query(Item).order_by(Item.id).all():
        click.echo(f"  {item.id:<5} {item.name:<25} {item.brand or '-':<20} {item.category or '-'}")

    click.echo("\nStaff:")
    for staff in db.session.query(StaffMember).order_by(StaffMember.id).all():
        click.echo(f"  {staff.id:<5} {staff.name:<25} {staff.title or '-'}")
    click.echo("")


@click.group('fifo')
def fifo_group():
    """FIFO ledger inspection and maintenance."""


@fifo_group.command('refresh-priorities')
@click.option('--as-of', default=None, help='Score as of this date (YYYY-MM-DD); defaults to today')
@with_appcontext
def refresh_priorities(as_of):
    updated = ledger_service.refresh_priority_scores(as_of=_parse_as_of(as_of))
    click.echo(f"PASS Updated priority score on {updated} lot(s).")


@fifo_group.command('recommend')
@click.option('--store-id', type=int, required=True)
@click.option('--as-of', default=None, help='YYYY-MM-DD; defaults to today')
@with_appcontext
def recommend(store_id, as_of):
    """Print the FIFO order for a store (use first at the top)."""
    as_of_date = _parse_as_of(as_of)
    try:
        lots = ledger_service.recommend_fifo_order(store_id, as_of=as_of_date)
    except LedgerError as e:
        raise click.ClickException(e.message)
    _echo_lots(lots, as_of_date)


@fifo_group.command('expiring')
@click.option('--store-id', type=int, default=None)
@click.option('--within-days', type=int, default=None, help='Defaults to EXPIRING_WITHIN_DAYS')
@click.option('--as-of', default=None, help='YYYY-MM-DD; defaults to today')
@with_appcontext
def expiring(store_id, within_days, as_of):
    if within_days is None:
        within_days = current_app.config.get("EXPIRING_WITHIN_DAYS", 30)
    as_of_date = _parse_as_of(as_of)
    try:
        lots = ledger_service.list_expiring(store_id, within_days=within_days, as_of=as_of_date)
    except LedgerError as e:
        raise click.ClickException(e.message)
    _echo_lots(lots, as_of_date)


@fifo_group.command('activity')
@click.option('--store-id', type=int, default=None)
@click.option('--limit', type=int, default=None, help='Defaults to ACTIVITY_FEED_LIMIT')
@with_appcontext
def activity(store_id, limit):
    entries = activity_service.recent_activity(store_id=store_id, limit=limit)
    if not entries:
        click.echo("No activity.")
        return

    for entry in entries:
        before = format_quantity(entry.quantity_before) or "-"
        after = format_quantity(entry.quantity_after) or "-"
        click.echo(
            f"{to_utc_z(entry.created_at)}  store={entry.store_id:<4} lot={entry.lot_id or '-':<6} "
            f"{entry.action_type:<12} {before} -> {after}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(fifo_group)
