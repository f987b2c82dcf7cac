# Overview: Flask CLI command group for catalog bootstrap and stock reconciliation.

# backend/shelfkeep/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask catalog init-db
#   DEV/TEST only: create all tables (production uses `flask db upgrade`).
# - python -m flask catalog seed-categories
#   Insert any missing default categories (idempotent).
# - python -m flask catalog reconcile --owner user_123
#   List products whose current_stock disagrees with the stock ledger.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services.category_service import seed_default_categories
from .services.inventory_service import find_inconsistent_products


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap and inventory maintenance commands."""


@catalog_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@catalog_group.command('seed-categories')
@with_appcontext
def seed_categories_command():
    """Insert DEFAULT_CATEGORIES that are missing."""
    created = seed_default_categories(current_app.config.get("DEFAULT_CATEGORIES", []))
    if not created:
        click.echo("PASS Default categories already present")
        return
    for name in created:
        click.echo(f"  created: {name}")
    click.echo(f"PASS Seeded {len(created)} categories")


@catalog_group.command('reconcile')
@click.option('--owner', 'owner_id', required=True, help='Owner (user id) whose catalog to check')
@with_appcontext
def reconcile_command(owner_id):
    """Report products whose current_stock differs from movements minus units sold."""
    inconsistent = find_inconsistent_products(owner_id)
    if not inconsistent:
        click.echo(f"PASS All products consistent for owner {owner_id}")
        return

    for summary in inconsistent:
        click.echo(
            f"  MISMATCH {summary.product_id}: current_stock={summary.current_stock} "
            f"derived={summary.derived_stock} "
            f"(movements={summary.movement_total}, sold={summary.units_sold})"
        )
    raise click.ClickException(f"{len(inconsistent)} inconsistent product(s)")


def register_commands(app):
    app.cli.add_command(catalog_group)
