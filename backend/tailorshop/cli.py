# Overview: Flask CLI command groups for bootstrap, repair and maintenance.

# backend/tailorshop/cli.py
# Commands (run from the backend directory with FLASK_APP=wsgi.py):
#
# - flask system init-db
#   Create all tables and seed default display settings.
# - flask system seed-settings
#   Insert missing default order-status / VIP-tier rows.
# - flask ledger reconcile [--order-id N]
#   Recompute cached order balances from the payment ledger.
# - flask measurements prune [--keep N]
#   Apply the measurement version retention cap to every measurement.
# - flask notifications check-templates [--language en_US]
#   Compare local template parameter counts with the messaging proxy.
# - flask employees import FILE
#   Import employees from a CSV file.
# - flask services import FILE
#   Import catalog services from a CSV file.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import settings_service, payment_service, measurement_service, notification_service, import_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables (idempotent) and seed default settings."""
    db.create_all()
    added = settings_service.ensure_defaults_seeded()
    click.echo(f"PASS Tables ready, {added} default setting rows added")


@system_group.command('seed-settings')
@with_appcontext
def seed_settings():
    added = settings_service.ensure_defaults_seeded()
    click.echo(f"PASS {added} default setting rows added")


@click.group('ledger')
def ledger_group():
    """Payment ledger maintenance."""


@ledger_group.command('reconcile')
@click.option('--order-id', type=int, default=None, help='Only this order')
@with_appcontext
def reconcile(order_id):
    """Rewrite cached deposit/remaining balance from the payment ledger."""
    if order_id is not None:
        try:
            changed = payment_service.reconcile_order_balance(order_id)
        except payment_service.PaymentError as exc:
            raise click.ClickException(str(exc))
        click.echo(f"Order {order_id}: {'repaired' if changed else 'ok'}")
        return

    repaired = payment_service.reconcile_all()
    for repaired_id in repaired:
        click.echo(f"Order {repaired_id}: repaired")
    click.echo(f"PASS {len(repaired)} order(s) repaired")


@click.group('measurements')
def measurements_group():
    """Measurement version maintenance."""


@measurements_group.command('prune')
@click.option('--keep', type=int, default=None, help='Versions to keep per measurement (defaults to MEASUREMENT_VERSION_CAP)')
@with_appcontext
def prune(keep):
    removed = measurement_service.prune_all(keep)
    click.echo(f"PASS {removed} old version(s) removed")


@click.group('notifications')
def notifications_group():
    """WhatsApp template tooling."""


@notifications_group.command('check-templates')
@click.option('--language', default=None, help='Template language code on the proxy')
@with_appcontext
def check_templates(language):
    """Exit non-zero when a remote template disagrees with its local parameter count."""
    results = notification_service.check_templates(language)
    failures = 0
    for row in results:
        if row["ok"]:
            click.echo(f"OK   {row['template']}: {row['declared']} params")
        else:
            failures += 1
            detail = row["error"] or f"remote has {row['remote']}, local sends {row['declared']}"
            click.echo(f"FAIL {row['template']}: {detail}")
    if failures:
        raise click.ClickException(f"{failures} template(s) out of sync")


@click.group('employees')
def employees_group():
    """Employee bulk operations."""


@employees_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_employees(path):
    with open(path, encoding="utf-8") as fh:
        text = fh.read()
    try:
        result = import_service.import_employees_csv(text)
    except import_service.EmployeeImportError as exc:
        raise click.ClickException(str(exc))
    for message in result["errors"]:
        click.echo(f"FAIL {message}")
    click.echo(f"PASS {result['success']} imported, {result['failed']} failed")


@click.group('services')
def services_group():
    """Service catalog bulk operations."""


@services_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_services(path):
    with open(path, encoding="utf-8") as fh:
        text = fh.read()
    try:
        result = import_service.import_services_csv(text)
    except import_service.ServiceImportError as exc:
        raise click.ClickException(str(exc))
    for message in result["errors"]:
        click.echo(f"FAIL {message}")
    click.echo(f"PASS {result['success']} imported, {result['failed']} failed")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(measurements_group)
    app.cli.add_command(notifications_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(services_group)
