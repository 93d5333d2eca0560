import click

from disbursement.importers import MerchantImporter, OrderImporter
from disbursement.worker import DisbursementWorker


def register_commands(app):
    @app.cli.command("import-merchants")
    @click.argument("path", type=click.Path(dir_okay=False))
    def import_merchants(path):
        """Load merchants from a ;-separated CSV file."""
        count = MerchantImporter(path).perform()
        click.echo(f"Imported {count} merchants from {path}")

    @app.cli.command("import-orders")
    @click.argument("path", type=click.Path(dir_okay=False))
    def import_orders(path):
        """Load orders from a ;-separated CSV file."""
        count = OrderImporter(path).perform()
        click.echo(f"Imported {count} orders from {path}")

    @app.cli.command("disburse")
    @click.option("--workers", type=int, default=None, help="Merchants processed in parallel.")
    @click.option(
        "--today",
        type=click.DateTime(formats=["%Y-%m-%d"]),
        default=None,
        help="Run as if on this date (defaults to the current date).",
    )
    def disburse(workers, today):
        """Create the disbursements owed for every elapsed period."""
        report = DisbursementWorker(app, max_workers=workers, today=today.date() if today else None).perform()
        click.echo(f"Created {report.disbursement_count} disbursements for {report.today.isoformat()}")
        for result in report.failures:
            click.echo(f"merchant {result.merchant_id}: {result.error}", err=True)
