"""Reservation import command."""

import click
from fabbill.cli.error_handling import handle_domain_error
from fabbill.domain.errors import DomainError
from fabbill.domain.reservation_import import ReservationImportService


@click.command("import")
@click.argument("json_file", type=click.Path(exists=True))
@click.pass_context
def import_reservation(ctx, json_file: str):
    """Import a reservation exported by the booking application."""
    db = ctx.obj["db"]
    service = ReservationImportService(db)

    try:
        result = service.import_file(json_file)
        click.echo(f"\nImport complete:")
        click.echo(f"  Reservation: {result.reservation_id}")
        click.echo(f"  Services: {result.services}")
        click.echo(f"  Machine utilizations: {result.machine_utilizations}")
        click.echo(f"  Pricing rules: {result.pricing_rules}")
        if result.errors:
            click.echo(f"  Errors: {len(result.errors)}")
            for error in result.errors:
                click.echo(f"    {error}", err=True)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_reservation)
