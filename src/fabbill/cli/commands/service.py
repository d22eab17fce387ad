"""Service line commands."""

import click
from fabbill.cli.error_handling import handle_domain_error
from fabbill.domain.errors import DomainError
from fabbill.domain.reservation import ReservationService
from fabbill.utils.amount_parser import parse_amount


@click.group()
def service_group():
    """Manage reserved services."""
    pass


@service_group.command("add")
@click.argument("reservation_id", type=int)
@click.argument("service_name")
@click.option("--equipment", help="Machine(s) reserved (defaults to 'Not Specified')")
@click.option("--minutes", type=int, help="Booked minutes")
@click.option("--cost", help="Listed cost of the service")
@click.option("--id", "unique_id", help="Explicit service line ID")
@click.pass_context
def add_service(
    ctx,
    reservation_id: int,
    service_name: str,
    equipment: str | None,
    minutes: int | None,
    cost: str | None,
    unique_id: str | None,
):
    """Add a reserved service to a reservation.

    Examples:
        fabbill service add 1 "Laser Cutting" --equipment "Laser Cutter" --minutes 60
        fabbill service add 1 "3D Printing" --cost 250
    """
    service = ReservationService(ctx.obj["db"])

    try:
        listed_cost = parse_amount(cost) if cost is not None else None
        line_id = service.add_service(
            reservation_id,
            service_name=service_name,
            equipment_name=equipment,
            booked_minutes=minutes,
            listed_cost=listed_cost,
            unique_id=unique_id,
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Added service '{service_name}' (ID: {line_id})")


def register_commands(cli):
    """Register service commands with main CLI."""
    cli.add_command(service_group, name="service")
