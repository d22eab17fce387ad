"""Reservation management commands."""

import click
from fabbill.cli.error_handling import fail, handle_domain_error
from fabbill.domain.errors import DomainError, reservation_not_found
from fabbill.domain.reservation import RESERVATION_STATUSES, ReservationService
from fabbill.utils.amount_parser import format_price, parse_amount


@click.group()
def reservation_group():
    """Manage reservations."""
    pass


@reservation_group.command("create")
@click.option(
    "--status",
    type=click.Choice(RESERVATION_STATUSES),
    default="Pending Admin Approval",
    show_default=True,
    help="Initial status",
)
@click.option("--total", help="Stored total amount due (e.g. 150.00)")
@click.option("--requester", help="Name of the requester")
@click.pass_context
def create_reservation(ctx, status: str, total: str | None, requester: str | None):
    """Create a new reservation.

    Examples:
        fabbill reservation create
        fabbill reservation create --status Ongoing --total 90 --requester "Ana Cruz"
    """
    service = ReservationService(ctx.obj["db"])

    try:
        total_amount = parse_amount(total) if total is not None else None
        reservation_id = service.create_reservation(
            status=status, total_amount_due=total_amount, requester=requester
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created reservation {reservation_id} ({status})")


@reservation_group.command("list")
@click.option("--status", type=click.Choice(RESERVATION_STATUSES), help="Only this status")
@click.pass_context
def list_reservations(ctx, status: str | None):
    """List reservations."""
    service = ReservationService(ctx.obj["db"])

    reservations = service.list_reservations(status=status)
    if not reservations:
        click.echo("No reservations found.")
        return

    click.echo("\nReservations:")
    click.echo("-" * 70)
    for res in reservations:
        total = format_price(res.total_amount_due) if res.total_amount_due is not None else "-"
        requester = res.requester or ""
        click.echo(f"ID: {res.id:4d} | {res.status:24s} | {total:>12s} | {requester}")


@reservation_group.command("show")
@click.argument("reservation_id", type=int)
@click.pass_context
def show_reservation(ctx, reservation_id: int):
    """Show a reservation with its services and machine usage."""
    service = ReservationService(ctx.obj["db"])

    res = service.get_reservation(reservation_id)
    if res is None:
        fail(ctx, reservation_not_found(reservation_id))
        return

    click.echo(f"\nReservation {res.id}")
    click.echo(f"  Status:    {res.status}")
    if res.requester:
        click.echo(f"  Requester: {res.requester}")
    if res.total_amount_due is not None:
        click.echo(f"  Total due: {format_price(res.total_amount_due)}")

    lines = service.list_services(reservation_id)
    click.echo("\nServices:")
    if not lines:
        click.echo("  (none)")
    for line in lines:
        booked = f"{line.booked_minutes} mins" if line.booked_minutes is not None else "-"
        cost = format_price(line.listed_cost) if line.listed_cost is not None else "-"
        click.echo(f"  [{line.id}] {line.service_name} | {line.equipment_name} | {booked} | {cost}")

    utilizations = service.list_machine_utilizations(reservation_id)
    click.echo("\nMachine utilizations:")
    if not utilizations:
        click.echo("  (none)")
    for util in utilizations:
        click.echo(f"  #{util.id} {util.machine_name} ({util.service_name or 'no service'})")
        for entry in util.operating_times:
            day = entry.date.isoformat() if entry.date else "-"
            click.echo(f"      operated {day} {entry.start_time}-{entry.end_time}")
        for entry in util.down_times:
            day = entry.date.isoformat() if entry.date else "-"
            click.echo(f"      down {day} {entry.minutes} mins {entry.cause or ''}".rstrip())


@reservation_group.command("status")
@click.argument("reservation_id", type=int)
@click.argument("status", type=click.Choice(RESERVATION_STATUSES))
@click.pass_context
def update_status(ctx, reservation_id: int, status: str):
    """Move a reservation to a new status.

    Examples:
        fabbill reservation status 1 Approved
        fabbill reservation status 1 "Pending Payment"
    """
    service = ReservationService(ctx.obj["db"])

    try:
        service.update_status(reservation_id, status)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Reservation {reservation_id} is now {status}")


def register_commands(cli):
    """Register reservation commands with main CLI."""
    cli.add_command(reservation_group, name="reservation")
