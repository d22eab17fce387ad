"""Machine usage commands."""

import click
from fabbill.cli.error_handling import handle_domain_error
from fabbill.domain.errors import DomainError
from fabbill.domain.reservation import ReservationService
from fabbill.utils.date_parser import parse_date


def _parse_day(ctx, value: str | None):
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        handle_domain_error(ctx, e)


@click.group()
def usage_group():
    """Record machine usage."""
    pass


@usage_group.command("add")
@click.argument("reservation_id", type=int)
@click.argument("machine_name")
@click.option("--service", "service_name", help="Service the machine was used for")
@click.pass_context
def add_utilization(ctx, reservation_id: int, machine_name: str, service_name: str | None):
    """Record that a machine was used under a reservation.

    Examples:
        fabbill usage add 1 "Laser Cutter" --service "Laser Cutting"
    """
    service = ReservationService(ctx.obj["db"])

    try:
        utilization_id = service.record_machine_utilization(
            reservation_id, machine_name, service_name
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Recorded machine '{machine_name}' (utilization ID: {utilization_id})")


@usage_group.command("operating")
@click.argument("utilization_id", type=int)
@click.argument("start_time")
@click.argument("end_time")
@click.option("--date", "day", help="Date of operation (YYYY-MM-DD, 'today', 'yesterday')")
@click.option("--operator", help="Machine operator")
@click.option("--product", help="Type of product")
@click.pass_context
def add_operating_time(
    ctx,
    utilization_id: int,
    start_time: str,
    end_time: str,
    day: str | None,
    operator: str | None,
    product: str | None,
):
    """Add an operating interval (HH:MM to HH:MM) to a machine utilization.

    An end time before the start time counts as running past midnight.

    Examples:
        fabbill usage operating 1 09:00 09:40 --date today
        fabbill usage operating 1 22:00 02:00
    """
    service = ReservationService(ctx.obj["db"])
    on_date = _parse_day(ctx, day)

    try:
        service.add_operating_time(
            utilization_id,
            start_time,
            end_time,
            on_date=on_date,
            operator_name=operator,
            type_of_product=product,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Added operating time {start_time}-{end_time}")


@usage_group.command("downtime")
@click.argument("utilization_id", type=int)
@click.argument("minutes", type=click.IntRange(min=0))
@click.option("--date", "day", help="Date of the down time")
@click.option("--cause", help="Cause of the down time")
@click.option("--operator", help="Machine operator")
@click.option("--product", help="Type of product")
@click.pass_context
def add_down_time(
    ctx,
    utilization_id: int,
    minutes: int,
    day: str | None,
    cause: str | None,
    operator: str | None,
    product: str | None,
):
    """Add down time minutes to a machine utilization."""
    service = ReservationService(ctx.obj["db"])
    on_date = _parse_day(ctx, day)

    try:
        service.add_down_time(
            utilization_id,
            minutes,
            on_date=on_date,
            cause=cause,
            operator_name=operator,
            type_of_product=product,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Added {minutes} mins of down time")


def register_commands(cli):
    """Register usage commands with main CLI."""
    cli.add_command(usage_group, name="usage")
