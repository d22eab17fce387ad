"""Cost breakdown and reconciliation commands."""

import click
from fabbill.cli.error_handling import fail, handle_domain_error
from fabbill.clients.reservation_api import ReservationApiClient
from fabbill.domain.config import load_billing_config
from fabbill.domain.entities import BillingBasis, CostBreakdown
from fabbill.domain.errors import DomainError
from fabbill.domain.reconciliation import ReconciliationService, discrepancy_message
from fabbill.domain.reservation import ReservationService
from fabbill.domain.summary import format_hours
from fabbill.utils.amount_parser import format_price


def _display_breakdown(breakdown: CostBreakdown, symbol: str) -> None:
    """Print one row per service line followed by totals."""
    time_based = breakdown.basis == BillingBasis.TIME_BASED
    minutes_label = "Actual" if time_based else "Booked"

    click.echo(f"\nStatus: {breakdown.status}")
    click.echo("-" * 96)
    click.echo(
        f"{'Service':<24} {'Equipment':<20} {minutes_label:>8} {'Billed':>8} "
        f"{'Rate':>16} {'Cost':>14}"
    )
    click.echo("-" * 96)

    for line in breakdown.lines:
        minutes = line.actual_minutes if time_based else line.booked_minutes
        rate = f"{format_price(line.rate_per_unit, symbol)}/{line.pricing_unit}"
        click.echo(
            f"{line.line.service_name[:24]:<24} {line.line.equipment_name[:20]:<20} "
            f"{minutes:>8} {line.billed_minutes:>8} {rate:>16} "
            f"{format_price(line.adjusted_cost, symbol):>14}"
        )
        if line.downtime_minutes:
            click.echo(f"{'':<24} down time: {line.downtime_minutes} mins")

    summary = breakdown.summary
    click.echo("-" * 96)
    if time_based:
        click.echo(
            f"Operation time: {summary.total_actual_minutes} mins "
            f"({format_hours(summary.total_actual_minutes)} hrs), billed "
            f"{summary.total_rounded_minutes} mins ({format_hours(summary.total_rounded_minutes)} hrs)"
        )
    else:
        click.echo(
            f"Booked time: {summary.total_booked_minutes} mins "
            f"({format_hours(summary.total_booked_minutes)} hrs), billed "
            f"{summary.total_rounded_booked_minutes} mins "
            f"({format_hours(summary.total_rounded_booked_minutes)} hrs)"
        )
    if summary.total_downtime_minutes:
        click.echo(
            f"Down time: {summary.total_downtime_minutes} mins "
            f"({format_hours(summary.total_downtime_minutes)} hrs)"
        )

    click.echo(f"{'Calculated total':<24} {format_price(breakdown.calculated_total, symbol):>72}")
    stored = breakdown.reconciliation.stored_total
    if stored is not None:
        click.echo(f"{'Stored total':<24} {format_price(stored, symbol):>72}")


@click.command("breakdown")
@click.argument("reservation_id", type=int)
@click.pass_context
def breakdown(ctx, reservation_id: int):
    """Show the recalculated cost breakdown of a reservation."""
    db = ctx.obj["db"]

    try:
        config = load_billing_config()
        inputs = ReservationService(db).load_billing_inputs(reservation_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    result = ReconciliationService(config=config).recompute(inputs)
    _display_breakdown(result, config.currency_symbol)

    message = discrepancy_message(result, config)
    if message:
        click.echo(f"\nWarning: {message}")


@click.command("refresh")
@click.argument("reservation_id", type=int)
@click.option("--allow-fix", is_flag=True, help="Write the recalculated total back when it differs")
@click.option(
    "--api-url",
    envvar="FABBILL_API_URL",
    help="Booking application URL to write totals to (defaults to the local database)",
)
@click.pass_context
def refresh(ctx, reservation_id: int, allow_fix: bool, api_url: str | None):
    """Recalculate a reservation and reconcile its stored total.

    Without --allow-fix the stored total is only compared, never changed.

    Examples:
        fabbill refresh 12
        fabbill refresh 12 --allow-fix
        fabbill refresh 12 --allow-fix --api-url https://fablab.example.com
    """
    db = ctx.obj["db"]

    try:
        config = load_billing_config()
        inputs = ReservationService(db).load_billing_inputs(reservation_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    writer = ReservationApiClient(api_url) if api_url else db
    outcome = ReconciliationService(writer=writer, config=config).refresh(
        inputs, reservation_id=reservation_id, allow_fix=allow_fix
    )

    _display_breakdown(outcome.breakdown, config.currency_symbol)

    message = discrepancy_message(outcome.breakdown, config)
    if message:
        click.echo(f"\nWarning: {message}")

    click.echo(outcome.message)
    if outcome.error:
        fail(ctx, outcome.error)


def register_commands(cli):
    """Register breakdown and refresh commands with main CLI."""
    cli.add_command(breakdown)
    cli.add_command(refresh)
