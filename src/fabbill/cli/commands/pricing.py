"""Rate card commands."""

import click
from fabbill.cli.error_handling import handle_domain_error
from fabbill.domain.errors import DomainError
from fabbill.domain.pricing import PricingService
from fabbill.utils.amount_parser import format_price, parse_amount


@click.group()
def pricing_group():
    """Manage service pricing."""
    pass


@pricing_group.command("set")
@click.argument("service_name")
@click.argument("cost")
@click.option("--per", "unit", default="hour", show_default=True, help="Pricing unit: min, hour or day")
@click.pass_context
def set_rule(ctx, service_name: str, cost: str, unit: str):
    """Set the cost of a service per pricing unit.

    Examples:
        fabbill pricing set "Laser Cutting" 50 --per hour
        fabbill pricing set "3D Printing" 5 --per min
    """
    service = PricingService(ctx.obj["db"])

    try:
        service.set_rule(service_name, parse_amount(cost), unit)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
        return

    rule = service.get_rule(service_name.strip())
    click.echo(f"Set '{rule.service_name}' to {format_price(rule.cost_per_unit)} per {rule.unit}")


@pricing_group.command("list")
@click.pass_context
def list_rules(ctx):
    """List pricing rules."""
    service = PricingService(ctx.obj["db"])

    rules = service.list_rules()
    if not rules:
        click.echo("No pricing rules found.")
        return

    click.echo("\nPricing:")
    click.echo("-" * 60)
    for rule in rules:
        click.echo(f"{rule.service_name:36s} {format_price(rule.cost_per_unit):>12s} / {rule.unit}")


@pricing_group.command("delete")
@click.argument("service_name")
@click.pass_context
def delete_rule(ctx, service_name: str):
    """Delete the pricing rule of a service."""
    service = PricingService(ctx.obj["db"])

    try:
        service.delete_rule(service_name)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Deleted pricing for '{service_name}'")


def register_commands(cli):
    """Register pricing commands with main CLI."""
    cli.add_command(pricing_group, name="pricing")
