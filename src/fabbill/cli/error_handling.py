"""CLI error reporting."""

import click

from fabbill.domain.errors import DomainError


def fail(ctx: click.Context, message: str) -> None:
    """Print ``Error: <message>`` to stderr and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def handle_domain_error(ctx: click.Context, error: DomainError | FileNotFoundError) -> None:
    """Report a failed domain operation and exit."""
    fail(ctx, str(error))
