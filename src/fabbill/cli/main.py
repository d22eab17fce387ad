"""Main CLI entry point."""

import logging

import click
from fabbill.database.factories import create_sqlite_database

# Import and register all commands at module level
from fabbill.cli.commands import (
    reservation,
    service,
    usage,
    pricing,
    import_cmd,
    breakdown,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FABBILL_DB_PATH environment variable)",
    envvar="FABBILL_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Fabbill - FabLab reservation billing.

    Recompute reservation costs from recorded machine usage, compare them
    with the stored totals and correct totals that drifted.
    """
    ctx.ensure_object(dict)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None and "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
reservation.register_commands(cli)
service.register_commands(cli)
usage.register_commands(cli)
pricing.register_commands(cli)
import_cmd.register_commands(cli)
breakdown.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
