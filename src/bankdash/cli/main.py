"""Main CLI application for BankDash.

This module provides the unified entry point for the BankDash CLI, organizing
commands into groups for connection review, synchronization and the connector
metadata cache.
"""

import logging
from typing import Annotated

import typer

from ..config import set_current_profile
from ..logging import setup_logging
from .commands import cache, connections, sync

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="bankdash",
    help="BankDash: bank connection synchronization and reconciliation",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="User profile to use (e.g., alice, household). Default: default",
            envvar="BANKDASH_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for BankDash CLI.

    Each profile loads its API credentials from .env.{profile} files
    (e.g., .env.alice) on top of BANKDASH_* environment variables.

    Examples:
      bankdash connections list                 # Grouped connections
      bankdash --profile=alice sync all         # Sync Alice's connections
      bankdash connections list --filter duplicates

    Can also be set via BANKDASH_PROFILE environment variable.
    """
    setup_logging(cli_mode=True, verbose=verbose)

    try:
        set_current_profile(profile)
    except ValueError as e:
        logger.error(str(e))
        raise typer.BadParameter(str(e)) from e

    logger.debug(f"👤 Using profile: {profile}")


app.add_typer(
    connections.app, name="connections", help="Review and clean up connections"
)
app.add_typer(sync.app, name="sync", help="Synchronize connections")
app.add_typer(cache.app, name="cache", help="Connector metadata cache")


def main() -> None:
    """Entry point for the BankDash CLI application."""
    app()


if __name__ == "__main__":
    main()
