"""Synchronization commands for BankDash CLI."""

import logging

import typer

from ...errors import AggregationApiError
from ..session import orchestrator_session

app = typer.Typer(help="Synchronize bank connections", no_args_is_help=True)
logger = logging.getLogger(__name__)


@app.command("all")
def sync_all() -> None:
    """Sync every active connection.

    Individual failures are reported but do not stop the other syncs. Exits
    with code 1 only when nothing could be synced.
    """
    with orchestrator_session(load=False) as orchestrator:
        synced = orchestrator.sync_all()
        status = orchestrator.status

    if status.error:
        logger.error(f"❌ Sync failed: {status.error}")
        raise typer.Exit(1)

    logger.info(f"✅ Synced {len(synced)} connection(s)")
    for connection in synced:
        print(f"   #{connection.id} updated {connection.last_update}")


@app.command("one")
def sync_one(
    connection_id: int = typer.Argument(..., help="Connection ID to sync"),
) -> None:
    """Sync a single connection.

    Example:
        bankdash sync one 8
    """
    with orchestrator_session(load=False) as orchestrator:
        try:
            connection = orchestrator.sync_one(connection_id)
        except AggregationApiError as e:
            logger.error(f"❌ {e}")
            raise typer.Exit(1) from e

    logger.info(f"✅ Synced connection {connection.id}")
    print(f"   Last update: {connection.last_update}")
    print(f"   Next sync:   {connection.next_try}")
