"""Connection review commands for BankDash CLI.

Lists connections grouped by bank with duplicate detection and keep/delete
recommendations, and deletes connections flagged for removal.
"""

import logging
from datetime import datetime

import typer

from ...errors import AggregationApiError
from ...reconciliation import FilterMode, ReconciliationView
from ...schemas import RecommendedAction
from ..session import orchestrator_session

app = typer.Typer(help="Review and clean up bank connections", no_args_is_help=True)
logger = logging.getLogger(__name__)

_ACTION_ICONS = {
    RecommendedAction.KEEP: "✅",
    RecommendedAction.REVIEW: "🔍",
    RecommendedAction.DELETE: "🗑️ ",
}


def _format_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "never"


@app.command("list")
def list_connections(
    filter_mode: FilterMode = typer.Option(
        FilterMode.ALL,
        "--filter",
        "-f",
        case_sensitive=False,
        help="Show all connections, duplicates, errors, or recommended deletions",
    ),
) -> None:
    """List connections grouped by bank.

    Example:
        bankdash connections list --filter duplicates
    """
    with orchestrator_session() as orchestrator:
        groups = ReconciliationView(orchestrator).connector_groups(filter_mode)

    if not groups:
        logger.info("No connections match the selected filter")
        return

    for group in groups:
        print(f"\n🏦 {group.bank_name} [{group.color}]")
        print(
            f"   {len(group.connections)} connection(s), "
            f"{group.total_accounts} account(s), balance {group.total_balance:.2f}, "
            f"{group.healthy_connections} healthy, "
            f"{group.duplicate_connections} duplicate(s)"
        )
        for item in group.connections:
            connection = item.connection
            action = item.recommendation.action
            line = (
                f"   {_ACTION_ICONS[action]} #{connection.id} {action.value:<6} "
                f"accounts={item.account_count} "
                f"updated={_format_time(connection.last_update)}"
            )
            if not connection.active:
                line += " (inactive)"
            if connection.needs_attention:
                line += f" ⚠️  {connection.error or connection.state}"
            print(line)
            if item.duplicate_info:
                info = item.duplicate_info
                others = ", ".join(f"#{i}" for i in info.duplicate_with)
                print(
                    f"      duplicate of {others}: {info.reason} "
                    f"({info.type.value}, {info.confidence.value} confidence)"
                )
            if item.recommendation.reason:
                print(f"      → {item.recommendation.reason}")
    print()


@app.command("summary")
def summary() -> None:
    """Show connection health counts and per-connection totals."""
    with orchestrator_session() as orchestrator:
        counts = orchestrator.status_summary()
        enriched = orchestrator.connections_with_bank_info()

    print("\n📊 Connection summary")
    print(f"   Total:       {counts.total}")
    print(f"   Active:      {counts.active}")
    print(f"   Inactive:    {counts.inactive}")
    print(f"   With errors: {counts.with_errors}")
    print(f"   Healthy:     {counts.healthy}")
    print()
    for item in enriched:
        banks = ", ".join(item.bank_names) or "no accounts"
        print(
            f"   #{item.connection.id} {banks}: {item.account_count} account(s), "
            f"balance {item.total_balance:.2f}"
        )
    print()


@app.command("duplicates")
def duplicates() -> None:
    """Show duplicate groups with the recommended action for each member."""
    with orchestrator_session() as orchestrator:
        view = ReconciliationView(orchestrator)
        groups = view.duplicate_groups()
        recommendations = view.recommendations()

    if not groups:
        logger.info("✅ No duplicate connections found")
        return

    for group in groups:
        print(
            f"\n🔁 Group {group.key}: {group.type.value} "
            f"({group.confidence.value} confidence)"
        )
        for connection_id in group.connection_ids:
            recommendation = recommendations[connection_id]
            reason = f" ({recommendation.reason})" if recommendation.reason else ""
            print(f"   #{connection_id}: {recommendation.action.value}{reason}")
    print()


@app.command("delete")
def delete(
    connection_id: int = typer.Argument(..., help="Connection ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a connection and its accounts.

    Example:
        bankdash connections delete 17 --yes
    """
    if not yes:
        typer.confirm(
            f"Delete connection {connection_id} and all of its accounts?", abort=True
        )

    with orchestrator_session(load=False) as orchestrator:
        try:
            orchestrator.delete_connection(connection_id)
        except AggregationApiError as e:
            logger.error(f"❌ {e}")
            raise typer.Exit(1) from e

    logger.info(f"✅ Deleted connection {connection_id}")
