"""Grouped, annotated connection list for presentation code.

Connections are grouped per connector instance (``connector_uuid``) and each
connection carries its accounts, duplicate info and recommendation. The view
is recomputed from the orchestrator's current snapshot on every call.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from ..cache.metadata_cache import describe_connector
from ..schemas import (
    Account,
    Connection,
    Connector,
    DuplicateInfo,
    Recommendation,
    RecommendedAction,
)
from .recommendations import ConnectionWithAccounts, recommend_all
from .similarity import DuplicateGroup, DuplicateIndex, group_accounts_by_connection

if TYPE_CHECKING:
    from ..sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

_ACTION_ORDER = {
    RecommendedAction.KEEP: 0,
    RecommendedAction.REVIEW: 1,
    RecommendedAction.DELETE: 2,
}


class FilterMode(Enum):
    """Which connections the grouped view shows."""

    ALL = "all"
    DUPLICATES = "duplicates"
    ERRORS = "errors"
    RECOMMENDATIONS = "recommendations"


@dataclass(frozen=True)
class ConnectionWithDetails(ConnectionWithAccounts):
    """A connection annotated for display."""

    bank_name: str = ""
    duplicate_info: DuplicateInfo | None = None
    recommendation: Recommendation = field(default_factory=Recommendation)

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_info is not None

    @property
    def has_problem(self) -> bool:
        """Errors filter: reported state or error, or an inactive connection."""
        return self.connection.needs_attention or not self.connection.active

    @property
    def total_balance(self) -> float:
        return sum(a.balance for a in self.accounts)


@dataclass(frozen=True)
class ConnectorGroup:
    """All connections sharing one connector instance."""

    connector_uuid: str
    connector_id: int
    bank_name: str
    color: str
    capabilities: tuple[str, ...]
    connections: tuple[ConnectionWithDetails, ...]

    @property
    def total_accounts(self) -> int:
        return sum(c.account_count for c in self.connections)

    @property
    def total_balance(self) -> float:
        return sum(c.total_balance for c in self.connections)

    @property
    def healthy_connections(self) -> int:
        return sum(1 for c in self.connections if c.connection.is_healthy)

    @property
    def duplicate_connections(self) -> int:
        return sum(1 for c in self.connections if c.is_duplicate)


def _sort_key(item: ConnectionWithDetails) -> tuple[int, int, float]:
    return (
        _ACTION_ORDER[item.recommendation.action],
        -item.account_count,
        -item.last_update.timestamp(),
    )


def build_connector_groups(
    connections: Sequence[Connection],
    accounts: Iterable[Account],
    connectors: Mapping[int, Connector],
    index: DuplicateIndex | None = None,
) -> list[ConnectorGroup]:
    """Group and annotate connections, sorted by bank name.

    Args:
        connections: Connection snapshot
        accounts: Account snapshot
        connectors: Connector metadata (may be incomplete or empty)
        index: Precomputed duplicate index for this snapshot

    Returns:
        Connector groups, each with connections sorted keep, review, delete,
        then by account count and recency (both descending)
    """
    account_list = list(accounts)
    if index is None:
        index = DuplicateIndex.from_snapshot(connections, account_list)
    recommendations = recommend_all(connections, account_list, index)
    accounts_by_connection = group_accounts_by_connection(account_list)

    grouped: dict[str, list[ConnectionWithDetails]] = {}
    headers: dict[str, tuple[int, str, str, tuple[str, ...]]] = {}

    for connection in connections:
        info = describe_connector(connection.id_connector, connectors)
        grouped.setdefault(connection.connector_uuid, []).append(
            ConnectionWithDetails(
                connection=connection,
                accounts=tuple(accounts_by_connection.get(connection.id, ())),
                bank_name=info.name,
                duplicate_info=index.info_for(connection.id),
                recommendation=recommendations[connection.id],
            )
        )
        headers.setdefault(
            connection.connector_uuid,
            (connection.id_connector, info.name, info.color, info.capabilities),
        )

    groups = []
    for uuid, items in grouped.items():
        connector_id, bank_name, color, capabilities = headers[uuid]
        groups.append(
            ConnectorGroup(
                connector_uuid=uuid,
                connector_id=connector_id,
                bank_name=bank_name,
                color=color,
                capabilities=capabilities,
                connections=tuple(sorted(items, key=_sort_key)),
            )
        )

    return sorted(groups, key=lambda g: g.bank_name.casefold())


def _matches(item: ConnectionWithDetails, mode: FilterMode) -> bool:
    if mode is FilterMode.DUPLICATES:
        return item.is_duplicate
    if mode is FilterMode.ERRORS:
        return item.has_problem
    if mode is FilterMode.RECOMMENDATIONS:
        return item.recommendation.action is RecommendedAction.DELETE
    return True


def filter_groups(
    groups: Iterable[ConnectorGroup], mode: FilterMode
) -> list[ConnectorGroup]:
    """Keep only matching connections and drop groups left empty."""
    groups = list(groups)
    if mode is FilterMode.ALL:
        return groups

    filtered = []
    for group in groups:
        kept = tuple(c for c in group.connections if _matches(c, mode))
        if kept:
            filtered.append(replace(group, connections=kept))
    return filtered


class ReconciliationView:
    """Composes orchestrator state with duplicate detection and recommendations."""

    def __init__(self, orchestrator: "SyncOrchestrator"):
        self._orchestrator = orchestrator

    def duplicate_index(self) -> DuplicateIndex:
        snapshot = self._orchestrator.snapshot
        return DuplicateIndex.from_snapshot(snapshot.connections, snapshot.accounts)

    def duplicate_groups(self) -> list[DuplicateGroup]:
        """Duplicate groups ordered by group key."""
        index = self.duplicate_index()
        return sorted(index.groups.values(), key=lambda g: g.key)

    def recommendations(self) -> dict[int, Recommendation]:
        snapshot = self._orchestrator.snapshot
        return recommend_all(snapshot.connections, snapshot.accounts)

    def connector_groups(
        self, mode: FilterMode = FilterMode.ALL
    ) -> list[ConnectorGroup]:
        snapshot = self._orchestrator.snapshot
        connectors = self._orchestrator.connector_map()
        groups = build_connector_groups(
            snapshot.connections, snapshot.accounts, connectors
        )
        logger.debug(
            f"Built {len(groups)} connector groups for "
            f"{len(snapshot.connections)} connections"
        )
        return filter_groups(groups, mode)
