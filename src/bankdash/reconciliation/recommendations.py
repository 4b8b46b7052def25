"""Keep/delete/review recommendations for duplicate connections.

A recommendation only compares a connection with the other members of its
duplicate group, so the outcome does not depend on evaluation order.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from ..schemas import EPOCH, Account, Connection, Recommendation, RecommendedAction
from .similarity import DuplicateIndex, group_accounts_by_connection

KEEP_REASON = "more accounts, most recent data"
NO_ACCOUNTS_REASON = "no associated accounts"
FEWER_ACCOUNTS_REASON = "fewer accounts than a duplicate peer"
REVIEW_REASON = "manual review required"


@dataclass(frozen=True)
class ConnectionWithAccounts:
    """A connection together with the accounts it owns."""

    connection: Connection
    accounts: tuple[Account, ...] = ()

    @property
    def id(self) -> int:
        return self.connection.id

    @property
    def account_count(self) -> int:
        return len(self.accounts)

    @property
    def last_update(self) -> datetime:
        """Last update time, with never-updated connections sorting first."""
        return self.connection.last_update or EPOCH


def recommend(
    target: ConnectionWithAccounts, group: Sequence[ConnectionWithAccounts]
) -> Recommendation:
    """Recommend an action for ``target`` within its duplicate ``group``.

    Args:
        target: The connection to evaluate
        group: All members of the duplicate group, ``target`` included

    Returns:
        Recommendation: ``keep`` without reason when there are no peers
    """
    peers = [member for member in group if member.id != target.id]
    if not peers:
        return Recommendation()

    has_most_accounts = all(target.account_count >= p.account_count for p in peers)
    is_newest = all(target.last_update >= p.last_update for p in peers)

    if has_most_accounts and is_newest:
        return Recommendation(action=RecommendedAction.KEEP, reason=KEEP_REASON)
    if target.account_count == 0:
        return Recommendation(
            action=RecommendedAction.DELETE, reason=NO_ACCOUNTS_REASON
        )
    if not has_most_accounts:
        return Recommendation(
            action=RecommendedAction.DELETE, reason=FEWER_ACCOUNTS_REASON
        )
    return Recommendation(action=RecommendedAction.REVIEW, reason=REVIEW_REASON)


def recommend_all(
    connections: Sequence[Connection],
    accounts: Iterable[Account],
    index: DuplicateIndex | None = None,
) -> dict[int, Recommendation]:
    """Recommendations for every connection in a snapshot.

    Duplicate groups are computed first (or taken from ``index``) and every
    connection is then evaluated against its complete group.
    """
    account_list = list(accounts)
    if index is None:
        index = DuplicateIndex.from_snapshot(connections, account_list)

    accounts_by_connection = group_accounts_by_connection(account_list)
    enriched = {
        c.id: ConnectionWithAccounts(
            connection=c, accounts=tuple(accounts_by_connection.get(c.id, ()))
        )
        for c in connections
    }

    recommendations: dict[int, Recommendation] = {}
    for connection_id, item in enriched.items():
        duplicate_group = index.group_for(connection_id)
        if duplicate_group is None:
            recommendations[connection_id] = Recommendation()
            continue
        members = [
            enriched[member_id]
            for member_id in duplicate_group.connection_ids
            if member_id in enriched
        ]
        recommendations[connection_id] = recommend(item, members)

    return recommendations
