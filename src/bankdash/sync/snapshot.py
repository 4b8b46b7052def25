"""Immutable mirror of the remote connections and accounts."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from ..schemas import Account, Connection, utc_now


@dataclass(frozen=True)
class ConnectionSnapshot:
    """Point-in-time copy of the user's connections and accounts.

    Updates return a new snapshot; existing instances are never mutated, so
    readers holding a reference always see a consistent view.
    """

    connections: tuple[Connection, ...] = ()
    accounts: tuple[Account, ...] = ()
    fetched_at: datetime = field(default_factory=utc_now)

    @classmethod
    def build(
        cls,
        connections: Iterable[Connection],
        accounts: Iterable[Account],
        fetched_at: datetime | None = None,
    ) -> "ConnectionSnapshot":
        return cls(
            connections=tuple(connections),
            accounts=tuple(accounts),
            fetched_at=fetched_at or utc_now(),
        )

    @property
    def connector_ids(self) -> set[int]:
        return {c.id_connector for c in self.connections}

    def get_connection(self, connection_id: int) -> Connection | None:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None

    def accounts_for(self, connection_id: int) -> tuple[Account, ...]:
        return tuple(a for a in self.accounts if a.id_connection == connection_id)

    def accounts_by_connection(self) -> dict[int, tuple[Account, ...]]:
        grouped: dict[int, list[Account]] = {c.id: [] for c in self.connections}
        for account in self.accounts:
            grouped.setdefault(account.id_connection, []).append(account)
        return {k: tuple(v) for k, v in grouped.items()}

    def with_connection(self, connection: Connection) -> "ConnectionSnapshot":
        """Replace the record with the same ID, or append it if unknown."""
        replaced = False
        connections = []
        for existing in self.connections:
            if existing.id == connection.id:
                connections.append(connection)
                replaced = True
            else:
                connections.append(existing)
        if not replaced:
            connections.append(connection)
        return replace(self, connections=tuple(connections))

    def with_connections(
        self, updated: Iterable[Connection]
    ) -> "ConnectionSnapshot":
        snapshot = self
        for connection in updated:
            snapshot = snapshot.with_connection(connection)
        return snapshot

    def without_connection(self, connection_id: int) -> "ConnectionSnapshot":
        """Drop a connection together with every account it owns."""
        return replace(
            self,
            connections=tuple(c for c in self.connections if c.id != connection_id),
            accounts=tuple(
                a for a in self.accounts if a.id_connection != connection_id
            ),
        )
