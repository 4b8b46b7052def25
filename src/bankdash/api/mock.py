"""In-memory aggregation API with demo data.

Used when ``api.mode`` is ``mock``: three banks, one connection each, a handful
of accounts. Sync refreshes timestamps, delete removes the connection and its
accounts. Thread-safe so it can back concurrent bulk syncs.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from ..errors import NotFoundError
from ..schemas import Account, Connection, Connector, utc_now

logger = logging.getLogger(__name__)

MOCK_DOMAIN = "mock"


def _demo_connectors() -> list[Connector]:
    banks = [
        (101, "BoursoBank", "#00A651", ("checking", "savings", "market")),
        (102, "Fortuneo", "#FF6900", ("loan", "card")),
        (103, "Bourse Direct", "#003366", ("savings", "market", "card")),
    ]
    return [
        Connector(
            id=connector_id,
            name=name,
            color=color,
            slug=name.lower().replace(" ", "-"),
            uuid=f"{name.lower().replace(' ', '-')}-demo",
            capabilities=("accounts", "transactions"),
            account_types=account_types,
            account_usages=("PRIV",),
        )
        for connector_id, name, color, account_types in banks
    ]


def _demo_connections(now: datetime) -> list[Connection]:
    rows = [
        (8, 101, "boursobank-demo-uuid", timedelta(0), timedelta(days=1)),
        (17, 102, "fortuneo-demo-uuid", timedelta(hours=2), timedelta(days=2)),
        (25, 103, "bourse-direct-demo-uuid", timedelta(hours=1), timedelta(days=4)),
    ]
    return [
        Connection(
            id=connection_id,
            id_user=1,
            id_connector=connector_id,
            connector_uuid=uuid,
            active=True,
            last_update=now - age,
            created=now - created_ago,
            expire=now + timedelta(days=30),
            next_try=now + timedelta(hours=1),
        )
        for connection_id, connector_id, uuid, age, created_ago in rows
    ]


def _demo_accounts() -> list[Account]:
    rows = [
        (1, 8, "00012345678", "FR7630001007941234567890185", "checking", 2450.30),
        (2, 8, "00087654321", "FR7630001007948765432190112", "savings", 12000.00),
        (3, 17, "4970XXXXXXXX1234", None, "card", -320.45),
        (4, 17, "LN-778812", None, "loan", -85000.00),
        (5, 25, "PEA-551020", None, "market", 18342.12),
    ]
    return [
        Account(
            id=account_id,
            id_connection=connection_id,
            number=number,
            iban=iban,
            type=account_type,
            balance=balance,
        )
        for account_id, connection_id, number, iban, account_type, balance in rows
    ]


class MockAggregationApi:
    """Aggregation API stand-in serving deterministic demo data."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = threading.Lock()
        self._connectors = _demo_connectors()
        self._connections = {c.id: c for c in _demo_connections(clock())}
        self._accounts = _demo_accounts()

    @property
    def domain(self) -> str:
        return MOCK_DOMAIN

    def fetch_connections(self) -> list[Connection]:
        with self._lock:
            return list(self._connections.values())

    def fetch_accounts(self) -> list[Account]:
        with self._lock:
            return list(self._accounts)

    def sync_connection(self, connection_id: int) -> Connection:
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                raise NotFoundError(
                    f"Failed to sync connection {connection_id}: not found",
                    status_code=404,
                )
            now = self._clock()
            updated = connection.model_copy(
                update={"last_update": now, "next_try": now + timedelta(hours=1)}
            )
            self._connections[connection_id] = updated
        logger.debug(f"Mock: synced connection {connection_id}")
        return updated

    def delete_connection(self, connection_id: int) -> None:
        with self._lock:
            if self._connections.pop(connection_id, None) is None:
                raise NotFoundError(
                    f"Connection {connection_id} not found. "
                    "The connection may have already been deleted.",
                    status_code=404,
                )
            self._accounts = [
                a for a in self._accounts if a.id_connection != connection_id
            ]
        logger.debug(f"Mock: deleted connection {connection_id}")

    def fetch_connector_catalog(self) -> list[Connector]:
        return list(self._connectors)
