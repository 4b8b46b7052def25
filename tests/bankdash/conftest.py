"""Shared pytest fixtures for bankdash tests.

Provides settings isolation, a controllable clock and an in-memory fake of the
aggregation API with per-connection failure injection.
"""

import threading
from collections.abc import Generator, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from bankdash.config import clear_settings_cache, set_current_profile
from bankdash.errors import NotFoundError
from bankdash.schemas import Account, Connection, Connector

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def clean_profile_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate every test from cached settings and BANKDASH_* variables."""
    import os

    for key in list(os.environ):
        if key.startswith("BANKDASH_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    set_current_profile("default")
    yield
    clear_settings_cache()
    set_current_profile("default")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_connection(
    connection_id: int,
    id_connector: int | None = None,
    connector_uuid: str | None = None,
    **kwargs: Any,
) -> Connection:
    """Connection with unique connector identity unless told otherwise."""
    return Connection(
        id=connection_id,
        id_connector=id_connector if id_connector is not None else 1000 + connection_id,
        connector_uuid=connector_uuid or f"uuid-{connection_id}",
        **kwargs,
    )


def make_account(
    account_id: int,
    id_connection: int,
    iban: str | None = None,
    number: str | None = None,
    balance: float = 0.0,
    **kwargs: Any,
) -> Account:
    return Account(
        id=account_id,
        id_connection=id_connection,
        iban=iban,
        number=number,
        balance=balance,
        **kwargs,
    )


def make_connector(connector_id: int, name: str, color: str | None = None) -> Connector:
    return Connector(id=connector_id, name=name, color=color)


class FakeApi:
    """In-memory aggregation API with failure injection and blocking hooks."""

    def __init__(
        self,
        connections: Iterable[Connection] = (),
        accounts: Iterable[Account] = (),
        connectors: Iterable[Connector] = (),
        domain: str = "https://api.test/2.0/",
        synced_at: datetime = NOW,
    ):
        self.domain = domain
        self.connections = {c.id: c for c in connections}
        self.accounts = list(accounts)
        self.connectors = list(connectors)
        self.synced_at = synced_at
        self.sync_errors: dict[int, Exception] = {}
        self.delete_errors: dict[int, Exception] = {}
        self.fetch_error: Exception | None = None
        self.sync_calls: list[int] = []
        self.blocked: set[int] = set()
        self.started = threading.Event()
        self.release = threading.Event()
        self._lock = threading.Lock()

    def fetch_connections(self) -> list[Connection]:
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.connections.values())

    def fetch_accounts(self) -> list[Account]:
        return list(self.accounts)

    def sync_connection(self, connection_id: int) -> Connection:
        with self._lock:
            self.sync_calls.append(connection_id)
        if connection_id in self.blocked:
            self.started.set()
            self.release.wait(5)
        if connection_id in self.sync_errors:
            raise self.sync_errors[connection_id]
        connection = self.connections[connection_id]
        return connection.model_copy(update={"last_update": self.synced_at})

    def delete_connection(self, connection_id: int) -> None:
        if connection_id in self.delete_errors:
            raise self.delete_errors[connection_id]
        if self.connections.pop(connection_id, None) is None:
            raise NotFoundError(f"Connection {connection_id} not found", 404)

    def fetch_connector_catalog(self) -> list[Connector]:
        return list(self.connectors)
