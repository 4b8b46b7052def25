"""Synchronization of connections against the aggregation API.

The orchestrator owns the connection snapshot and a single ``SyncStatus``.
Only one operation (refresh, single sync, bulk sync or delete) may run at a
time; starting another while one is in flight raises ``SyncBusyError``.

Every operation captures the current generation when it starts. Calling
``cancel_pending`` bumps the generation, so completions of operations started
before it are dropped instead of overwriting newer state.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from ..api.base import AggregationApi
from ..cache.metadata_cache import MetadataCache, fallback_connector_name
from ..errors import AggregationApiError, SyncBusyError, SyncTimeoutError
from ..schemas import Account, Connection, Connector, SyncStatus, utc_now
from .snapshot import ConnectionSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SYNC_TIMEOUT = 60.0
DEFAULT_MAX_WORKERS = 8


@dataclass(frozen=True)
class ConnectionStatusSummary:
    """Connection counts by health."""

    total: int
    active: int
    inactive: int
    with_errors: int
    healthy: int


@dataclass(frozen=True)
class ConnectionWithBankInfo:
    """A connection enriched with its bank names and account totals."""

    connection: Connection
    bank_names: tuple[str, ...]
    account_count: int
    total_balance: float
    accounts: tuple[Account, ...]


class SyncOrchestrator:
    """Runs sync and delete operations and mirrors their results locally."""

    def __init__(
        self,
        api: AggregationApi,
        metadata_cache: MetadataCache,
        sync_timeout: float = DEFAULT_SYNC_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the orchestrator.

        Args:
            api: Aggregation API used for every remote call
            metadata_cache: Connector metadata shared with presentation code
            sync_timeout: Deadline in seconds for each remote call
            max_workers: Maximum concurrent remote calls during a bulk sync
            clock: Source of the current time (aware UTC datetimes)
        """
        self._api = api
        self._metadata_cache = metadata_cache
        self._sync_timeout = sync_timeout
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="bankdash-sync"
        )
        self._lock = threading.Lock()
        self._status = SyncStatus()
        self._snapshot = ConnectionSnapshot()
        self._generation = 0

    def __enter__(self) -> "SyncOrchestrator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Stop the worker pool without waiting for in-flight calls."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    @property
    def api(self) -> AggregationApi:
        return self._api

    @property
    def metadata_cache(self) -> MetadataCache:
        return self._metadata_cache

    @property
    def status(self) -> SyncStatus:
        """Current sync status (an immutable copy)."""
        with self._lock:
            return self._status

    @property
    def snapshot(self) -> ConnectionSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    # Operations

    def refresh(self) -> ConnectionSnapshot:
        """Load connections and accounts into a new snapshot.

        Raises:
            SyncBusyError: If another operation is running
            AggregationApiError: If either fetch fails
        """
        generation = self._begin(None)
        try:
            connections = self._call(self._api.fetch_connections)
            accounts = self._call(self._api.fetch_accounts)
        except AggregationApiError as e:
            logger.error(f"Failed to load connections and accounts: {e}")
            self._finish(generation, error=e.message, synced=False)
            raise
        except Exception as e:
            logger.exception("Unexpected error loading connections and accounts")
            self._finish(generation, error=str(e), synced=False)
            raise

        snapshot = ConnectionSnapshot.build(connections, accounts, self._clock())
        self._finish(generation, synced=False, update=lambda _: snapshot)
        logger.info(
            f"Loaded {len(snapshot.connections)} connections and "
            f"{len(snapshot.accounts)} accounts"
        )
        return snapshot

    def sync_one(self, connection_id: int) -> Connection:
        """Trigger a remote resync of one connection.

        On success the refreshed record replaces the previous one in the
        snapshot. On failure the snapshot is left untouched, the error is
        recorded in the status and re-raised. Failures are never retried.

        Raises:
            SyncBusyError: If another operation is running
            AggregationApiError: If the remote sync fails or times out
        """
        generation = self._begin(connection_id)
        try:
            updated = self._call(self._api.sync_connection, connection_id)
        except AggregationApiError as e:
            logger.error(f"Failed to sync connection {connection_id}: {e}")
            self._finish(generation, error=e.message, synced=False)
            raise
        except Exception as e:
            logger.exception(f"Unexpected error syncing connection {connection_id}")
            self._finish(generation, error=str(e), synced=False)
            raise

        if self._finish(generation, update=lambda s: s.with_connection(updated)):
            logger.info(f"Synced connection {connection_id}")
        return updated

    def sync_all(self) -> list[Connection]:
        """Resync every active connection concurrently.

        Individual failures are logged and excluded from the result. The
        status only carries an error when the connection list could not be
        fetched or when every single sync failed.

        Returns:
            The successfully synced connections

        Raises:
            SyncBusyError: If another operation is running
        """
        generation = self._begin(None)
        try:
            connections = self._call(self._api.fetch_connections)
        except AggregationApiError as e:
            logger.error(f"Failed to fetch connections for bulk sync: {e}")
            self._finish(generation, error=e.message, synced=False)
            return []
        except Exception as e:
            logger.exception("Unexpected error fetching connections for bulk sync")
            self._finish(generation, error=str(e), synced=False)
            raise

        active = [c for c in connections if c.active]
        logger.info(f"Syncing {len(active)} of {len(connections)} connections")

        try:
            futures = {
                self._executor.submit(self._api.sync_connection, c.id): c.id
                for c in active
            }
        except Exception as e:
            logger.exception("Failed to schedule bulk sync")
            self._finish(generation, error=str(e), synced=False)
            raise
        done, not_done = wait(futures, timeout=self._sync_timeout)

        synced: list[Connection] = []
        last_error: str | None = None
        for future, connection_id in futures.items():
            if future in not_done:
                future.cancel()
                last_error = (
                    f"Sync of connection {connection_id} timed out "
                    f"after {self._sync_timeout}s"
                )
                logger.warning(last_error)
                continue

            error = future.exception()
            if error is None:
                synced.append(future.result())
            elif isinstance(error, AggregationApiError):
                last_error = error.message
                logger.warning(f"Failed to sync connection {connection_id}: {error}")
            else:
                last_error = str(error)
                logger.exception(
                    f"Unexpected error syncing connection {connection_id}",
                    exc_info=error,
                )

        aggregate_error = None
        if active and not synced:
            aggregate_error = (
                f"Failed to sync all {len(active)} connections: {last_error}"
            )

        applied = self._finish(
            generation,
            error=aggregate_error,
            update=lambda s: s.with_connections(synced),
        )
        if applied:
            logger.info(f"Synced {len(synced)}/{len(active)} connections")
        return synced

    def delete_connection(self, connection_id: int) -> None:
        """Delete a connection remotely, then drop it and its accounts locally.

        A remote "not found" is a failure like any other; nothing is removed
        from the snapshot unless the remote delete succeeded.

        Raises:
            SyncBusyError: If another operation is running
            AggregationApiError: If the remote delete fails or times out
        """
        generation = self._begin(connection_id)
        try:
            self._call(self._api.delete_connection, connection_id)
        except AggregationApiError as e:
            logger.error(f"Failed to delete connection {connection_id}: {e}")
            self._finish(generation, error=e.message, synced=False)
            raise
        except Exception as e:
            logger.exception(f"Unexpected error deleting connection {connection_id}")
            self._finish(generation, error=str(e), synced=False)
            raise

        if self._finish(
            generation, update=lambda s: s.without_connection(connection_id)
        ):
            logger.info(f"Deleted connection {connection_id}")

    def clear_status(self) -> None:
        """Reset the status to idle without error or last sync time."""
        with self._lock:
            self._status = SyncStatus()

    def cancel_pending(self) -> None:
        """Abandon in-flight operations and return the status to idle.

        Remote calls already started keep running, but their results are
        no longer applied.
        """
        with self._lock:
            self._generation += 1
            self._status = SyncStatus(last_sync=self._status.last_sync)
        logger.info("Cancelled pending sync operations")

    # Read accessors

    def get_connection(self, connection_id: int) -> Connection | None:
        return self.snapshot.get_connection(connection_id)

    def get_next_sync_time(self, connection_id: int) -> datetime | None:
        connection = self.get_connection(connection_id)
        return connection.next_try if connection else None

    def connection_needs_attention(self, connection_id: int) -> bool:
        connection = self.get_connection(connection_id)
        return connection.needs_attention if connection else False

    def status_summary(self) -> ConnectionStatusSummary:
        connections = self.snapshot.connections
        active = sum(1 for c in connections if c.active)
        with_errors = sum(1 for c in connections if c.needs_attention)
        return ConnectionStatusSummary(
            total=len(connections),
            active=active,
            inactive=len(connections) - active,
            with_errors=with_errors,
            healthy=active - with_errors,
        )

    def connector_map(self) -> Mapping[int, Connector]:
        """Connector metadata for the connectors in the snapshot.

        Metadata is cosmetic, so failures are logged and an empty mapping is
        returned.
        """
        connector_ids = self.snapshot.connector_ids
        if not connector_ids:
            return {}
        try:
            return self._metadata_cache.resolve(connector_ids, self._api.domain)
        except AggregationApiError as e:
            logger.warning(f"Failed to load connectors: {e}")
            return {}

    def connections_with_bank_info(
        self, connectors: Mapping[int, Connector] | None = None
    ) -> list[ConnectionWithBankInfo]:
        snapshot = self.snapshot
        if connectors is None:
            connectors = self.connector_map()
        accounts_by_connection = snapshot.accounts_by_connection()

        enriched = []
        for connection in snapshot.connections:
            accounts = accounts_by_connection.get(connection.id, ())
            connector = connectors.get(connection.id_connector)
            bank_name = (
                connector.name
                if connector and connector.name
                else fallback_connector_name(connection.id_connector)
            )
            enriched.append(
                ConnectionWithBankInfo(
                    connection=connection,
                    bank_names=(bank_name,) if accounts else (),
                    account_count=len(accounts),
                    total_balance=sum(a.balance for a in accounts),
                    accounts=accounts,
                )
            )
        return enriched

    # Internals

    def _begin(self, connection_id: int | None) -> int:
        with self._lock:
            if self._status.is_loading:
                target = self._status.connection_id
                raise SyncBusyError(
                    "A sync operation is already running"
                    + (f" for connection {target}" if target is not None else "")
                )
            self._status = SyncStatus(
                is_loading=True,
                connection_id=connection_id,
                last_sync=self._status.last_sync,
            )
            return self._generation

    def _finish(
        self,
        generation: int,
        error: str | None = None,
        synced: bool = True,
        update: Callable[[ConnectionSnapshot], ConnectionSnapshot] | None = None,
    ) -> bool:
        """Apply an operation's outcome unless it has been superseded.

        Returns:
            bool: False if the result was stale and discarded
        """
        with self._lock:
            if generation != self._generation:
                logger.info(
                    f"Discarding stale sync result (generation {generation}, "
                    f"current {self._generation})"
                )
                return False
            if update is not None:
                self._snapshot = update(self._snapshot)
            self._status = SyncStatus(
                is_loading=False,
                connection_id=None,
                last_sync=self._clock() if synced else self._status.last_sync,
                error=error,
            )
            return True

    def _call(self, fn: Callable[..., T], *args: Any) -> T:
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self._sync_timeout)
        except TimeoutError:
            future.cancel()
            raise SyncTimeoutError(
                f"{getattr(fn, '__name__', 'call')} timed out after "
                f"{self._sync_timeout}s"
            ) from None
