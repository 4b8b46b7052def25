"""TTL-bound, domain-scoped cache of connector metadata.

The upstream API only serves the complete connector catalog, so a cache miss
always triggers a full refresh that replaces the persisted entry wholesale.
An entry written for another API domain, or older than the TTL, is discarded
entirely; its connectors are never returned.

When a refresh fails but a usable cached catalog exists, the cached catalog is
returned even if some requested connectors are missing from it. The failure
only propagates when there is nothing to fall back to.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType

from ..errors import AggregationApiError
from ..schemas import CacheEntry, Connector, ConnectorStability, utc_now
from .colors import resolve_connector_color
from .store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)

_EMPTY: Mapping[int, Connector] = MappingProxyType({})


@dataclass(frozen=True)
class ConnectorInfo:
    """Display-ready connector details with fallbacks applied."""

    id: int
    name: str
    color: str
    slug: str
    beta: bool
    hidden: bool
    charged: bool
    capabilities: tuple[str, ...]
    account_types: tuple[str, ...]
    stability: ConnectorStability
    connector: Connector | None


def fallback_connector_name(connector_id: int) -> str:
    """Name shown for connectors missing from the catalog."""
    return f"Connector {connector_id}"


def describe_connector(
    connector_id: int, connectors: Mapping[int, Connector]
) -> ConnectorInfo:
    """Build display details for a connector, tolerating unknown IDs."""
    connector = connectors.get(connector_id)
    if connector is None:
        return ConnectorInfo(
            id=connector_id,
            name=fallback_connector_name(connector_id),
            color=resolve_connector_color(connector_id, None),
            slug="",
            beta=False,
            hidden=False,
            charged=False,
            capabilities=(),
            account_types=(),
            stability=ConnectorStability(),
            connector=None,
        )

    return ConnectorInfo(
        id=connector_id,
        name=connector.name or fallback_connector_name(connector_id),
        color=resolve_connector_color(connector_id, connector.color),
        slug=connector.slug,
        beta=connector.beta,
        hidden=connector.hidden,
        charged=connector.charged,
        capabilities=connector.capabilities,
        account_types=connector.account_types,
        stability=connector.stability,
        connector=connector,
    )


class MetadataCache:
    """Connector catalog cache shared by the orchestrator and presentation code.

    Reads may happen concurrently from several threads. The in-memory catalog
    is an immutable mapping replaced as a whole on refresh, and refreshes are
    serialized by a lock.
    """

    def __init__(
        self,
        fetch_catalog: Callable[[], Iterable[Connector]],
        store: CacheStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the cache.

        Args:
            fetch_catalog: Returns the full connector catalog from the API
            store: Persistence for the cache entry
            ttl: How long a fetched catalog stays valid
            clock: Source of the current time (aware UTC datetimes)
        """
        self._fetch_catalog = fetch_catalog
        self._store = store
        self._ttl = ttl
        self._clock = clock
        self._refresh_lock = threading.RLock()
        self._entry: CacheEntry | None = None
        self._connectors: Mapping[int, Connector] = _EMPTY
        self._loaded = False

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def connectors(self) -> Mapping[int, Connector]:
        """The catalog currently held in memory (possibly empty)."""
        return self._connectors

    @property
    def entry(self) -> CacheEntry | None:
        """The cache entry currently held in memory, if any."""
        return self._entry

    def resolve(
        self, needed_connector_ids: Iterable[int], domain: str
    ) -> Mapping[int, Connector]:
        """Return connectors for ``domain``, refreshing the catalog if needed.

        Args:
            needed_connector_ids: Connector IDs the caller wants to display
            domain: API domain the connectors must belong to

        Returns:
            Mapping of connector ID to connector (the whole catalog)

        Raises:
            AggregationApiError: If the refresh failed and no cached catalog
                for this domain is available
        """
        needed = set(needed_connector_ids)
        cached = self._valid_connectors(domain)
        missing = needed - cached.keys()

        if not missing and cached:
            logger.debug(f"Using cached connector data for {len(needed)} connectors")
            return cached

        with self._refresh_lock:
            # Another caller may have refreshed while we waited
            cached = self._valid_connectors(domain)
            missing = needed - cached.keys()
            if not missing and cached:
                return cached

            self._discard_if_invalid(domain)
            logger.info(
                f"Fetching connectors (missing: {len(missing)}, cache size: {len(cached)})"
            )
            try:
                return self._refresh(domain)
            except AggregationApiError as e:
                if cached:
                    logger.warning(
                        f"Failed to fetch fresh connectors, using cached catalog "
                        f"with {len(cached)} connectors: {e}"
                    )
                    return cached
                raise

    def force_refresh(self, domain: str) -> Mapping[int, Connector]:
        """Drop the cache and fetch the catalog again.

        Raises:
            AggregationApiError: If the catalog cannot be fetched
        """
        logger.info("Force refreshing connector cache")
        with self._refresh_lock:
            self._discard()
            return self._refresh(domain)

    def clear(self) -> None:
        """Remove the persisted entry and the in-memory catalog."""
        with self._refresh_lock:
            self._discard()

    def get_connector(self, connector_id: int) -> Connector | None:
        return self._connectors.get(connector_id)

    def has_connector(self, connector_id: int) -> bool:
        return connector_id in self._connectors

    def missing_ids(self, connector_ids: Iterable[int]) -> set[int]:
        """IDs not present in the in-memory catalog."""
        return set(connector_ids) - self._connectors.keys()

    def connector_info(
        self, connector_id: int, connectors: Mapping[int, Connector] | None = None
    ) -> ConnectorInfo:
        """Display details for a connector from ``connectors`` or the cache."""
        return describe_connector(
            connector_id, self._connectors if connectors is None else connectors
        )

    def is_valid(self, entry: CacheEntry, domain: str) -> bool:
        """An entry is usable only for its own domain and within the TTL."""
        if entry.domain != domain:
            return False
        return self._clock() - entry.timestamp < self._ttl

    def _valid_connectors(self, domain: str) -> Mapping[int, Connector]:
        if not self._loaded:
            with self._refresh_lock:
                if not self._loaded:
                    self._adopt(self._store.load())
                    self._loaded = True

        entry = self._entry
        if entry is None or not self.is_valid(entry, domain):
            return _EMPTY
        return self._connectors

    def _discard_if_invalid(self, domain: str) -> None:
        entry = self._entry
        if entry is not None and not self.is_valid(entry, domain):
            logger.info(
                "Connector cache expired or API domain changed, clearing cache"
            )
            self._discard()

    def _refresh(self, domain: str) -> Mapping[int, Connector]:
        connectors = list(self._fetch_catalog())
        entry = CacheEntry(
            data={c.id: c for c in connectors},
            timestamp=self._clock(),
            domain=domain,
        )
        self._store.save(entry)
        self._adopt(entry)
        self._loaded = True
        logger.info(f"Cached {len(connectors)} connectors for domain {domain}")
        return self._connectors

    def _adopt(self, entry: CacheEntry | None) -> None:
        self._entry = entry
        self._connectors = (
            MappingProxyType(dict(entry.data)) if entry is not None else _EMPTY
        )

    def _discard(self) -> None:
        self._store.clear()
        self._adopt(None)
        self._loaded = True
