"""Port describing the external aggregation API consumed by BankDash."""

from typing import Protocol

from ..schemas import Account, Connection, Connector


class AggregationApi(Protocol):
    """Remote system of record for connections, accounts and connectors.

    Every method raises a subclass of ``bankdash.errors.AggregationApiError``
    on failure.
    """

    @property
    def domain(self) -> str:
        """Key identifying the API instance, used to scope cached metadata."""

    def fetch_connections(self) -> list[Connection]:
        """Return every connection of the user, unfiltered."""

    def fetch_accounts(self) -> list[Account]:
        """Return every account attached to a connection."""

    def sync_connection(self, connection_id: int) -> Connection:
        """Trigger a remote resync and return the refreshed connection."""

    def delete_connection(self, connection_id: int) -> None:
        """Delete a connection. A vanished connection raises NotFoundError."""

    def fetch_connector_catalog(self) -> list[Connector]:
        """Return the full connector catalog (not filterable by ID)."""


__all__ = ["AggregationApi"]
