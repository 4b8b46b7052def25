"""HTTP client for the aggregation API.

Thin wrapper over a ``requests.Session``: it builds URLs and headers, enforces
a request timeout and translates failures into the ``bankdash.errors``
taxonomy. Payloads are validated into the Pydantic schemas.
"""

import logging
from typing import Any

import requests
from pydantic import ValidationError

from ..errors import (
    AggregationApiError,
    AuthError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnknownApiError,
)
from ..schemas import Account, Connection, Connector

logger = logging.getLogger(__name__)


class PowensClient:
    """Client for a Powens-style (Budget Insight) aggregation API."""

    def __init__(
        self,
        api_url: str,
        user_id: str,
        bearer_token: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Args:
            api_url: Full versioned API URL ending with a slash
            user_id: Aggregation API user ID
            bearer_token: Token sent with every user-scoped request
            timeout: Per-request timeout in seconds
            session: Optional session (for connection pooling or tests)
        """
        if not api_url.endswith("/"):
            api_url = f"{api_url}/"
        self.api_url = api_url
        self.user_id = user_id
        self.timeout = timeout
        self._bearer_token = bearer_token
        self._session = session or requests.Session()

    @property
    def domain(self) -> str:
        """The API URL scopes cached connector metadata."""
        return self.api_url

    @property
    def _user_url(self) -> str:
        return f"{self.api_url}users/{self.user_id}"

    def fetch_connections(self) -> list[Connection]:
        """Fetch all connections of the configured user."""
        data = self._request(
            "GET", f"{self._user_url}/connections", action="fetch connections"
        )
        items = self._extract_list(data, "connections")
        return self._validate_all(Connection, items, "connection")

    def fetch_accounts(self) -> list[Account]:
        """Fetch all accounts, skipping those not attached to a connection."""
        data = self._request(
            "GET", f"{self._user_url}/accounts", action="fetch accounts"
        )
        items = self._extract_list(data, "accounts")
        attached = [
            item
            for item in items
            if isinstance(item, dict) and item.get("id_connection") is not None
        ]
        if len(attached) != len(items):
            logger.debug(f"Skipped {len(items) - len(attached)} detached accounts")
        return self._validate_all(Account, attached, "account")

    def sync_connection(self, connection_id: int) -> Connection:
        """Ask the API to resynchronize a connection."""
        data = self._request(
            "PUT",
            f"{self._user_url}/connections/{connection_id}",
            action=f"sync connection {connection_id}",
        )
        try:
            return Connection.model_validate(data)
        except ValidationError as e:
            raise UnknownApiError(
                f"Invalid response format for connection {connection_id}: {e}"
            ) from e

    def delete_connection(self, connection_id: int) -> None:
        """Delete a connection (204 No Content expected)."""
        self._request(
            "DELETE",
            f"{self._user_url}/connections/{connection_id}",
            action=f"delete connection {connection_id}",
        )

    def fetch_connector_catalog(self) -> list[Connector]:
        """Fetch the connector catalog (no authentication required)."""
        data = self._request(
            "GET",
            f"{self.api_url}connectors",
            action="fetch connectors",
            authenticated=False,
        )
        items = self._extract_list(data, "connectors")
        connectors = self._validate_all(Connector, items, "connector")
        logger.debug(f"Fetched {len(connectors)} connectors from {self.api_url}")
        return connectors

    def _request(
        self,
        method: str,
        url: str,
        action: str,
        authenticated: bool = True,
    ) -> Any:
        headers = {"Content-Type": "application/json"}
        if authenticated:
            headers["Authorization"] = f"Bearer {self._bearer_token}"

        try:
            response = self._session.request(
                method, url, headers=headers, timeout=self.timeout
            )
        except requests.Timeout as e:
            raise NetworkError(f"Failed to {action}: request timed out") from e
        except requests.RequestException as e:
            raise NetworkError(f"Failed to {action}: {e}") from e

        if not response.ok:
            raise self._error_from_response(response, action)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise UnknownApiError(
                f"Failed to {action}: response is not valid JSON",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _error_from_response(
        response: requests.Response, action: str
    ) -> AggregationApiError:
        status = response.status_code
        message = f"HTTP {status}: {response.reason}"
        code: str | None = None

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("code") and body.get("description"):
            code = str(body["code"])
            message = f"{code}: {body['description']}"

        text = f"Failed to {action}: {message}"
        if status == 401:
            return AuthError(f"{text}. Please check your bearer token.", status, code)
        if status == 403:
            return ForbiddenError(f"{text}. Permission denied.", status, code)
        if status == 404:
            return NotFoundError(f"{text}. Resource not found.", status, code)
        if status == 429:
            return RateLimitError(
                f"{text}. Please try again later.",
                status,
                code,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if status >= 500:
            return ServerError(f"{text}. Please try again later.", status, code)
        return UnknownApiError(text, status, code)

    @staticmethod
    def _extract_list(data: Any, key: str) -> list[Any]:
        if not isinstance(data, dict):
            raise UnknownApiError("Invalid response format: Expected JSON object")
        items = data.get(key)
        if not isinstance(items, list):
            raise UnknownApiError(
                f"Invalid response format: Missing or invalid {key} array"
            )
        return items

    @staticmethod
    def _validate_all(schema: Any, items: list[Any], label: str) -> list[Any]:
        try:
            return [schema.model_validate(item) for item in items]
        except ValidationError as e:
            raise UnknownApiError(f"Invalid {label} payload: {e}") from e


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
