"""Pydantic schemas for aggregation API data and derived reconciliation data.

Connections, accounts and connectors mirror the payloads returned by the
aggregation API. Unknown fields are ignored so that API additions do not break
validation. Derived records (duplicate information, recommendations, sync
status) are frozen and recomputed rather than mutated.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DuplicateType(Enum):
    """How two connections were recognized as duplicates."""

    EXACT = "exact"
    SAME_CONNECTOR = "sameConnector"
    SIMILAR_ACCOUNTS = "similarAccounts"


class Confidence(Enum):
    """Qualitative strength of a duplicate classification."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendedAction(Enum):
    """Suggested disposition for a connection inside a duplicate group."""

    KEEP = "keep"
    DELETE = "delete"
    REVIEW = "review"


# Base Models


class BaseSchema(BaseModel):
    """Base schema for API payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )


class ConnectorStability(BaseSchema):
    """Stability status published for a connector."""

    status: str = "unknown"
    last_update: str | None = None


class Connector(BaseSchema):
    """Metadata describing a bank integration."""

    id: int = Field(..., description="Connector ID")
    name: str = Field(..., description="Bank display name")
    color: str | None = Field(None, description="Brand color as sent by the API")
    slug: str = ""
    uuid: str | None = None
    code: str | None = None
    beta: bool = False
    hidden: bool = False
    charged: bool = False
    restricted: bool = False
    capabilities: tuple[str, ...] = ()
    stability: ConnectorStability = Field(default_factory=ConnectorStability)
    account_types: tuple[str, ...] = ()
    account_usages: tuple[str, ...] = ()

    @field_validator("capabilities", "account_types", "account_usages", mode="before")
    @classmethod
    def coerce_null_lists(cls, v: Any) -> Any:
        """Treat null lists as empty."""
        return () if v is None else v


class _Timestamped(BaseSchema):
    """Schema base normalizing API timestamps to aware UTC datetimes."""

    @field_validator(
        "created",
        "last_update",
        "last_push",
        "next_try",
        "expire",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def parse_api_timestamp(cls, v: Any) -> Any:
        """Accept the API's ``YYYY-MM-DD HH:MM:SS`` format and empty strings."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            if len(v) > 10 and v[10] == " ":
                v = f"{v[:10]}T{v[11:]}"
        return v

    @field_validator(
        "created",
        "last_update",
        "last_push",
        "next_try",
        "expire",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Store every timestamp as an aware UTC datetime."""
        return as_utc(v)


class Connection(_Timestamped):
    """One authenticated link between a user and a bank."""

    id: int = Field(..., description="Connection ID")
    id_connector: int = Field(..., description="Owning connector ID")
    connector_uuid: str = Field(..., description="Connector instance UUID")
    id_user: int | None = None
    active: bool = True
    state: str | None = None
    error: str | None = None
    error_message: str | None = None
    created: datetime | None = None
    last_update: datetime | None = None
    last_push: datetime | None = None
    next_try: datetime | None = None
    expire: datetime | None = None

    @property
    def needs_attention(self) -> bool:
        """True when the connection reports a state or an error."""
        return bool(self.state or self.error)

    @property
    def is_healthy(self) -> bool:
        """True when the connection is active without state or error."""
        return self.active and not self.needs_attention


class Account(_Timestamped):
    """A financial account fetched through a connection."""

    id: int = Field(..., description="Account ID")
    id_connection: int = Field(..., description="Owning connection ID")
    number: str | None = None
    iban: str | None = None
    type: str = "unknown"
    balance: float = 0.0
    name: str | None = None
    last_update: datetime | None = None


class CacheEntry(BaseSchema):
    """Persisted connector catalog for one API domain."""

    data: dict[int, Connector] = Field(default_factory=dict)
    timestamp: datetime
    domain: str
    version: str = "1.0"

    @field_validator("timestamp", mode="after")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Store the timestamp as an aware UTC datetime."""
        return as_utc(v) or v


class DuplicateInfo(BaseSchema):
    """Duplicate classification for one connection."""

    connection_id: int
    duplicate_with: tuple[int, ...]
    type: DuplicateType
    confidence: Confidence
    reason: str


class Recommendation(BaseSchema):
    """Recommended action for one connection with its reason."""

    action: RecommendedAction = RecommendedAction.KEEP
    reason: str | None = None


class SyncStatus(BaseSchema):
    """Process-wide state of the active synchronization operation.

    ``connection_id`` is None during a bulk operation, meaning "all".
    """

    is_loading: bool = False
    connection_id: int | None = None
    last_sync: datetime | None = None
    error: str | None = None
