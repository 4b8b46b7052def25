"""Exception hierarchy for BankDash.

Remote failures are classified by the HTTP client into the subclasses of
``AggregationApiError`` so callers can react per category (re-authenticate,
refresh the view, retry later) without parsing messages.
"""


class BankDashError(Exception):
    """Base class for all BankDash errors."""


class AggregationApiError(BankDashError):
    """A call to the aggregation API failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthError(AggregationApiError):
    """Bad or expired credentials (HTTP 401). Never retried automatically."""


class ForbiddenError(AuthError):
    """Credentials are valid but not allowed to access the resource (HTTP 403)."""


class NotFoundError(AggregationApiError):
    """The resource vanished on the remote side (HTTP 404)."""


class RateLimitError(AggregationApiError):
    """Too many requests (HTTP 429)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        code: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, status_code=status_code, code=code)
        self.retry_after = retry_after


class ServerError(AggregationApiError):
    """Transient server-side failure (HTTP 5xx)."""


class UnknownApiError(AggregationApiError):
    """Unexpected status code or malformed payload."""


class NetworkError(AggregationApiError):
    """The request never produced an HTTP response."""


class SyncTimeoutError(NetworkError):
    """A remote call exceeded its deadline."""


class SyncBusyError(BankDashError):
    """Another synchronization operation is already running."""
