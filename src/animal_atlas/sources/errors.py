"""Error taxonomy for external source calls."""

from enum import Enum

import httpx


class ErrorType(str, Enum):
    """Classification of a failed source call."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


RETRYABLE_TYPES = frozenset(
    {ErrorType.NETWORK, ErrorType.TIMEOUT, ErrorType.RATE_LIMIT, ErrorType.SERVER_ERROR}
)


class SourceError(Exception):
    """A classified failure talking to an external source.

    Adapters raise this internally; the ``@cached`` boundary converts it into
    the operation's empty value so callers never see it.
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNKNOWN,
        status_code: int | None = None,
        source: str = "",
    ):
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code
        self.source = source

    @property
    def retryable(self) -> bool:
        return self.error_type in RETRYABLE_TYPES

    def __repr__(self) -> str:
        return (
            f"SourceError(source={self.source!r}, type={self.error_type.value}, "
            f"status={self.status_code})"
        )


def classify_status(status_code: int) -> ErrorType:
    """Map an HTTP status code onto the error taxonomy.

    Args:
        status_code: HTTP status of a non-successful response

    Returns:
        The matching ErrorType
    """
    if status_code == 404:
        return ErrorType.NOT_FOUND
    if status_code == 429:
        return ErrorType.RATE_LIMIT
    if status_code >= 500:
        return ErrorType.SERVER_ERROR
    if status_code >= 400:
        return ErrorType.VALIDATION
    return ErrorType.UNKNOWN


def classify_exception(exc: Exception, source: str = "") -> SourceError:
    """Wrap a transport-level exception into a SourceError.

    Args:
        exc: Exception raised while calling the source
        source: Name of the source being called

    Returns:
        A SourceError carrying the classification
    """
    if isinstance(exc, SourceError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return SourceError("Request timed out", ErrorType.TIMEOUT, source=source)
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return SourceError(f"HTTP {status}", classify_status(status), status, source=source)
    if isinstance(exc, httpx.TransportError):
        return SourceError(f"Network error: {type(exc).__name__}", ErrorType.NETWORK, source=source)
    return SourceError(f"Unexpected error: {type(exc).__name__}", ErrorType.UNKNOWN, source=source)
