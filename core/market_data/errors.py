"""Error taxonomy for market data retrieval.

Nothing here is retried internally. Rate limit and transport failures
propagate to the caller as soon as they happen, even in the middle of a
multi-page trade fetch.
"""

from __future__ import annotations


class MarketDataError(Exception):
    """Base exception for market data errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidArgumentError(MarketDataError, ValueError):
    """Malformed call shape (wrong count or type of parameters)."""


class RateLimitExceededError(MarketDataError):
    """The exchange throttled the request (HTTP 429)."""

    def __init__(self, message: str, status_code: int | None = 429, retry_after: float | None = None):
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class TransportError(MarketDataError):
    """Network failure, non-2xx response or unexpected payload."""


class PaginationError(MarketDataError):
    """Trade history pagination did not converge."""


def classify_http_error(status_code: int, message: str) -> MarketDataError:
    """Map an HTTP status code to the matching error class.

    Args:
        status_code: HTTP status code
        message: Error message

    Returns:
        Appropriate MarketDataError subclass
    """
    if status_code == 429:
        return RateLimitExceededError(message, status_code=status_code)
    return TransportError(message, status_code=status_code)
