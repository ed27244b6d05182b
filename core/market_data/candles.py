"""Windowed candle requests for Coinbase Pro.

Candles are always requested over a fixed lookback of 14 buckets ending now.
Unsupported intervals are not an error: they resolve to an empty result so
callers can probe several intervals without exception handling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from core.types import Candle

if TYPE_CHECKING:
    from core.market_data.base import CoinbaseProRawClient

logger = logging.getLogger(__name__)

# Number of buckets covered by one candle request (fixed policy)
CANDLE_LOOKBACK_BUCKETS = 14

# Minute-precision UTC with a literal "Z" marker, no numeric offset
CANDLE_TIME_FORMAT = "%Y-%m-%dT%H:%MZ"

# interval in minutes -> Coinbase granularity (seconds)
_GRANULARITIES: dict[int, str] = {
    5: "300",
    15: "900",
    30: "1800",
    60: "3600",
    120: "7200",
    360: "21600",
    720: "43200",
}


@dataclass(frozen=True)
class CandleWindow:
    """Parameters of one candle request."""

    start_time: str
    end_time: str
    granularity: Optional[str]  # None when the interval is unsupported
    interval_minutes: Optional[int] = None

    @property
    def is_supported(self) -> bool:
        return self.granularity is not None


def supported_intervals() -> tuple[int, ...]:
    return tuple(sorted(_GRANULARITIES))


def resolve_granularity(interval_minutes: int) -> Optional[str]:
    """Return the granularity code for an interval, or None if unsupported."""
    return _GRANULARITIES.get(interval_minutes)


def format_candle_time(dt: datetime) -> str:
    """Format a datetime as UTC with minute precision (seconds truncated)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(CANDLE_TIME_FORMAT)


def build_candle_window(interval_minutes: int, now: datetime | None = None) -> CandleWindow:
    """Build the request window for `interval_minutes` ending at `now`.

    Args:
        interval_minutes: Candle interval in minutes
        now: Reference time (defaults to current UTC time). Naive values are
            treated as UTC.

    Returns:
        CandleWindow spanning CANDLE_LOOKBACK_BUCKETS intervals
    """
    if now is None:
        now = datetime.now(timezone.utc)

    start = now - timedelta(minutes=interval_minutes * CANDLE_LOOKBACK_BUCKETS)
    window = CandleWindow(
        start_time=format_candle_time(start),
        end_time=format_candle_time(now),
        granularity=resolve_granularity(interval_minutes),
        interval_minutes=interval_minutes,
    )
    return window


def fetch_candles(client: CoinbaseProRawClient, product_id: str, window: CandleWindow) -> list[Candle]:
    """Fetch candles for a window and return them oldest first.

    Coinbase returns candles newest first; the result is reversed. An
    unsupported window returns an empty list without calling the client.
    """
    if not window.is_supported:
        logger.info(
            "Not loading candles for %s: unsupported interval %s minutes",
            product_id,
            window.interval_minutes,
        )
        return []

    logger.info("Fetching candles, start time %s", window.start_time)
    logger.info("Fetching candles, end time %s", window.end_time)
    candles = list(
        client.fetch_candles(
            product_id,
            start=window.start_time,
            end=window.end_time,
            granularity=window.granularity,
        )
    )
    candles.reverse()
    return candles
