"""Trade history retrieval with backward cursor pagination.

Coinbase Pro only returns bounded pages of trades, newest first, paged by
trade id. An arbitrary id range is assembled by repeatedly asking for the
page below the smallest id seen so far until either the lower bound is
covered or the exchange runs out of history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from numbers import Integral
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

from core.market_data.errors import InvalidArgumentError, PaginationError
from core.types import Trade

if TYPE_CHECKING:
    from core.market_data.base import CoinbaseProRawClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 1000


@dataclass(frozen=True)
class TradePage:
    """One bounded batch of trades as returned by a single fetch."""

    trades: tuple[Trade, ...] = ()

    def __len__(self) -> int:
        return len(self.trades)

    def __iter__(self) -> Iterator[Trade]:
        return iter(self.trades)

    @property
    def earliest_id(self) -> Optional[int]:
        """Smallest trade id in the page, None if the page is empty."""
        if not self.trades:
            return None
        return min(t.trade_id for t in self.trades)

    @property
    def latest_id(self) -> Optional[int]:
        if not self.trades:
            return None
        return max(t.trade_id for t in self.trades)


class TradeSet:
    """Accumulated trades keyed by trade id.

    Merging is idempotent: an id that is already present is left untouched.
    Iteration yields trades in ascending id order.
    """

    def __init__(self, trades: Iterable[Trade] = ()) -> None:
        self._trades: dict[int, Trade] = {}
        self._earliest: Optional[int] = None
        self._latest: Optional[int] = None
        self.merge(trades)

    def merge(self, trades: Iterable[Trade]) -> int:
        """Add trades not seen yet.

        Returns:
            Number of new trade ids added
        """
        added = 0
        for trade in trades:
            if trade.trade_id in self._trades:
                continue
            self._trades[trade.trade_id] = trade
            if self._earliest is None or trade.trade_id < self._earliest:
                self._earliest = trade.trade_id
            if self._latest is None or trade.trade_id > self._latest:
                self._latest = trade.trade_id
            added += 1
        return added

    def __len__(self) -> int:
        return len(self._trades)

    def __contains__(self, trade_id: object) -> bool:
        return trade_id in self._trades

    def __iter__(self) -> Iterator[Trade]:
        for trade_id in sorted(self._trades):
            yield self._trades[trade_id]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TradeSet):
            return NotImplemented
        return self._trades == other._trades

    def __repr__(self) -> str:
        return f"TradeSet(count={len(self)}, earliest_id={self.earliest_id}, latest_id={self.latest_id})"

    def get(self, trade_id: int) -> Optional[Trade]:
        return self._trades.get(trade_id)

    def ids(self) -> list[int]:
        return sorted(self._trades)

    def to_list(self) -> list[Trade]:
        return list(self)

    @property
    def earliest_id(self) -> Optional[int]:
        return self._earliest

    @property
    def latest_id(self) -> Optional[int]:
        return self._latest


# ---------------------------------------------------------------------------
# Request variants
# ---------------------------------------------------------------------------


def _is_trade_id(value: object) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


class TradeRequest:
    """Shape of a trade request: most recent page or an explicit id range."""

    @classmethod
    def from_args(cls, *args: object) -> "TradeRequest":
        """Build a request from loose positional arguments.

        No arguments means the most recent page. Exactly two integral ids
        mean `(from_id, to_id)`. Anything else is rejected.
        """
        if not args:
            return DefaultTradeRequest()
        if len(args) == 2:
            return RangeTradeRequest(*args)  # type: ignore[arg-type]
        raise InvalidArgumentError(
            f"Invalid arguments passed to get_trades: expected none or (from_id, to_id), got {len(args)}"
        )


@dataclass(frozen=True)
class DefaultTradeRequest(TradeRequest):
    """Single fetch of the most recent trades."""


@dataclass(frozen=True)
class RangeTradeRequest(TradeRequest):
    """All trades from `from_id` (inclusive) up to the `to_id` cursor."""

    from_id: int
    to_id: int

    def __post_init__(self) -> None:
        if not _is_trade_id(self.from_id) or not _is_trade_id(self.to_id):
            raise InvalidArgumentError(
                "Invalid arguments passed to get_trades: from_id and to_id must be integers "
                f"(got {type(self.from_id).__name__}, {type(self.to_id).__name__})"
            )
        object.__setattr__(self, "from_id", int(self.from_id))
        object.__setattr__(self, "to_id", int(self.to_id))


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def accumulate_trade_range(
    client: CoinbaseProRawClient,
    product_id: str,
    *,
    from_id: int,
    to_id: int,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> TradeSet:
    """Walk trade history backwards from `to_id` until `from_id` is covered.

    Each iteration fetches the page below the current cursor, merges it and
    moves the cursor to the smallest id accumulated so far. The loop stops
    when a page comes back empty (no older history) or when the accumulated
    set reaches `from_id`. The last page is not trimmed, so the result may
    contain ids below `from_id`.

    Args:
        client: Raw exchange client
        product_id: Coinbase product id
        from_id: Inclusive lower bound of interest
        to_id: Initial cursor
        page_size: Trades requested per page
        max_pages: Hard cap on the number of fetches

    Returns:
        TradeSet covering the range (or everything down to the history floor)

    Raises:
        PaginationError: If the cursor stops moving or max_pages is exceeded
        RateLimitExceededError, TransportError: Propagated from the client;
            trades accumulated so far are discarded
    """
    logger.debug("from_id: %s, to_id: %s", from_id, to_id)

    trades = TradeSet()
    cursor = to_id
    pages = 0

    while True:
        if pages >= max_pages:
            raise PaginationError(
                f"Trade pagination for {product_id} exceeded {max_pages} pages "
                f"(cursor {cursor}, target {from_id})"
            )

        page = client.fetch_trades(product_id, before_id=cursor, limit=page_size)
        pages += 1
        trades.merge(page)
        logger.debug(
            "cursor: %s, earliest-latest: %s-%s, page trades: %d",
            cursor,
            trades.earliest_id,
            trades.latest_id,
            len(page),
        )

        previous_cursor, cursor = cursor, trades.earliest_id

        if page.earliest_id is None:
            break
        if trades.earliest_id <= from_id:
            break
        if cursor >= previous_cursor:
            raise PaginationError(
                f"Trade cursor for {product_id} did not advance below {previous_cursor}"
            )

    logger.debug(
        "earliest-latest: %s-%s after %d page(s), %d trade(s)",
        trades.earliest_id,
        trades.latest_id,
        pages,
        len(trades),
    )
    return trades


def trim_trade_set(trades: TradeSet, from_id: int, to_id: int) -> TradeSet:
    """Return a copy of `trades` restricted to `from_id <= id <= to_id`."""
    return TradeSet(t for t in trades if from_id <= t.trade_id <= to_id)


def dispatch_trade_request(
    client: CoinbaseProRawClient,
    product_id: str,
    request: TradeRequest,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> TradeSet:
    """Route a trade request to a single fetch or to the range accumulator."""
    if isinstance(request, RangeTradeRequest):
        return accumulate_trade_range(
            client,
            product_id,
            from_id=request.from_id,
            to_id=request.to_id,
            page_size=page_size,
            max_pages=max_pages,
        )
    if isinstance(request, DefaultTradeRequest):
        return TradeSet(client.fetch_trades(product_id, limit=page_size))
    raise InvalidArgumentError(f"Unsupported trade request: {request!r}")
