"""Interfaces for Coinbase Pro market data retrieval.

`CoinbaseProRawClient` is the transport-level collaborator: one bounded HTTP
call per method, already mapped into `core.types` records. The market data
service builds windowing and pagination on top of it.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from core.market_data.trades import TradePage, TradeRequest, TradeSet
from core.types import Candle, OrderBook, Ticker


class CoinbaseProRawClient(Protocol):
    """Protocol for the raw Coinbase Pro REST client."""

    def fetch_trades(
        self,
        product_id: str,
        *,
        before_id: int | None = None,
        limit: int = 100,
    ) -> TradePage:
        """Fetch one page of trades.

        Args:
            product_id: Coinbase product id (e.g. "BTC-USD")
            before_id: Only return trades with an id strictly below this one.
                None returns the most recent trades.
            limit: Maximum number of trades in the page

        Returns:
            TradePage (possibly empty)

        Raises:
            RateLimitExceededError: If the exchange throttled the call
            TransportError: On any other failure
        """
        raise NotImplementedError

    def fetch_candles(
        self,
        product_id: str,
        *,
        start: str,
        end: str,
        granularity: str,
    ) -> Sequence[Candle]:
        """Fetch candles for a window, newest first (native exchange order)."""
        raise NotImplementedError

    def fetch_ticker(self, product_id: str) -> Mapping[str, Any]:
        raise NotImplementedError

    def fetch_product_stats(self, product_id: str) -> Mapping[str, Any]:
        raise NotImplementedError

    def fetch_order_book(self, product_id: str, *, level: int = 3) -> OrderBook:
        raise NotImplementedError


class MarketDataService(Protocol):
    """Venue-agnostic market data surface exposed to callers."""

    @property
    def exchange_name(self) -> str:
        raise NotImplementedError

    def get_candles(self, symbol: str, interval_minutes: int) -> list[Candle]:
        raise NotImplementedError

    def get_trades(self, symbol: str, *args: object, request: TradeRequest | None = None) -> TradeSet:
        raise NotImplementedError

    def get_ticker(self, symbol: str) -> Ticker:
        raise NotImplementedError

    def get_order_book(self, symbol: str, level: object = 3) -> OrderBook:
        raise NotImplementedError
