from __future__ import annotations

from datetime import datetime
from numbers import Integral
from typing import Callable, Optional

from cex.coinbasepro.api.adapters import MALFORMED_PAYLOAD_ERRORS, adapt_ticker
from core.market_data.base import CoinbaseProRawClient
from core.market_data.candles import build_candle_window, fetch_candles
from core.market_data.errors import InvalidArgumentError, TransportError
from core.market_data.trades import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    TradeRequest,
    TradeSet,
    dispatch_trade_request,
)
from core.types import Candle, OrderBook, Ticker

# Longest first so USDT/USDC win over USD
_QUOTE_CURRENCIES = ("USDT", "USDC", "USD", "EUR", "GBP", "DAI", "BTC", "ETH")


def normalize_product_id(symbol: str) -> str:
    """Normalize a symbol to a Coinbase product id (e.g. btc/usd -> BTC-USD)."""
    s = symbol.strip().upper()
    if not s:
        raise InvalidArgumentError("symbol is required")

    for sep in ("/", ":", "_"):
        s = s.replace(sep, "-")
    if "-" in s:
        base, _, quote = s.partition("-")
        if not base or not quote:
            raise InvalidArgumentError(f"Invalid symbol: {symbol}")
        return f"{base}-{quote}"

    for quote in _QUOTE_CURRENCIES:
        if s.endswith(quote) and len(s) > len(quote):
            return f"{s[:-len(quote)]}-{quote}"

    raise InvalidArgumentError(f"Cannot determine quote currency for symbol: {symbol}")


class CoinbaseProMarketDataService:
    """Coinbase Pro market data: candles, trades, ticker and order book."""

    def __init__(
        self,
        client: Optional[CoinbaseProRawClient] = None,
        *,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if client is None:
            from cex.coinbasepro.api.client import CoinbaseProClient
            from cex.coinbasepro.api.config import CoinbaseProConfig

            config = CoinbaseProConfig.from_env()
            client = CoinbaseProClient(config)
            # Explicit arguments win over the environment
            if page_size is None:
                page_size = config.trade_page_size
            if max_pages is None:
                max_pages = config.max_trade_pages

        self.client = client
        self.page_size = page_size if page_size is not None else DEFAULT_PAGE_SIZE
        self.max_pages = max_pages if max_pages is not None else DEFAULT_MAX_PAGES
        self._clock = clock

    @property
    def exchange_name(self) -> str:
        return "coinbasepro"

    def get_candles(self, symbol: str, interval_minutes: int) -> list[Candle]:
        """Fetch the last 14 candles of `interval_minutes`, oldest first.

        Unsupported intervals return an empty list without a network call.
        """
        product_id = normalize_product_id(symbol)
        now = self._clock() if self._clock is not None else None
        window = build_candle_window(interval_minutes, now=now)
        return fetch_candles(self.client, product_id, window)

    def get_trades(self, symbol: str, *args: object, request: TradeRequest | None = None) -> TradeSet:
        """Get trades for a product.

        With only the symbol, a single call returns the most recent page
        (currently 100 trades). With `(from_id, to_id)` the history is paged
        backwards from `to_id` until `from_id` is covered; the result may
        include trades below `from_id`.

        Args:
            symbol: Trading pair (e.g. "BTC-USD", "BTC/USD", "BTCUSD")
            *args: Nothing, or from_id and to_id as integers
            request: Explicit TradeRequest, mutually exclusive with *args

        Raises:
            InvalidArgumentError: On any other argument shape (before any
                network call)
        """
        if request is None:
            request = TradeRequest.from_args(*args)
        elif args:
            raise InvalidArgumentError("Pass either positional trade ids or a request, not both")

        product_id = normalize_product_id(symbol)
        return dispatch_trade_request(
            self.client,
            product_id,
            request,
            page_size=self.page_size,
            max_pages=self.max_pages,
        )

    def get_ticker(self, symbol: str) -> Ticker:
        product_id = normalize_product_id(symbol)
        ticker = self.client.fetch_ticker(product_id)
        stats = self.client.fetch_product_stats(product_id)
        try:
            return adapt_ticker(ticker, stats, product_id)
        except MALFORMED_PAYLOAD_ERRORS as exc:
            raise TransportError(f"Unexpected ticker payload for {product_id}: {exc!r}") from exc

    def get_order_book(self, symbol: str, level: object = 3) -> OrderBook:
        """Fetch the order book; level 3 (full book) by default."""
        if not isinstance(level, Integral) or isinstance(level, bool):
            raise InvalidArgumentError(f"Order book level must be an int (was {type(level).__name__})")
        if level not in (1, 2, 3):
            raise InvalidArgumentError(f"Order book level must be 1, 2 or 3 (was {level})")

        product_id = normalize_product_id(symbol)
        return self.client.fetch_order_book(product_id, level=int(level))
