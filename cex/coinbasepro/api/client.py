"""
Coinbase Pro REST Client - Public Market Data
=============================================

Thin transport over the public Coinbase Pro (Coinbase Exchange) REST API.
Every method issues exactly one HTTP request. Nothing is retried here:
HTTP 429 is raised as RateLimitExceededError and every other failure as
TransportError, so callers decide what to do with partial work.

Usage:
    from cex.coinbasepro.api.client import CoinbaseProClient

    client = CoinbaseProClient()
    page = client.fetch_trades("BTC-USD", before_id=123456, limit=100)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Mapping, Optional, TypeVar

import requests

from cex.coinbasepro.api import adapters
from cex.coinbasepro.api.config import CoinbaseProConfig
from core.market_data.errors import RateLimitExceededError, TransportError, classify_http_error
from core.market_data.trades import TradePage
from core.types import Candle, OrderBook

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given as delay seconds or as an HTTP-date.

    Returns None when the header is missing or unparseable.
    """
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class CoinbaseProClient:
    """Coinbase Pro public REST client (one call per method)."""

    def __init__(self, config: Optional[CoinbaseProConfig] = None) -> None:
        self.config = config or CoinbaseProConfig()
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        })

    def _get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        url = f"{self.config.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)

        try:
            resp = self.session.get(url, params=params, timeout=self.config.timeout_s)
        except requests.RequestException as exc:
            raise TransportError(f"Coinbase Pro request failed: {exc}") from exc

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            logger.warning("Coinbase Pro rate limit exceeded on %s", path)
            raise RateLimitExceededError(
                f"Coinbase Pro rate limit exceeded on {path}",
                retry_after=parse_retry_after(retry_after),
            )

        if resp.status_code >= 400:
            raise classify_http_error(
                resp.status_code,
                f"Coinbase Pro returned HTTP {resp.status_code} for {path}: {resp.text[:200]}",
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"Coinbase Pro returned invalid JSON for {path}") from exc

    def _get_list(self, path: str, params: Optional[Mapping[str, Any]] = None) -> list[Any]:
        data = self._get(path, params)
        if not isinstance(data, list):
            raise TransportError(f"Unexpected response type for {path}: {type(data)}")
        return data

    def _get_dict(self, path: str, params: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        data = self._get(path, params)
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected response type for {path}: {type(data)}")
        return data

    def _adapt(self, path: str, adapt: Callable[[], T]) -> T:
        try:
            return adapt()
        except adapters.MALFORMED_PAYLOAD_ERRORS as exc:
            raise TransportError(f"Unexpected payload shape for {path}: {exc!r}") from exc

    # ==================== Public API Methods ====================

    def fetch_trades(
        self,
        product_id: str,
        *,
        before_id: int | None = None,
        limit: int = 100,
    ) -> TradePage:
        """Fetch one page of trades, newest first.

        Coinbase's `after` cursor returns trades with ids strictly below it.
        """
        params: dict[str, Any] = {"limit": str(limit)}
        if before_id is not None:
            params["after"] = str(before_id)

        path = f"/products/{product_id}/trades"
        rows = self._get_list(path, params)
        return TradePage(tuple(self._adapt(path, lambda: adapters.adapt_trades(rows, product_id))))

    def fetch_candles(
        self,
        product_id: str,
        *,
        start: str,
        end: str,
        granularity: str,
    ) -> list[Candle]:
        """Fetch candles for [start, end], newest first."""
        params = {
            "start": start,
            "end": end,
            "granularity": granularity,
        }
        path = f"/products/{product_id}/candles"
        rows = self._get_list(path, params)
        return self._adapt(path, lambda: adapters.adapt_candles(rows, product_id, granularity))

    def fetch_ticker(self, product_id: str) -> dict[str, Any]:
        return self._get_dict(f"/products/{product_id}/ticker")

    def fetch_product_stats(self, product_id: str) -> dict[str, Any]:
        return self._get_dict(f"/products/{product_id}/stats")

    def fetch_order_book(self, product_id: str, *, level: int = 3) -> OrderBook:
        path = f"/products/{product_id}/book"
        payload = self._get_dict(path, {"level": str(level)})
        return self._adapt(path, lambda: adapters.adapt_order_book(payload, product_id, level))

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
