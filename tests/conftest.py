"""Shared test fixtures for pytest.

Provides common test data, fake exchange clients and utilities used across
multiple test files.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.market_data.trades import TradePage
from core.types import Candle, Trade


def make_trade(trade_id: int, product_id: str = "BTC-USD") -> Trade:
    return Trade(
        symbol=product_id,
        exchange="coinbasepro",
        trade_id=trade_id,
        price=Decimal("40000") + Decimal(trade_id),
        amount=Decimal("0.01"),
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=trade_id),
        side="BUY" if trade_id % 2 else "SELL",
    )


class FakeTradeHistory:
    """In-memory trade history behaving like the Coinbase `after` cursor.

    `fetch_trades` returns up to `limit` trades with ids strictly below
    `before_id`, newest first, and records every cursor it was called with.
    """

    def __init__(self, trade_ids: Iterable[int], product_id: str = "BTC-USD") -> None:
        self.trades = {i: make_trade(i, product_id) for i in trade_ids}
        self.calls: list[int | None] = []
        self.candle_calls: list[dict[str, str]] = []
        self.candles: list[Candle] = []

    def fetch_trades(self, product_id: str, *, before_id: int | None = None, limit: int = 100) -> TradePage:
        self.calls.append(before_id)
        ids = sorted(
            (i for i in self.trades if before_id is None or i < before_id),
            reverse=True,
        )[:limit]
        return TradePage(tuple(self.trades[i] for i in ids))

    def fetch_candles(self, product_id: str, *, start: str, end: str, granularity: str) -> list[Candle]:
        self.candle_calls.append({"start": start, "end": end, "granularity": granularity})
        return list(self.candles)


@pytest.fixture
def trade_history() -> FakeTradeHistory:
    """Trade history with ids 1..250."""
    return FakeTradeHistory(range(1, 251))


@pytest.fixture
def sample_candles() -> list[Candle]:
    """Sample candles for testing.

    Returns 5 consecutive 1h candles for BTC-USD, newest first (the order
    Coinbase Pro returns them in).
    """
    candles = []

    for i in range(5):
        open_time = datetime(2024, 1, 1, i, 0, 0, tzinfo=timezone.utc)
        close_time = datetime(2024, 1, 1, i + 1, 0, 0, tzinfo=timezone.utc)
        candles.append(
            Candle(
                exchange="coinbasepro",
                symbol="BTC-USD",
                granularity="3600",
                open_time=open_time,
                close_time=close_time,
                open=Decimal("40000") + Decimal(i * 100),
                high=Decimal("40500") + Decimal(i * 100),
                low=Decimal("39500") + Decimal(i * 100),
                close=Decimal("40200") + Decimal(i * 100),
                volume=Decimal("100.5"),
            )
        )

    candles.reverse()
    return candles
