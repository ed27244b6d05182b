from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

TradeSide = Literal["BUY", "SELL"]


@dataclass(frozen=True)
class Candle:
    symbol: str
    exchange: str
    granularity: str  # bucket width in seconds, e.g. "3600"
    open_time: datetime
    close_time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal


@dataclass(frozen=True)
class Trade:
    symbol: str
    exchange: str
    trade_id: int
    price: Decimal
    amount: Decimal
    timestamp: datetime
    side: TradeSide


@dataclass(frozen=True)
class Ticker:
    symbol: str
    exchange: str
    last: Decimal
    bid: Decimal
    ask: Decimal
    volume: Decimal
    open: Optional[Decimal] = None
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class OrderBookLevel:
    price: Decimal
    amount: Decimal
    order_id: Optional[str] = None  # only present on level 3 books


@dataclass(frozen=True)
class OrderBook:
    symbol: str
    exchange: str
    bids: tuple[OrderBookLevel, ...]
    asks: tuple[OrderBookLevel, ...]
    sequence: Optional[int] = None
    timestamp: Optional[datetime] = None
