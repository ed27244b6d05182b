"""Map Coinbase Pro REST payloads to core.types records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Mapping, Sequence

from core.types import Candle, OrderBook, OrderBookLevel, Ticker, Trade

EXCHANGE = "coinbasepro"

# Raised by the adapters when a payload does not match the documented shape
# (decimal.InvalidOperation is an ArithmeticError)
MALFORMED_PAYLOAD_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError, ArithmeticError)


def parse_time(value: str) -> datetime:
    """Parse Coinbase ISO-8601 timestamps (e.g. 2024-01-01T12:00:00.123456Z)."""
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    # fromisoformat only accepts 3 or 6 fractional digits on older interpreters
    if "." in s:
        head, _, rest = s.partition(".")
        digits = "".join(ch for ch in rest if ch.isdigit())
        tz = rest[len(digits):]
        s = f"{head}.{digits[:6].ljust(6, '0')}{tz}"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def adapt_trade(row: Mapping[str, Any], symbol: str) -> Trade:
    """Coinbase reports the maker side; "sell" means the taker bought."""
    maker_side = str(row.get("side", "")).lower()
    return Trade(
        symbol=symbol,
        exchange=EXCHANGE,
        trade_id=int(row["trade_id"]),
        price=Decimal(str(row["price"])),
        amount=Decimal(str(row["size"])),
        timestamp=parse_time(str(row["time"])),
        side="BUY" if maker_side == "sell" else "SELL",
    )


def adapt_trades(rows: Sequence[Mapping[str, Any]], symbol: str) -> list[Trade]:
    return [adapt_trade(row, symbol) for row in rows]


def adapt_candles(rows: Sequence[Sequence[Any]], symbol: str, granularity: str) -> list[Candle]:
    """Response format: [[time, low, high, open, close, volume], ...] newest first."""
    delta = timedelta(seconds=int(granularity))
    candles = []
    for row in rows:
        open_time = datetime.fromtimestamp(int(row[0]), tz=timezone.utc)
        candles.append(
            Candle(
                symbol=symbol,
                exchange=EXCHANGE,
                granularity=granularity,
                open_time=open_time,
                close_time=open_time + delta,
                low=Decimal(str(row[1])),
                high=Decimal(str(row[2])),
                open=Decimal(str(row[3])),
                close=Decimal(str(row[4])),
                volume=Decimal(str(row[5])),
            )
        )
    return candles


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def adapt_ticker(ticker: Mapping[str, Any], stats: Mapping[str, Any], symbol: str) -> Ticker:
    timestamp = ticker.get("time")
    return Ticker(
        symbol=symbol,
        exchange=EXCHANGE,
        last=Decimal(str(ticker["price"])),
        bid=Decimal(str(ticker["bid"])),
        ask=Decimal(str(ticker["ask"])),
        volume=Decimal(str(ticker.get("volume") or stats.get("volume") or "0")),
        open=_optional_decimal(stats.get("open")),
        high=_optional_decimal(stats.get("high")),
        low=_optional_decimal(stats.get("low")),
        timestamp=parse_time(str(timestamp)) if timestamp else None,
    )


def _adapt_levels(rows: Sequence[Sequence[Any]], level: int) -> tuple[OrderBookLevel, ...]:
    # Level 3 rows are [price, size, order_id]; levels 1/2 are [price, size, num_orders]
    return tuple(
        OrderBookLevel(
            price=Decimal(str(row[0])),
            amount=Decimal(str(row[1])),
            order_id=str(row[2]) if level == 3 and len(row) > 2 else None,
        )
        for row in rows
    )


def adapt_order_book(payload: Mapping[str, Any], symbol: str, level: int) -> OrderBook:
    sequence = payload.get("sequence")
    timestamp = payload.get("time")
    return OrderBook(
        symbol=symbol,
        exchange=EXCHANGE,
        bids=_adapt_levels(payload.get("bids") or [], level),
        asks=_adapt_levels(payload.get("asks") or [], level),
        sequence=int(sequence) if sequence is not None else None,
        timestamp=parse_time(str(timestamp)) if timestamp else None,
    )
