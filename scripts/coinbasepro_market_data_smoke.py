#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.market_data import CoinbaseProMarketDataService, MarketDataError
from core.market_data.candles import supported_intervals


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Smoke-test Coinbase Pro public market data (no DB).")
    p.add_argument("--symbol", required=True, help="Symbol like BTC-USD (or BTCUSD, BTC/USD)")
    p.add_argument(
        "--interval",
        type=int,
        default=60,
        help=f"Candle interval in minutes (supported: {', '.join(map(str, supported_intervals()))})",
    )
    p.add_argument("--from-id", type=int, default=None, help="Lower trade id of the range")
    p.add_argument("--to-id", type=int, default=None, help="Upper trade id (cursor) of the range")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if (args.from_id is None) != (args.to_id is None):
        print("--from-id and --to-id must be given together", file=sys.stderr)
        return 2

    service = CoinbaseProMarketDataService()
    try:
        candles = service.get_candles(args.symbol, args.interval)
        print(f"candles={len(candles)}")
        if candles:
            print(f"first_open_time_utc={candles[0].open_time.isoformat()}")
            print(f"last_open_time_utc={candles[-1].open_time.isoformat()}")

        if args.from_id is None:
            trades = service.get_trades(args.symbol)
        else:
            trades = service.get_trades(args.symbol, args.from_id, args.to_id)
        print(f"trades={len(trades)} earliest_id={trades.earliest_id} latest_id={trades.latest_id}")
    except MarketDataError as exc:
        print(f"error={exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
