from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://api.exchange.coinbase.com"


@dataclass(frozen=True)
class CoinbaseProConfig:
    """Connection and pagination settings for the Coinbase Pro REST API.

    `max_trade_pages` caps how many pages a single trade range request may
    fetch before giving up.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 20.0
    trade_page_size: int = 100
    max_trade_pages: int = 1000
    user_agent: str = "coinbasepro-market-data/1.0"

    @classmethod
    def from_env(cls) -> "CoinbaseProConfig":
        """Build a config from COINBASEPRO_* environment variables."""
        return cls(
            base_url=os.environ.get("COINBASEPRO_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            timeout_s=float(os.environ.get("COINBASEPRO_TIMEOUT_S", "20")),
            max_trade_pages=int(os.environ.get("COINBASEPRO_MAX_TRADE_PAGES", "1000")),
        )
