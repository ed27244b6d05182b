"""Market data retrieval for Coinbase Pro.

Candles are fetched over a fixed 14-bucket window; trade history is
assembled by backward cursor pagination over bounded pages.
"""

from core.market_data.base import CoinbaseProRawClient, MarketDataService
from core.market_data.candles import CandleWindow, build_candle_window, resolve_granularity
from core.market_data.coinbasepro_provider import CoinbaseProMarketDataService, normalize_product_id
from core.market_data.errors import (
    InvalidArgumentError,
    MarketDataError,
    PaginationError,
    RateLimitExceededError,
    TransportError,
)
from core.market_data.trades import (
    DefaultTradeRequest,
    RangeTradeRequest,
    TradePage,
    TradeRequest,
    TradeSet,
)

__all__ = [
    "CoinbaseProRawClient",
    "MarketDataService",
    "CandleWindow",
    "build_candle_window",
    "resolve_granularity",
    "CoinbaseProMarketDataService",
    "normalize_product_id",
    "InvalidArgumentError",
    "MarketDataError",
    "PaginationError",
    "RateLimitExceededError",
    "TransportError",
    "DefaultTradeRequest",
    "RangeTradeRequest",
    "TradePage",
    "TradeRequest",
    "TradeSet",
    "get_market_data_service",
]


def get_market_data_service(exchange: str = "coinbasepro") -> MarketDataService:
    """Factory function to get the market data service for an exchange."""
    services = {
        "coinbasepro": CoinbaseProMarketDataService,
        "coinbase": CoinbaseProMarketDataService,
    }

    exchange_lower = exchange.lower().strip()
    if exchange_lower not in services:
        raise ValueError(f"Unsupported exchange: {exchange}. Supported: {', '.join(services.keys())}")

    return services[exchange_lower]()
