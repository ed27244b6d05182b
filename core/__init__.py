"""Core domain modules.

- types: venue-agnostic records (candles, trades, tickers, order books)
- market_data: windowed candle requests and paginated trade history
"""
