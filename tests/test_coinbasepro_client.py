"""Tests for the Coinbase Pro REST client."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from cex.coinbasepro.api import adapters
from cex.coinbasepro.api.client import CoinbaseProClient, parse_retry_after
from cex.coinbasepro.api.config import DEFAULT_BASE_URL, CoinbaseProConfig
from core.market_data.errors import (
    MarketDataError,
    RateLimitExceededError,
    TransportError,
    classify_http_error,
)


def _response(payload, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {}
    resp.text = ""
    resp.json.return_value = payload
    return resp


def _client_with(mock_session_class, resp) -> tuple[CoinbaseProClient, MagicMock]:
    mock_session = MagicMock()
    mock_session.get.return_value = resp
    mock_session_class.return_value = mock_session
    return CoinbaseProClient(CoinbaseProConfig(base_url="https://cb.test")), mock_session


def test_client_init_sets_headers():
    client = CoinbaseProClient()
    assert client.config.base_url == DEFAULT_BASE_URL
    assert client.session.headers["Accept"] == "application/json"
    assert "coinbasepro-market-data" in client.session.headers["User-Agent"]
    client.close()


@patch("cex.coinbasepro.api.client.requests.Session")
def test_fetch_trades_uses_after_cursor(mock_session_class):
    resp = _response([
        {"time": "2024-01-01T00:00:02.5Z", "trade_id": 12, "price": "42000.5", "size": "0.1", "side": "sell"},
        {"time": "2024-01-01T00:00:01Z", "trade_id": 11, "price": "41999.0", "size": "0.2", "side": "buy"},
    ])
    client, session = _client_with(mock_session_class, resp)

    page = client.fetch_trades("BTC-USD", before_id=13, limit=100)

    session.get.assert_called_once_with(
        "https://cb.test/products/BTC-USD/trades",
        params={"limit": "100", "after": "13"},
        timeout=20.0,
    )
    assert page.earliest_id == 11
    assert page.latest_id == 12
    first = page.trades[0]
    assert first.price == Decimal("42000.5")
    assert first.amount == Decimal("0.1")
    assert first.side == "BUY"
    assert first.timestamp == datetime(2024, 1, 1, 0, 0, 2, 500000, tzinfo=timezone.utc)
    assert page.trades[1].side == "SELL"


@patch("cex.coinbasepro.api.client.requests.Session")
def test_fetch_trades_without_cursor_omits_after(mock_session_class):
    client, session = _client_with(mock_session_class, _response([]))

    page = client.fetch_trades("BTC-USD")

    assert session.get.call_args.kwargs["params"] == {"limit": "100"}
    assert page.earliest_id is None


@patch("cex.coinbasepro.api.client.requests.Session")
def test_fetch_candles_maps_rows(mock_session_class):
    # [time, low, high, open, close, volume], newest first
    resp = _response([
        [1704070800, 39900, 40600, 40100, 40500, 12.5],
        [1704067200, 39500, 40500, 40000, 40100, 10.0],
    ])
    client, session = _client_with(mock_session_class, resp)

    candles = client.fetch_candles("BTC-USD", start="2024-01-01T00:00Z", end="2024-01-01T02:00Z", granularity="3600")

    assert session.get.call_args.kwargs["params"] == {
        "start": "2024-01-01T00:00Z",
        "end": "2024-01-01T02:00Z",
        "granularity": "3600",
    }
    assert [c.open_time.hour for c in candles] == [1, 0]
    newest = candles[0]
    assert newest.low == Decimal("39900")
    assert newest.high == Decimal("40600")
    assert newest.open == Decimal("40100")
    assert newest.close == Decimal("40500")
    assert newest.volume == Decimal("12.5")
    assert newest.close_time == datetime(2024, 1, 1, 2, 0, tzinfo=timezone.utc)


@patch("cex.coinbasepro.api.client.requests.Session")
def test_fetch_order_book_level_3(mock_session_class):
    resp = _response({
        "sequence": 3,
        "bids": [["42000.00", "1.5", "order-a"]],
        "asks": [["42001.00", "0.5", "order-b"], ["42002.00", "2", "order-c"]],
    })
    client, session = _client_with(mock_session_class, resp)

    book = client.fetch_order_book("BTC-USD", level=3)

    assert session.get.call_args.kwargs["params"] == {"level": "3"}
    assert book.sequence == 3
    assert book.bids[0].price == Decimal("42000.00")
    assert book.bids[0].order_id == "order-a"
    assert len(book.asks) == 2


@patch("cex.coinbasepro.api.client.requests.Session")
def test_rate_limit_raises_without_retry(mock_session_class):
    resp = _response({"message": "Public rate limit exceeded"}, status_code=429)
    resp.headers = {"Retry-After": "2"}
    client, session = _client_with(mock_session_class, resp)

    with pytest.raises(RateLimitExceededError) as exc_info:
        client.fetch_trades("BTC-USD", before_id=100)

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 2.0
    assert session.get.call_count == 1


@patch("cex.coinbasepro.api.client.requests.Session")
def test_http_error_raises_transport_error(mock_session_class):
    resp = _response({"message": "Internal"}, status_code=500)
    resp.text = "Internal"
    client, _ = _client_with(mock_session_class, resp)

    with pytest.raises(TransportError) as exc_info:
        client.fetch_ticker("BTC-USD")

    assert exc_info.value.status_code == 500


@patch("cex.coinbasepro.api.client.requests.Session")
def test_connection_error_raises_transport_error(mock_session_class):
    mock_session = MagicMock()
    mock_session.get.side_effect = requests.ConnectionError("connection reset")
    mock_session_class.return_value = mock_session

    client = CoinbaseProClient()
    with pytest.raises(TransportError, match="connection reset"):
        client.fetch_trades("BTC-USD")


@patch("cex.coinbasepro.api.client.requests.Session")
def test_invalid_json_raises_transport_error(mock_session_class):
    resp = _response(None)
    resp.json.side_effect = ValueError("no json")
    client, _ = _client_with(mock_session_class, resp)

    with pytest.raises(TransportError, match="invalid JSON"):
        client.fetch_product_stats("BTC-USD")


@patch("cex.coinbasepro.api.client.requests.Session")
def test_unexpected_payload_type_raises_transport_error(mock_session_class):
    client, _ = _client_with(mock_session_class, _response({"message": "NotFound"}))

    with pytest.raises(TransportError, match="Unexpected response type"):
        client.fetch_trades("BTC-USD")


def test_classify_http_error():
    assert isinstance(classify_http_error(429, "slow"), RateLimitExceededError)
    err = classify_http_error(503, "down")
    assert isinstance(err, TransportError)
    assert isinstance(err, MarketDataError)
    assert err.status_code == 503


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("COINBASEPRO_BASE_URL", "https://sandbox.test/")
    monkeypatch.setenv("COINBASEPRO_TIMEOUT_S", "5")
    monkeypatch.setenv("COINBASEPRO_MAX_TRADE_PAGES", "10")

    config = CoinbaseProConfig.from_env()

    assert config.base_url == "https://sandbox.test"
    assert config.timeout_s == 5.0
    assert config.max_trade_pages == 10
    assert config.trade_page_size == 100


def test_config_defaults(monkeypatch):
    for name in ("COINBASEPRO_BASE_URL", "COINBASEPRO_TIMEOUT_S", "COINBASEPRO_MAX_TRADE_PAGES"):
        monkeypatch.delenv(name, raising=False)

    config = CoinbaseProConfig.from_env()
    assert config == CoinbaseProConfig()


def test_parse_time_handles_variable_precision():
    assert adapters.parse_time("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert adapters.parse_time("2024-01-01T00:00:00.1234567Z") == datetime(
        2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc
    )
    assert adapters.parse_time("2024-01-01T02:00:00+02:00") == datetime(2024, 1, 1, tzinfo=timezone.utc)


@patch("cex.coinbasepro.api.client.requests.Session")
def test_rate_limit_with_http_date_retry_after(mock_session_class):
    resp = _response({"message": "Public rate limit exceeded"}, status_code=429)
    resp.headers = {"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}
    client, _ = _client_with(mock_session_class, resp)

    with pytest.raises(RateLimitExceededError) as exc_info:
        client.fetch_trades("BTC-USD", before_id=100)

    assert isinstance(exc_info.value.retry_after, float)
    assert exc_info.value.retry_after >= 0.0


@patch("cex.coinbasepro.api.client.requests.Session")
def test_rate_limit_with_garbage_retry_after(mock_session_class):
    resp = _response({"message": "Public rate limit exceeded"}, status_code=429)
    resp.headers = {"Retry-After": "soon"}
    client, _ = _client_with(mock_session_class, resp)

    with pytest.raises(RateLimitExceededError) as exc_info:
        client.fetch_trades("BTC-USD")

    assert exc_info.value.retry_after is None


def test_parse_retry_after():
    assert parse_retry_after("2") == 2.0
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("") is None
    assert parse_retry_after("not a date") is None


@pytest.mark.parametrize(
    "rows",
    [
        [{"trade_id": 1}],
        ["oops"],
        [{"time": "2024-01-01T00:00:01Z", "trade_id": 1, "price": "x", "size": "0.1", "side": "buy"}],
        [{"time": "yesterday", "trade_id": 1, "price": "1", "size": "0.1", "side": "buy"}],
    ],
    ids=["missing-field", "non-dict-row", "bad-decimal", "bad-time"],
)
@patch("cex.coinbasepro.api.client.requests.Session")
def test_malformed_trade_rows_raise_transport_error(mock_session_class, rows):
    client, _ = _client_with(mock_session_class, _response(rows))

    with pytest.raises(TransportError, match="Unexpected payload shape"):
        client.fetch_trades("BTC-USD")


@patch("cex.coinbasepro.api.client.requests.Session")
def test_short_candle_row_raises_transport_error(mock_session_class):
    client, _ = _client_with(mock_session_class, _response([[1704067200, 1, 2]]))

    with pytest.raises(TransportError, match="Unexpected payload shape"):
        client.fetch_candles("BTC-USD", start="2024-01-01T00:00Z", end="2024-01-01T02:00Z", granularity="3600")


@patch("cex.coinbasepro.api.client.requests.Session")
def test_malformed_order_book_raises_transport_error(mock_session_class):
    client, _ = _client_with(mock_session_class, _response({"bids": [["x"]], "asks": []}))

    with pytest.raises(TransportError, match="Unexpected payload shape"):
        client.fetch_order_book("BTC-USD", level=2)
