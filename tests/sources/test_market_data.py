"""Tests for quote sources and the market data service."""

import json
from datetime import datetime, timedelta, timezone
from io import BytesIO
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from ct_app.errors import DataSourceError, DataSourceUnavailableError
from ct_app.resilience import BreakerConfig, BreakerRegistry
from ct_app.sources import HttpQuoteSource, MarketDataService, Quote, QuoteSource

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeSource(QuoteSource):
    """Source returning scripted quotes or errors."""

    def __init__(self, name, price=100.0):
        super().__init__(name)
        self.price = price
        self.error = None
        self.calls = 0

    def fetch(self, symbol):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return Quote(symbol=symbol, price=self.price, timestamp=NOW, source=self.name)


def _response(payload):
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8")
    response.__enter__.return_value = response
    return response


class TestHttpQuoteSource:
    """Test suite for HttpQuoteSource."""

    def setup_method(self):
        self.source = HttpQuoteSource("primary", "https://quotes.example.com/price/{symbol}")

    @patch("ct_app.sources.http_source.urlopen")
    def test_fetch_parses_quote(self, mock_urlopen):
        mock_urlopen.return_value = _response({"price": "64250.5", "timestamp": "2024-05-01T12:00:00Z"})

        quote = self.source.fetch("BTC-USD")

        assert quote == Quote("BTC-USD", 64250.5, NOW, "primary")
        request = mock_urlopen.call_args[0][0]
        assert request.full_url == "https://quotes.example.com/price/BTC-USD"

    @patch("ct_app.sources.http_source.urlopen")
    def test_symbol_is_url_encoded(self, mock_urlopen):
        mock_urlopen.return_value = _response({"price": 1.0})

        self.source.fetch("BTC/USD")

        assert mock_urlopen.call_args[0][0].full_url == "https://quotes.example.com/price/BTC%2FUSD"

    @patch("ct_app.sources.http_source.urlopen")
    def test_missing_timestamp_uses_receive_time(self, mock_urlopen):
        mock_urlopen.return_value = _response({"price": 10})

        quote = self.source.fetch("ETH-USD")
        assert quote.timestamp.tzinfo == timezone.utc

    @pytest.mark.parametrize("code,retryable", [(503, True), (404, False)])
    @patch("ct_app.sources.http_source.urlopen")
    def test_http_errors(self, mock_urlopen, code, retryable):
        mock_urlopen.side_effect = HTTPError("https://quotes.example.com", code, "error", {}, BytesIO(b""))

        with pytest.raises(DataSourceError) as exc_info:
            self.source.fetch("BTC-USD")

        assert exc_info.value.retryable is retryable
        assert exc_info.value.source == "primary"

    @patch("ct_app.sources.http_source.urlopen")
    def test_network_error_is_retryable(self, mock_urlopen):
        mock_urlopen.side_effect = URLError("connection refused")

        with pytest.raises(DataSourceError) as exc_info:
            self.source.fetch("BTC-USD")
        assert exc_info.value.retryable is True

    @pytest.mark.parametrize("payload", [
        {"price": 0}, {"price": "abc"}, {"last": 1}, [1, 2], {"price": True},
        {"price": float("nan")}, {"price": "nan"}, {"price": float("inf")}, {"price": "-Infinity"},
    ])
    @patch("ct_app.sources.http_source.urlopen")
    def test_malformed_body(self, mock_urlopen, payload):
        mock_urlopen.return_value = _response(payload)

        with pytest.raises(DataSourceError) as exc_info:
            self.source.fetch("BTC-USD")
        assert exc_info.value.retryable is False

    @patch("ct_app.sources.http_source.urlopen")
    def test_non_utf8_body(self, mock_urlopen):
        response = MagicMock()
        response.read.return_value = b'{"price": 1.0, "note": "\xff"}'
        response.__enter__.return_value = response
        mock_urlopen.return_value = response

        with pytest.raises(DataSourceError, match="not UTF-8") as exc_info:
            self.source.fetch("BTC-USD")
        assert exc_info.value.retryable is False

    @patch("ct_app.sources.http_source.urlopen")
    def test_undecodable_body_degrades_to_unavailable(self, mock_urlopen):
        response = MagicMock()
        response.read.return_value = b"\xff\xfe"
        response.__enter__.return_value = response
        mock_urlopen.return_value = response

        with pytest.raises(DataSourceUnavailableError):
            MarketDataService([self.source]).get_quote("BTC-USD")

    @pytest.mark.parametrize("url", ["ftp://quotes.example.com/{symbol}", "https://quotes.example.com/price"])
    def test_invalid_url_template(self, url):
        with pytest.raises(ValueError):
            HttpQuoteSource("bad", url)


class TestMarketDataService:
    """Test suite for MarketDataService."""

    def setup_method(self):
        self.now = NOW
        self.primary = FakeSource("primary", price=100.0)
        self.backup = FakeSource("backup", price=101.0)
        self.breakers = BreakerRegistry(BreakerConfig(failure_threshold=2, reset_timeout_seconds=60))
        self.service = MarketDataService(
            [self.primary, self.backup],
            breakers=self.breakers,
            max_stale_seconds=300,
            clock=lambda: self.now
        )

    def test_uses_first_healthy_source(self):
        quote = self.service.get_quote(" btc-usd ")

        assert quote.symbol == "BTC-USD"
        assert quote.source == "primary"
        assert quote.stale is False
        assert self.backup.calls == 0

    def test_falls_over_to_backup(self):
        self.primary.error = DataSourceError("down", source="primary")

        quote = self.service.get_quote("BTC-USD")
        assert quote.source == "backup"

    def test_open_breaker_skips_source(self):
        self.primary.error = DataSourceError("down", source="primary")
        for _ in range(3):
            self.service.get_quote("BTC-USD")

        # Third call was short-circuited by the open breaker
        assert self.primary.calls == 2
        assert self.service.health()["primary"]["state"] == "open"
        assert self.service.health()["backup"]["state"] == "closed"

    def test_stale_fallback(self):
        self.service.get_quote("BTC-USD")
        self.primary.error = DataSourceError("down", source="primary")
        self.backup.error = DataSourceError("down", source="backup")
        self.now = NOW + timedelta(seconds=120)

        quote = self.service.get_quote("BTC-USD")
        assert quote.stale is True
        assert quote.price == 100.0
        assert quote.source == "primary"

    def test_unavailable_when_fallback_too_old(self):
        self.service.get_quote("BTC-USD")
        self.primary.error = DataSourceError("down", source="primary")
        self.backup.error = DataSourceError("down", source="backup")
        self.now = NOW + timedelta(seconds=301)

        with pytest.raises(DataSourceUnavailableError) as exc_info:
            self.service.get_quote("BTC-USD")

        assert exc_info.value.symbol == "BTC-USD"
        assert set(exc_info.value.failures) == {"primary", "backup"}
        assert exc_info.value.degraded_functionality == "market_data"

    def test_unavailable_without_sources(self):
        service = MarketDataService([])

        with pytest.raises(DataSourceUnavailableError):
            service.get_quote("BTC-USD")

    def test_quote_to_dict(self):
        data = self.service.get_quote("BTC-USD").to_dict()
        assert data == {
            "symbol": "BTC-USD",
            "price": 100.0,
            "timestamp": "2024-05-01T12:00:00+00:00",
            "source": "primary",
            "stale": False,
        }
