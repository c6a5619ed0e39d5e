"""
Yahoo Finance provider tests.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from marketpush.data.yahoo import YahooFinanceProvider
from marketpush.errors import ProviderError


class TestYahooQuotes:
    """Test quote parsing from yfinance info dicts."""

    def test_get_quote(self):
        """Should use regularMarketPrice and compute change from previousClose."""
        with patch("yfinance.Ticker") as mock_ticker:
            mock_ticker.return_value.info = {
                "regularMarketPrice": 110.0,
                "previousClose": 100.0,
                "shortName": "Example Corp",
            }

            quote = YahooFinanceProvider().get_quote("EXM")

        assert quote.price == 110.0
        assert quote.change == 10.0
        assert quote.change_pct == pytest.approx(10.0)
        assert quote.name == "Example Corp"

    def test_falls_back_to_previous_close(self):
        with patch("yfinance.Ticker") as mock_ticker:
            mock_ticker.return_value.info = {"previousClose": 42.0}

            quote = YahooFinanceProvider().get_quote("EXM")

        assert quote.price == 42.0
        assert quote.change_pct == 0.0

    def test_no_price_is_missing(self):
        with patch("yfinance.Ticker") as mock_ticker:
            mock_ticker.return_value.info = {"shortName": "Delisted"}

            with pytest.raises(ProviderError):
                YahooFinanceProvider().get_quote("GONE")

    def test_yfinance_error_wrapped(self):
        with patch("yfinance.Ticker", side_effect=RuntimeError("rate limited")):
            with pytest.raises(ProviderError):
                YahooFinanceProvider().get_quotes(["AAPL"])


class TestYahooScreens:
    """Test mover screens."""

    def test_gainers(self):
        with patch("yfinance.screen") as mock_screen:
            mock_screen.return_value = {
                "quotes": [
                    {
                        "symbol": "TSLA",
                        "regularMarketPrice": 180.0,
                        "regularMarketChange": 20.0,
                        "regularMarketChangePercent": 12.5,
                        "shortName": "Tesla",
                    },
                    {"symbol": "HALF"},
                ]
            }

            gainers = YahooFinanceProvider(count=10).get_gainers()

        mock_screen.assert_called_once_with("day_gainers", count=10)
        assert [g.symbol for g in gainers] == ["TSLA"]
        assert gainers[0].change_pct == 12.5

    def test_malformed_screen_is_empty(self):
        with patch("yfinance.screen") as mock_screen:
            mock_screen.return_value = {"quotes": None}

            assert YahooFinanceProvider().get_losers() == []

    def test_screen_error_wrapped(self):
        with patch("yfinance.screen", side_effect=ValueError("bad screen")):
            with pytest.raises(ProviderError):
                YahooFinanceProvider().get_actives()


class TestYahooNews:
    """Test news parsing for both yfinance payload shapes."""

    def test_merges_and_sorts(self):
        """Nested and legacy items are parsed, de-duplicated and sorted newest first."""
        nested = {
            "id": "1",
            "content": {
                "title": "Fed holds rates",
                "summary": "The Federal Reserve...",
                "pubDate": "2024-05-01T18:00:00Z",
                "canonicalUrl": {"url": "https://news.example.com/fed"},
                "provider": {"displayName": "Reuters"},
                "thumbnail": {"originalUrl": "https://img.example.com/fed.jpg"},
            },
        }
        legacy = {
            "title": "Apple buyback",
            "link": "https://news.example.com/apple",
            "publisher": "Bloomberg",
            "providerPublishTime": 1714573800,
            "relatedTickers": ["AAPL"],
        }
        spy = MagicMock()
        spy.news = [nested, legacy]
        qqq = MagicMock()
        qqq.news = [nested]

        with patch("yfinance.Ticker", side_effect=[spy, qqq]):
            articles = YahooFinanceProvider(news_symbols=["SPY", "QQQ"]).get_news()

        assert [a.url for a in articles] == [
            "https://news.example.com/fed",
            "https://news.example.com/apple",
        ]
        assert articles[0].site == "Reuters"
        assert articles[0].image == "https://img.example.com/fed.jpg"
        assert articles[0].published_at == datetime(
            2024, 5, 1, 18, 0, tzinfo=timezone.utc
        )
        assert articles[1].symbol == "AAPL"

    def test_items_without_url_skipped(self):
        ticker = MagicMock()
        ticker.news = [{"content": {"title": "No link"}}, {"title": "Also none"}]

        with patch("yfinance.Ticker", return_value=ticker):
            assert YahooFinanceProvider().get_news() == []
