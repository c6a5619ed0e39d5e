"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from marketpush.data.fetcher import (
    MarketDataProvider,
    MarketMover,
    NewsArticle,
    Quote,
)
from marketpush.database.connection import Database
from marketpush.errors import DeliveryError, ProviderError
from marketpush.notifiers.base import (
    ALL_SUBSCRIBERS,
    DeliveryResult,
    Dispatcher,
    Recipients,
)


class FakeProvider(MarketDataProvider):
    """In-memory provider; set `fail` to make every call raise."""

    def __init__(
        self,
        quotes: Optional[dict[str, Quote]] = None,
        gainers: Optional[list[MarketMover]] = None,
        losers: Optional[list[MarketMover]] = None,
        news: Optional[list[NewsArticle]] = None,
    ):
        self.quotes = quotes or {}
        self.gainers = gainers or []
        self.losers = losers or []
        self.news = news or []
        self.fail = False
        self.quote_calls: list[list[str]] = []

    def _check(self):
        if self.fail:
            raise ProviderError("provider down")

    def get_quotes(self, symbols):
        self._check()
        self.quote_calls.append(list(symbols))
        return {s: self.quotes[s] for s in symbols if s in self.quotes}

    def get_gainers(self):
        self._check()
        return list(self.gainers)

    def get_losers(self):
        self._check()
        return list(self.losers)

    def get_actives(self):
        self._check()
        return []

    def get_news(self, limit=50):
        self._check()
        return list(self.news[:limit])


class RecordingDispatcher(Dispatcher):
    """Keeps every send; set `fail` to raise DeliveryError instead."""

    def __init__(self, recipient_count: int = 100):
        self.sent: list[dict[str, Any]] = []
        self.recipient_count = recipient_count
        self.fail = False

    def send(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        recipients: Recipients = ALL_SUBSCRIBERS,
        image: Optional[str] = None,
    ) -> DeliveryResult:
        if self.fail:
            raise DeliveryError("push service unavailable")
        self.sent.append(
            {
                "title": title,
                "body": body,
                "data": data or {},
                "recipients": recipients,
                "image": image,
            }
        )
        return DeliveryResult(
            id=f"msg-{len(self.sent)}", recipient_count=self.recipient_count
        )


@pytest.fixture
def db():
    """Fresh in-memory database with schema."""
    database = Database(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def now():
    """Fixed reference time: 2024-05-01 15:00 UTC."""
    return datetime(2024, 5, 1, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_fmp_quote():
    """Sample FMP /quote response item."""
    return {
        "symbol": "AAPL",
        "name": "Apple Inc.",
        "price": 151.20,
        "changesPercentage": 1.25,
        "change": 1.87,
        "dayLow": 149.10,
        "dayHigh": 152.00,
    }
