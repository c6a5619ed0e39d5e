"""
Yahoo Finance provider.
"""

import logging
from typing import Any, Optional

import yfinance as yf

from marketpush.errors import ProviderError
from .fetcher import (
    MarketDataProvider,
    MarketMover,
    NewsArticle,
    Quote,
    as_list,
    parse_timestamp,
    to_float,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """Fetches quotes, movers and news through yfinance."""

    SCREENS = {
        "gainers": "day_gainers",
        "losers": "day_losers",
        "actives": "most_actives",
    }

    def __init__(self, news_symbols: Optional[list[str]] = None, count: int = 25):
        """
        Initialize Yahoo provider.

        Args:
            news_symbols: Tickers whose news feeds make up "market news"
            count: Number of rows requested from each mover screen
        """
        self.news_symbols = news_symbols or ["SPY"]
        self.count = count

    def get_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """Fetch current quotes, skipping symbols Yahoo has no price for."""
        quotes = {}
        for symbol in symbols:
            try:
                info = yf.Ticker(symbol).info
            except Exception as e:
                raise ProviderError(f"Yahoo quote failed for {symbol}: {e}") from e

            if not isinstance(info, dict):
                continue

            # Use regularMarketPrice if available, otherwise fall back to previousClose
            price = to_float(info.get("regularMarketPrice"))
            if price is None:
                price = to_float(info.get("previousClose"))
            if price is None:
                logger.warning(f"No price in Yahoo quote for {symbol}")
                continue

            previous_close = to_float(info.get("previousClose")) or price
            change = to_float(info.get("regularMarketChange"))
            if change is None:
                change = price - previous_close
            change_pct = to_float(info.get("regularMarketChangePercent"))
            if change_pct is None:
                change_pct = (change / previous_close * 100) if previous_close else 0.0

            quotes[symbol] = Quote(
                symbol=symbol,
                price=price,
                change=change,
                change_pct=change_pct,
                name=info.get("shortName") or "",
            )
        return quotes

    def get_gainers(self) -> list[MarketMover]:
        """Fetch today's top gainers."""
        return self._screen("gainers")

    def get_losers(self) -> list[MarketMover]:
        """Fetch today's top losers."""
        return self._screen("losers")

    def get_actives(self) -> list[MarketMover]:
        """Fetch today's most active symbols."""
        return self._screen("actives")

    def _screen(self, kind: str) -> list[MarketMover]:
        """Run a predefined Yahoo screen and parse its quotes."""
        try:
            result = yf.screen(self.SCREENS[kind], count=self.count)
        except Exception as e:
            raise ProviderError(f"Yahoo {kind} screen failed: {e}") from e

        payload = result.get("quotes") if isinstance(result, dict) else result
        movers = []
        for item in as_list(payload, kind):
            symbol = item.get("symbol")
            price = to_float(item.get("regularMarketPrice"))
            change_pct = to_float(item.get("regularMarketChangePercent"))
            if not symbol or price is None or change_pct is None:
                continue
            movers.append(
                MarketMover(
                    symbol=symbol,
                    price=price,
                    change=to_float(item.get("regularMarketChange")) or 0.0,
                    change_pct=change_pct,
                    name=item.get("shortName") or "",
                )
            )
        return movers

    def get_news(self, limit: int = 50) -> list[NewsArticle]:
        """Merge the news feeds of the configured symbols, newest first."""
        articles: dict[str, NewsArticle] = {}
        for symbol in self.news_symbols:
            try:
                items = yf.Ticker(symbol).news
            except Exception as e:
                raise ProviderError(f"Yahoo news failed for {symbol}: {e}") from e

            for item in as_list(items, "news"):
                article = self._parse_article(item)
                if article and article.url not in articles:
                    articles[article.url] = article

        ordered = sorted(
            articles.values(),
            key=lambda a: a.published_at.timestamp() if a.published_at else 0,
            reverse=True,
        )
        return ordered[:limit]

    def _parse_article(self, item: dict[str, Any]) -> Optional[NewsArticle]:
        """Parse either the nested "content" payload or the legacy flat one."""
        content = item.get("content")
        if isinstance(content, dict):
            url = (content.get("canonicalUrl") or {}).get("url") or (
                content.get("clickThroughUrl") or {}
            ).get("url")
            if not url:
                return None
            return NewsArticle(
                title=content.get("title") or "",
                text=content.get("summary") or content.get("description") or "",
                url=url,
                site=(content.get("provider") or {}).get("displayName") or "",
                published_at=parse_timestamp(content.get("pubDate")),
                image=(content.get("thumbnail") or {}).get("originalUrl"),
            )

        url = item.get("link")
        if not url:
            return None
        related = item.get("relatedTickers") or []
        return NewsArticle(
            title=item.get("title") or "",
            text=item.get("summary") or "",
            url=url,
            site=item.get("publisher") or "",
            symbol=related[0] if related else None,
            published_at=parse_timestamp(item.get("providerPublishTime")),
        )
