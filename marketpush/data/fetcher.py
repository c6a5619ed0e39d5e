"""
Market signal fetchers.

A provider answers four kinds of request: quotes for a symbol list,
gainer/loser/most-active lists, recent news, and index quotes. Each call is
a single round trip with a bounded timeout; there is no caching and no retry.
Transport problems raise ProviderError. A payload that decodes but has the
wrong shape is logged and treated as empty.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

import requests

from marketpush.config import ConfigValidationError, DataSourceConfig
from marketpush.errors import ProviderError

logger = logging.getLogger(__name__)

INDEX_LABELS = {
    "^GSPC": "S&P 500",
    "^DJI": "Dow",
    "^IXIC": "Nasdaq",
    "^RUT": "Russell 2000",
    "^VIX": "VIX",
}

DEFAULT_INDEX_SYMBOLS = ("^GSPC", "^DJI", "^IXIC")


def index_label(symbol: str) -> str:
    """Human label for an index symbol."""
    return INDEX_LABELS.get(symbol, symbol)


@dataclass
class Quote:
    """Current quote for one symbol."""

    symbol: str
    price: float
    change: float = 0.0
    change_pct: float = 0.0
    name: str = ""


@dataclass
class MarketMover:
    """Entry in a gainers/losers/actives list."""

    symbol: str
    price: float
    change: float
    change_pct: float
    name: str = ""


@dataclass
class NewsArticle:
    """News item from the provider. The URL is its identity."""

    title: str
    text: str
    url: str
    site: str = ""
    symbol: Optional[str] = None
    published_at: Optional[datetime] = None
    image: Optional[str] = None


@dataclass
class IndexQuote:
    """Index snapshot used by the daily recap."""

    symbol: str
    label: str
    price: float
    change_pct: float


def to_float(value: Any) -> Optional[float]:
    """Coerce a provider number, returning None for missing or junk values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Accepts ISO strings (with or without offset, "Z" suffix, space separator)
    and epoch seconds. Naive values are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def as_list(payload: Any, what: str) -> list[dict[str, Any]]:
    """Return the dict items of a list payload; anything else counts as empty."""
    if not isinstance(payload, list):
        logger.warning(
            f"Unexpected {what} payload ({type(payload).__name__}), treating as empty"
        )
        return []
    return [item for item in payload if isinstance(item, dict)]


class MarketDataProvider(ABC):
    """Abstract market-data source."""

    @abstractmethod
    def get_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """
        Fetch current quotes.

        Args:
            symbols: Ticker symbols

        Returns:
            Mapping of symbol to Quote. Unknown symbols are absent.

        Raises:
            ProviderError: If the request fails
        """
        pass

    @abstractmethod
    def get_gainers(self) -> list[MarketMover]:
        """Fetch today's top gainers."""
        pass

    @abstractmethod
    def get_losers(self) -> list[MarketMover]:
        """Fetch today's top losers."""
        pass

    @abstractmethod
    def get_actives(self) -> list[MarketMover]:
        """Fetch today's most active symbols."""
        pass

    @abstractmethod
    def get_news(self, limit: int = 50) -> list[NewsArticle]:
        """Fetch recent market news, newest first."""
        pass

    def get_quote(self, symbol: str) -> Quote:
        """
        Fetch a single quote.

        Raises:
            ProviderError: If the request fails or the symbol has no price
        """
        quotes = self.get_quotes([symbol])
        found = quotes.get(symbol)
        if found is None:
            raise ProviderError(f"No quote available for {symbol}")
        return found

    def get_index_quotes(
        self, symbols: tuple[str, ...] = DEFAULT_INDEX_SYMBOLS
    ) -> list[IndexQuote]:
        """Fetch index quotes in the requested order."""
        quotes = self.get_quotes(list(symbols))
        return [
            IndexQuote(
                symbol=symbol,
                label=index_label(symbol),
                price=quotes[symbol].price,
                change_pct=quotes[symbol].change_pct,
            )
            for symbol in symbols
            if symbol in quotes
        ]


class FMPClient(MarketDataProvider):
    """Financial Modeling Prep REST client."""

    BASE_URL = "https://financialmodelingprep.com/api/v3"

    def __init__(self, api_key: str, timeout: float = 10.0):
        """
        Initialize FMP client.

        Args:
            api_key: FMP API key
            timeout: Per-request timeout in seconds
        """
        if not api_key:
            raise ConfigValidationError("FMP api_key is not configured")
        self.api_key = api_key
        self.timeout = timeout

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET an endpoint and decode its JSON body."""
        url = f"{self.BASE_URL}/{path}"
        query = dict(params or {})
        query["apikey"] = self.api_key
        try:
            response = requests.get(url, params=query, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            # Keep the URL (and its api key) out of the message
            status = e.response.status_code if e.response is not None else "?"
            raise ProviderError(f"FMP {path} failed: HTTP {status}") from e
        except requests.RequestException as e:
            raise ProviderError(f"FMP {path} failed: {type(e).__name__}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"FMP {path} returned invalid JSON") from e

    def get_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """Fetch current quotes for the given symbols."""
        if not symbols:
            return {}
        path = "quote/" + quote(",".join(symbols), safe=",.")
        quotes = {}
        for item in as_list(self._get(path), "quote"):
            symbol = item.get("symbol")
            price = to_float(item.get("price"))
            if not symbol or price is None:
                continue
            quotes[symbol] = Quote(
                symbol=symbol,
                price=price,
                change=to_float(item.get("change")) or 0.0,
                change_pct=to_float(item.get("changesPercentage")) or 0.0,
                name=item.get("name") or "",
            )
        return quotes

    def get_gainers(self) -> list[MarketMover]:
        """Fetch today's top gainers."""
        return self._get_movers("stock_market/gainers")

    def get_losers(self) -> list[MarketMover]:
        """Fetch today's top losers."""
        return self._get_movers("stock_market/losers")

    def get_actives(self) -> list[MarketMover]:
        """Fetch today's most active symbols."""
        return self._get_movers("stock_market/actives")

    def _get_movers(self, path: str) -> list[MarketMover]:
        """Fetch and parse a mover list."""
        movers = []
        for item in as_list(self._get(path), path):
            symbol = item.get("symbol")
            price = to_float(item.get("price"))
            change_pct = to_float(item.get("changesPercentage"))
            if not symbol or price is None or change_pct is None:
                continue
            movers.append(
                MarketMover(
                    symbol=symbol,
                    price=price,
                    change=to_float(item.get("change")) or 0.0,
                    change_pct=change_pct,
                    name=item.get("name") or "",
                )
            )
        return movers

    def get_news(self, limit: int = 50) -> list[NewsArticle]:
        """Fetch recent stock news."""
        articles = []
        for item in as_list(self._get("stock_news", {"limit": limit}), "news"):
            url = item.get("url")
            if not url:
                continue
            articles.append(
                NewsArticle(
                    title=item.get("title") or "",
                    text=item.get("text") or "",
                    url=url,
                    site=item.get("site") or "",
                    symbol=item.get("symbol") or None,
                    published_at=parse_timestamp(item.get("publishedDate")),
                    image=item.get("image") or None,
                )
            )
        return articles


def create_provider(config: DataSourceConfig) -> MarketDataProvider:
    """
    Create a market-data provider from configuration.

    Raises:
        ConfigValidationError: If the provider is unknown or misconfigured
    """
    if config.provider == "fmp":
        return FMPClient(api_key=config.api_key, timeout=config.timeout_seconds)

    elif config.provider == "yahoo_finance":
        from .yahoo import YahooFinanceProvider

        return YahooFinanceProvider(news_symbols=config.news_symbols)

    else:
        raise ConfigValidationError(f"Unknown data provider: {config.provider}")
