"""
Notification text formatting.
"""

from decimal import Decimal
from typing import Optional, Union

from marketpush.data.fetcher import IndexQuote, MarketMover, NewsArticle
from marketpush.database.models import PriceAlert

NEWS_TITLE_MAX = 65
NEWS_BODY_MAX = 120

SP500 = "^GSPC"


def format_change(pct: float, decimals: int = 1) -> str:
    """Signed percent: +12.3% / -4.0%."""
    sign = "+" if pct >= 0 else ""
    return f"{sign}{pct:.{decimals}f}%"


def format_price(value: Union[float, Decimal]) -> str:
    """Dollar amount with two decimals."""
    return f"${Decimal(str(value)):.2f}"


def truncate(text: str, max_len: int) -> str:
    """Cut text to max_len characters, ending with "..." when shortened."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def compose_movers(movers: list[MarketMover], shown: int = 4) -> tuple[str, str]:
    """
    Build the market-mover notification.

    One mover gets its own headline; a batch gets a generic one. The body
    lists the first `shown` movers and elides the rest as a count.
    """
    if len(movers) == 1:
        title = f"{movers[0].symbol} {format_change(movers[0].change_pct)}"
    else:
        title = "Big Market Movers"

    listed = movers[:shown]
    summary = ", ".join(f"{m.symbol} {format_change(m.change_pct)}" for m in listed)
    remaining = len(movers) - len(listed)
    body = f"{summary} and {remaining} more" if remaining > 0 else summary
    return title, body


def compose_news(article: NewsArticle) -> tuple[str, str]:
    """Headline and snippet, cut to push-safe lengths."""
    return (
        truncate(article.title, NEWS_TITLE_MAX),
        truncate(article.text, NEWS_BODY_MAX),
    )


def compose_recap(
    indices: list[IndexQuote],
    top_gainer: Optional[MarketMover] = None,
    top_loser: Optional[MarketMover] = None,
) -> tuple[str, str]:
    """Daily recap driven by the S&P 500 direction."""
    sp500 = next((i for i in indices if i.symbol == SP500), None)

    if sp500 is None:
        emoji = "📊"
        headline = "Daily Summary"
    else:
        emoji = "📈" if sp500.change_pct >= 0 else "📉"
        headline = f"S&P 500 {format_change(sp500.change_pct, 2)}"
    title = f"{emoji} Market Recap: {headline}"

    parts = [
        ", ".join(f"{i.label} {format_change(i.change_pct, 2)}" for i in indices)
    ]
    if top_gainer:
        parts.append(
            f"Top gainer: {top_gainer.symbol} {format_change(top_gainer.change_pct, 2)}"
        )
    if top_loser:
        parts.append(
            f"Top loser: {top_loser.symbol} {format_change(top_loser.change_pct, 2)}"
        )
    return title, ". ".join(parts)


def compose_price_alert(
    alert: PriceAlert, current_price: Union[float, Decimal]
) -> tuple[str, str, str]:
    """
    Texts for a triggered price alert.

    Returns:
        (push title, push body, in-app message)
    """
    price = format_price(current_price)
    title = f"{alert.symbol} Price Alert"
    body = f"{alert.symbol} is now {alert.direction} {price}"
    message = (
        f"{alert.symbol} is now {alert.direction} "
        f"{format_price(alert.target_price)} (Current: {price})"
    )
    return title, body, message
