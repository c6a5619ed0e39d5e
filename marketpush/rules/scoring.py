"""
Importance scoring policies, one per signal family.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union

from marketpush.data.fetcher import MarketMover, NewsArticle
from .keywords import (
    HIGH_KEYWORDS,
    HIGH_WEIGHT,
    MEDIUM_KEYWORDS,
    MEDIUM_WEIGHT,
    MEGA_CAP_BONUS,
    MEGA_CAP_TICKERS,
)

__all__ = [
    "ScoredArticle",
    "should_trigger",
    "qualifies_as_mover",
    "select_movers",
    "score_article",
    "is_recent",
    "rank_news",
]


@dataclass
class ScoredArticle:
    """A news article with its importance score."""

    article: NewsArticle
    score: int


def should_trigger(
    direction: str,
    target_price: Decimal,
    current_price: Union[float, Decimal],
) -> bool:
    """
    Decide whether a price alert fires.

    Args:
        direction: "above" or "below"
        target_price: Alert target
        current_price: Latest quote

    Returns:
        True when the price is at or past the target in the alert's direction

    Raises:
        ValueError: If direction is unknown
    """
    price = Decimal(str(current_price))
    target = Decimal(target_price)

    if direction == "above":
        return price >= target
    elif direction == "below":
        return price <= target
    else:
        raise ValueError(f"Unknown alert direction: {direction}")


def qualifies_as_mover(
    mover: MarketMover, threshold: float = 5.0, min_price: float = 1.0
) -> bool:
    """Big enough move on a stock that is not a penny stock."""
    return abs(mover.change_pct) >= threshold and mover.price >= min_price


def select_movers(
    movers: Iterable[MarketMover],
    threshold: float = 5.0,
    min_price: float = 1.0,
    limit: int = 5,
) -> list[MarketMover]:
    """
    Filter and rank movers for one notification.

    Args:
        movers: Gainers and losers combined
        threshold: Minimum absolute percent change
        min_price: Minimum share price
        limit: Maximum number of movers kept

    Returns:
        Qualifying movers, largest absolute move first
    """
    seen = set()
    qualifying = []
    for mover in movers:
        if mover.symbol in seen:
            continue
        seen.add(mover.symbol)
        if qualifies_as_mover(mover, threshold, min_price):
            qualifying.append(mover)

    qualifying.sort(key=lambda m: abs(m.change_pct), reverse=True)
    return qualifying[:limit]


def score_article(article: NewsArticle) -> int:
    """Weighted keyword score of an article's title and body."""
    text = f"{article.title} {article.text}".lower()

    score = 0
    for keyword in HIGH_KEYWORDS:
        if keyword in text:
            score += HIGH_WEIGHT
    for keyword in MEDIUM_KEYWORDS:
        if keyword in text:
            score += MEDIUM_WEIGHT
    if article.symbol and article.symbol.upper() in MEGA_CAP_TICKERS:
        score += MEGA_CAP_BONUS

    return score


def is_recent(
    article: NewsArticle, now: datetime, window: timedelta
) -> bool:
    """Published within the window. Articles without a publish time are not."""
    if article.published_at is None:
        return False
    return now - article.published_at <= window


def rank_news(
    articles: Iterable[NewsArticle],
    now: datetime,
    recency_window: timedelta,
    min_score: int = 1,
    limit: Optional[int] = 2,
) -> list[ScoredArticle]:
    """
    Pick the news worth a notification.

    Args:
        articles: Candidate articles
        now: Reference time for the recency window
        recency_window: Maximum age since publication
        min_score: Score floor for inclusion
        limit: Maximum number returned (None for all)

    Returns:
        Scored articles, highest score first
    """
    scored = [
        ScoredArticle(article=article, score=score_article(article))
        for article in articles
        if is_recent(article, now, recency_window)
    ]
    scored = [s for s in scored if s.score >= min_score]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored if limit is None else scored[:limit]
