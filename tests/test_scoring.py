"""
Importance scoring tests.
Tests for price alert triggers, mover selection and news ranking.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from marketpush.data.fetcher import MarketMover, NewsArticle
from marketpush.rules.scoring import (
    is_recent,
    qualifies_as_mover,
    rank_news,
    score_article,
    select_movers,
    should_trigger,
)


def mover(symbol, change_pct, price=50.0):
    return MarketMover(symbol=symbol, price=price, change=0.0, change_pct=change_pct)


def article(title, text="", symbol=None, published_at=None, url=None):
    return NewsArticle(
        title=title,
        text=text,
        url=url or f"https://news.example.com/{abs(hash(title))}",
        symbol=symbol,
        published_at=published_at,
    )


class TestShouldTrigger:
    """Test price alert trigger policy."""

    def test_above_crossed(self):
        """Price above target fires an "above" alert."""
        assert should_trigger("above", Decimal("150.00"), 151.20) is True

    def test_above_exact_match(self):
        """Touching the target fires."""
        assert should_trigger("above", Decimal("150.00"), 150.0) is True

    def test_above_not_reached(self):
        assert should_trigger("above", Decimal("150.00"), 149.99) is False

    def test_below_crossed(self):
        assert should_trigger("below", Decimal("100"), 99.5) is True

    def test_below_not_reached(self):
        assert should_trigger("below", Decimal("100"), 100.01) is False

    def test_no_float_drift(self):
        """0.1 + 0.2 style float noise must not fire an alert at 0.3."""
        assert should_trigger("above", Decimal("0.3"), 0.3) is True
        assert should_trigger("below", Decimal("0.3"), 0.3) is True

    def test_unknown_direction(self):
        """Unknown directions are rejected."""
        with pytest.raises(ValueError):
            should_trigger("sideways", Decimal("1"), 1.0)


class TestMoverSelection:
    """Test market mover qualification and ranking."""

    def test_threshold_boundary(self):
        """A move of exactly the threshold qualifies; just below does not."""
        assert qualifies_as_mover(mover("A", 5.0)) is True
        assert qualifies_as_mover(mover("B", 4.99)) is False

    def test_negative_moves_use_absolute_value(self):
        assert qualifies_as_mover(mover("A", -5.0)) is True
        assert qualifies_as_mover(mover("B", -4.99)) is False

    def test_price_floor_boundary(self):
        """$1.00 qualifies; $0.99 is a penny stock."""
        assert qualifies_as_mover(mover("A", 20.0, price=1.00)) is True
        assert qualifies_as_mover(mover("B", 20.0, price=0.99)) is False

    def test_select_sorts_by_absolute_change(self):
        """Largest absolute move first, losers included."""
        selected = select_movers(
            [mover("TSLA", 12.5), mover("NVDA", -15.2), mover("AMD", 6.0)]
        )
        assert [m.symbol for m in selected] == ["NVDA", "TSLA", "AMD"]

    def test_select_limits_and_filters(self):
        """Non-qualifying movers are dropped and the result is capped."""
        candidates = [mover(f"S{i}", 10.0 + i) for i in range(8)]
        candidates.append(mover("SMALL", 3.0))
        candidates.append(mover("PENNY", 50.0, price=0.5))

        selected = select_movers(candidates, limit=5)

        assert len(selected) == 5
        assert "SMALL" not in [m.symbol for m in selected]
        assert "PENNY" not in [m.symbol for m in selected]

    def test_select_dedupes_symbols(self):
        """A symbol listed twice counts once."""
        selected = select_movers([mover("TSLA", 12.5), mover("TSLA", 12.5)])
        assert len(selected) == 1

    def test_select_empty(self):
        assert select_movers([mover("A", 1.0)]) == []


class TestNewsScoring:
    """Test news importance scoring."""

    def test_macro_keywords(self):
        """Federal Reserve plus rate hike scores at least 6."""
        a = article("Federal Reserve signals another rate hike")
        assert score_article(a) >= 6

    def test_case_insensitive(self):
        assert score_article(article("FOMC MINUTES RELEASED")) == 3

    def test_medium_keyword(self):
        assert score_article(article("Company announces stock split")) == 1

    def test_mega_cap_bonus(self):
        """Articles about mega-cap tickers get +2."""
        plain = article("Company announces stock split", symbol="XYZ")
        mega = article("Company announces stock split", symbol="AAPL")
        assert score_article(mega) == score_article(plain) + 2

    def test_trailing_space_keywords(self):
        """"fed " must not match inside "federated"."""
        assert score_article(article("Federated Hermes opens office")) == 0

    def test_body_text_counts(self):
        a = article("Markets today", text="Traders brace for recession fears")
        assert score_article(a) == 3

    def test_unrelated_scores_zero(self):
        assert score_article(article("Local bakery wins award")) == 0


class TestNewsRanking:
    """Test recency filtering and ranking."""

    def test_is_recent(self, now):
        assert is_recent(article("x", published_at=now), now, timedelta(hours=1))
        old = article("x", published_at=now - timedelta(hours=2))
        assert not is_recent(old, now, timedelta(hours=1))

    def test_missing_publish_time_not_recent(self, now):
        assert not is_recent(article("x"), now, timedelta(days=1))

    def test_rank_orders_by_score(self, now):
        """Highest score first, capped at the limit."""
        articles = [
            article("Company announces stock split", published_at=now),
            article("Federal Reserve rate hike shocks markets", published_at=now),
            article("Recession worries grow", published_at=now),
        ]

        ranked = rank_news(articles, now, timedelta(hours=24), limit=2)

        assert len(ranked) == 2
        assert ranked[0].article.title == "Federal Reserve rate hike shocks markets"
        assert ranked[0].score >= ranked[1].score

    def test_rank_drops_zero_score(self, now):
        """Articles scoring 0 are never included."""
        ranked = rank_news(
            [article("Local bakery wins award", published_at=now)],
            now,
            timedelta(hours=24),
        )
        assert ranked == []

    def test_rank_drops_stale(self, now):
        stale = article("Recession worries grow", published_at=now - timedelta(days=2))
        assert rank_news([stale], now, timedelta(hours=24)) == []

    def test_rank_without_limit(self, now):
        articles = [
            article(f"Recession update {i}", published_at=now) for i in range(5)
        ]
        assert len(rank_news(articles, now, timedelta(hours=24), limit=None)) == 5
