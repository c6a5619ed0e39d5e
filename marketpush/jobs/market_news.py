"""
Market-news sweep job.
"""

import logging
from datetime import timedelta
from typing import Any, Optional

from marketpush.config import MarketNewsJobConfig
from marketpush.data.fetcher import MarketDataProvider
from marketpush.database.models import MARKET_NEWS
from marketpush.database.repository import SentNotificationRepository, utcnow
from marketpush.errors import DeliveryError, DuplicateKeyError, ProviderError
from marketpush.notifiers.base import Dispatcher
from marketpush.notifiers.compose import compose_news
from marketpush.rules.dedup import news_external_id
from marketpush.rules.scoring import rank_news
from .base import Clock, Job, JobResult

logger = logging.getLogger(__name__)


class MarketNewsSweepJob(Job):
    """Pushes the most important fresh headlines, at most a couple per run."""

    name = "market-news"

    def __init__(
        self,
        ledger: SentNotificationRepository,
        provider: MarketDataProvider,
        dispatcher: Dispatcher,
        config: Optional[MarketNewsJobConfig] = None,
        clock: Clock = utcnow,
        dry_run: bool = False,
    ):
        self.ledger = ledger
        self.provider = provider
        self.dispatcher = dispatcher
        self.config = config or MarketNewsJobConfig()
        self.clock = clock
        self.dry_run = dry_run

    def run(self) -> JobResult:
        now = self.clock()

        cooldown = timedelta(minutes=self.config.cooldown_minutes)
        if self.ledger.has_sent_recently(MARKET_NEWS, cooldown, now=now):
            return JobResult(
                job=self.name,
                message="Recently sent a news notification, skipping",
                data={"sent": 0},
            )

        try:
            articles = self.provider.get_news(limit=self.config.fetch_limit)
        except ProviderError as e:
            logger.error(f"Market news fetch failed: {e}")
            return JobResult.failure(self.name, "Market news fetch failed", str(e))

        ranked = rank_news(
            articles,
            now=now,
            recency_window=timedelta(minutes=self.config.recency_window_minutes),
            min_score=self.config.min_score,
            limit=None,
        )
        if not ranked:
            return JobResult(
                job=self.name,
                message="No important news found",
                data={"sent": 0, "articles_checked": len(articles)},
            )

        sent: list[dict[str, Any]] = []
        errors: list[str] = []

        for scored in ranked[: self.config.max_per_run]:
            article = scored.article
            external_id = news_external_id(article.url)

            if self.ledger.has_sent(MARKET_NEWS, external_id):
                continue

            title, body = compose_news(article)

            try:
                result = self.dispatcher.send(
                    title,
                    body,
                    data={
                        "type": MARKET_NEWS,
                        "url": article.url,
                        "symbol": article.symbol,
                        "source": article.site,
                    },
                    image=article.image,
                )
            except DeliveryError as e:
                logger.error(f"News push failed for {article.url}: {e}")
                errors.append(f"Failed to send: {title}")
                continue

            duplicate = False
            if not self.dry_run:
                try:
                    self.ledger.record(
                        MARKET_NEWS,
                        external_id,
                        title=title,
                        recipient_count=result.recipient_count,
                        delivery_id=result.id,
                        sent_at=now,
                    )
                except DuplicateKeyError:
                    logger.warning(f"News {external_id} was recorded by a concurrent run")
                    duplicate = True

            sent.append(
                {
                    "title": title,
                    "score": scored.score,
                    "recipients": result.recipient_count,
                    "delivery_id": result.id,
                    "duplicate": duplicate,
                }
            )

        return JobResult(
            job=self.name,
            data={
                "sent": len(sent),
                "dry_run": self.dry_run,
                "articles_checked": len(articles),
                "recent_articles": len(ranked),
                "notifications": sent,
            },
            errors=errors,
        )
