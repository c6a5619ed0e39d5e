"""
Daily market recap job.
"""

import logging
from typing import Optional

from marketpush.config import DailyRecapJobConfig
from marketpush.data.fetcher import MarketDataProvider, MarketMover
from marketpush.database.models import DAILY_RECAP
from marketpush.database.repository import SentNotificationRepository, utcnow
from marketpush.errors import DeliveryError, DuplicateKeyError, ProviderError
from marketpush.notifiers.base import Dispatcher
from marketpush.notifiers.compose import compose_recap, format_change
from marketpush.rules.dedup import recap_key
from .base import Clock, Job, JobResult

logger = logging.getLogger(__name__)


class DailyRecapJob(Job):
    """One end-of-day summary per calendar date."""

    name = "daily-recap"

    def __init__(
        self,
        ledger: SentNotificationRepository,
        provider: MarketDataProvider,
        dispatcher: Dispatcher,
        config: Optional[DailyRecapJobConfig] = None,
        clock: Clock = utcnow,
        dry_run: bool = False,
    ):
        self.ledger = ledger
        self.provider = provider
        self.dispatcher = dispatcher
        self.config = config or DailyRecapJobConfig()
        self.clock = clock
        self.dry_run = dry_run

    def run(self) -> JobResult:
        now = self.clock()
        today = recap_key(now)

        if self.ledger.has_sent(DAILY_RECAP, today):
            return JobResult(
                job=self.name,
                message="already sent",
                data={"sent": False, "date": today},
            )

        try:
            indices = self.provider.get_index_quotes(tuple(self.config.index_symbols))
            gainers = self.provider.get_gainers()
            losers = self.provider.get_losers()
        except ProviderError as e:
            logger.error(f"Daily recap fetch failed: {e}")
            return JobResult.failure(self.name, "Failed to fetch market data", str(e))

        if not indices:
            return JobResult.failure(self.name, "Failed to fetch index data")

        top_gainer = self._first_tradeable(gainers)
        top_loser = self._first_tradeable(losers)

        title, body = compose_recap(indices, top_gainer, top_loser)

        try:
            result = self.dispatcher.send(title, body, data={"type": DAILY_RECAP})
        except DeliveryError as e:
            logger.error(f"Daily recap push failed: {e}")
            return JobResult.failure(self.name, "Daily recap push failed", str(e))

        duplicate = False
        if self.dry_run:
            logger.info(f"[dry-run] Not recording recap for {today}")
        else:
            try:
                self.ledger.record(
                    DAILY_RECAP,
                    today,
                    title=f"{title}: {body}",
                    recipient_count=result.recipient_count,
                    delivery_id=result.id,
                    sent_at=now,
                )
            except DuplicateKeyError:
                logger.warning(f"Recap for {today} was recorded by a concurrent run")
                duplicate = True

        return JobResult(
            job=self.name,
            data={
                "sent": True,
                "duplicate": duplicate,
                "dry_run": self.dry_run,
                "date": today,
                "title": title,
                "body": body,
                "indices": [
                    {
                        "name": i.label,
                        "change": format_change(i.change_pct, 2),
                        "price": i.price,
                    }
                    for i in indices
                ],
                "top_gainer": self._summary(top_gainer),
                "top_loser": self._summary(top_loser),
                "recipients": result.recipient_count,
                "delivery_id": result.id,
            },
        )

    def _first_tradeable(self, movers: list[MarketMover]) -> Optional[MarketMover]:
        """First mover that is not a penny stock."""
        return next((m for m in movers if m.price >= self.config.min_price), None)

    @staticmethod
    def _summary(mover: Optional[MarketMover]) -> Optional[dict]:
        if mover is None:
            return None
        return {"symbol": mover.symbol, "change": format_change(mover.change_pct, 2)}
