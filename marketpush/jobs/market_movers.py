"""
Market-mover sweep job.
"""

import logging
import sqlite3
from datetime import timedelta
from typing import Optional

from marketpush.config import MarketMoverJobConfig
from marketpush.data.fetcher import MarketDataProvider
from marketpush.database.models import MARKET_MOVER
from marketpush.database.repository import SentNotificationRepository, utcnow
from marketpush.errors import DeliveryError, DuplicateKeyError, ProviderError
from marketpush.notifiers.base import Dispatcher
from marketpush.notifiers.compose import compose_movers, format_change
from marketpush.rules.dedup import mover_batch_key
from marketpush.rules.scoring import select_movers
from .base import Clock, Job, JobResult

logger = logging.getLogger(__name__)


class MarketMoverSweepJob(Job):
    """Sends one notification per distinct set of big movers per day."""

    name = "market-movers"

    def __init__(
        self,
        ledger: SentNotificationRepository,
        provider: MarketDataProvider,
        dispatcher: Dispatcher,
        config: Optional[MarketMoverJobConfig] = None,
        clock: Clock = utcnow,
        dry_run: bool = False,
    ):
        self.ledger = ledger
        self.provider = provider
        self.dispatcher = dispatcher
        self.config = config or MarketMoverJobConfig()
        self.clock = clock
        self.dry_run = dry_run

    def run(self) -> JobResult:
        """Fetch, rank, dedup, send, record, purge."""
        now = self.clock()

        try:
            candidates = self.provider.get_gainers() + self.provider.get_losers()
        except ProviderError as e:
            logger.error(f"Market movers fetch failed: {e}")
            return JobResult.failure(self.name, "Market movers fetch failed", str(e))

        movers = select_movers(
            candidates,
            threshold=self.config.change_threshold,
            min_price=self.config.min_price,
            limit=self.config.max_movers,
        )
        if not movers:
            return JobResult(
                job=self.name, message="No big movers found", data={"sent": False}
            )

        batch_key = mover_batch_key([m.symbol for m in movers], now)

        if self.ledger.has_sent(MARKET_MOVER, batch_key):
            return JobResult(
                job=self.name,
                message="Already sent this batch today",
                data={"sent": False, "batch_key": batch_key},
            )

        cooldown = timedelta(minutes=self.config.cooldown_minutes)
        if self.ledger.has_sent_recently(MARKET_MOVER, cooldown, now=now):
            return JobResult(
                job=self.name,
                message="Recently sent a market mover notification, skipping",
                data={"sent": False, "batch_key": batch_key},
            )

        title, body = compose_movers(movers, shown=self.config.shown_movers)

        try:
            result = self.dispatcher.send(
                title,
                body,
                data={
                    "type": MARKET_MOVER,
                    "symbols": [m.symbol for m in movers],
                    "symbol": movers[0].symbol,
                },
            )
        except DeliveryError as e:
            logger.error(f"Market movers push failed: {e}")
            return JobResult.failure(self.name, "Market movers push failed", str(e))

        duplicate = False
        if self.dry_run:
            logger.info(f"[dry-run] Not recording batch {batch_key}")
        else:
            try:
                self.ledger.record(
                    MARKET_MOVER,
                    batch_key,
                    title=f"{title}: {body}",
                    recipient_count=result.recipient_count,
                    delivery_id=result.id,
                    sent_at=now,
                )
            except DuplicateKeyError:
                # The push already went out; report it as a duplicate delivery
                logger.warning(f"Batch {batch_key} was recorded by a concurrent run")
                duplicate = True

            try:
                self.ledger.purge_older_than(
                    timedelta(days=self.config.retention_days), now=now
                )
            except sqlite3.Error as e:
                logger.warning(f"Ledger cleanup failed: {e}")

        return JobResult(
            job=self.name,
            data={
                "sent": True,
                "duplicate": duplicate,
                "dry_run": self.dry_run,
                "title": title,
                "body": body,
                "movers": [
                    {
                        "symbol": m.symbol,
                        "change": format_change(m.change_pct),
                        "price": m.price,
                    }
                    for m in movers
                ],
                "recipients": result.recipient_count,
                "delivery_id": result.id,
                "batch_key": batch_key,
            },
        )
