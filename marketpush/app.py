"""
Application wiring: database, repositories, provider, dispatcher and jobs.
"""

import logging
import threading
from typing import Optional

from marketpush.config import AppConfig
from marketpush.data.fetcher import MarketDataProvider, create_provider
from marketpush.database.connection import Database
from marketpush.database.repository import (
    NotificationRepository,
    PriceAlertRepository,
    SentNotificationRepository,
    utcnow,
)
from marketpush.jobs.base import Clock, Job, JobResult
from marketpush.jobs.daily_recap import DailyRecapJob
from marketpush.jobs.market_movers import MarketMoverSweepJob
from marketpush.jobs.market_news import MarketNewsSweepJob
from marketpush.jobs.price_alerts import PriceAlertCheckJob
from marketpush.notifiers.base import Dispatcher, DispatcherFactory

logger = logging.getLogger(__name__)


class MarketPushApp:
    """Main MarketPush application."""

    def __init__(
        self,
        config: AppConfig,
        db: Optional[Database] = None,
        provider: Optional[MarketDataProvider] = None,
        dispatcher: Optional[Dispatcher] = None,
        dry_run: bool = False,
        clock: Clock = utcnow,
    ):
        """
        Initialize MarketPush app.

        Args:
            config: Loaded application configuration
            db: Database instance (opened from config.database.path if omitted)
            provider: Market data provider (built from config if omitted)
            dispatcher: Push dispatcher (built from config if omitted)
            dry_run: Log notifications instead of sending them and leave
                ledger rows and alert state untouched
            clock: Source of the current UTC time
        """
        self.config = config

        if db is None:
            db = Database(config.database.path)
            db.initialize()
        self.db = db
        # Jobs share one connection, so runs are serialized
        self.run_lock = threading.Lock()

        # Initialize repositories
        self.alert_repo = PriceAlertRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.ledger = SentNotificationRepository(db)

        # Initialize services
        self.provider = provider or create_provider(config.data_source)
        self.dispatcher = dispatcher or DispatcherFactory.create(
            config.push, dry_run=dry_run
        )

        jobs = config.jobs
        self.jobs: dict[str, Job] = {
            job.name: job
            for job in (
                PriceAlertCheckJob(
                    self.alert_repo,
                    self.provider,
                    self.dispatcher,
                    config=jobs.price_alerts,
                    clock=clock,
                    dry_run=dry_run,
                ),
                MarketMoverSweepJob(
                    self.ledger,
                    self.provider,
                    self.dispatcher,
                    config=jobs.market_movers,
                    clock=clock,
                    dry_run=dry_run,
                ),
                MarketNewsSweepJob(
                    self.ledger,
                    self.provider,
                    self.dispatcher,
                    config=jobs.market_news,
                    clock=clock,
                    dry_run=dry_run,
                ),
                DailyRecapJob(
                    self.ledger,
                    self.provider,
                    self.dispatcher,
                    config=jobs.daily_recap,
                    clock=clock,
                    dry_run=dry_run,
                ),
            )
        }

    @property
    def job_names(self) -> list[str]:
        return list(self.jobs)

    def run_job(self, name: str) -> JobResult:
        """
        Run one job pass.

        Unknown job names yield a 404 result. Unexpected errors are logged
        and reported as a 500 result rather than propagated.
        """
        job = self.jobs.get(name)
        if job is None:
            return JobResult.failure(name, f"Unknown job: {name}", status_code=404)

        logger.info(f"Running job {name}")
        with self.run_lock:
            try:
                result = job.run()
            except Exception as e:
                logger.exception(f"Job {name} failed")
                return JobResult.failure(name, f"{name} job failed", str(e))

        if result.errors:
            logger.warning(f"Job {name} finished with errors: {result.errors}")
        logger.info(f"Job {name} done: {result.message or result.data}")
        return result

    def close(self) -> None:
        self.db.close()
