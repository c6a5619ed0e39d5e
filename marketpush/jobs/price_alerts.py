"""
Price-alert check job.

Alerts are marked triggered (together with their in-app notification) before
the push goes out. A failed push is logged and reported, but the alert stays
triggered: a lost push is preferred over a repeated one.

In dry-run mode alerts are evaluated and pushed to the dry-run dispatcher but
left pending.
"""

import logging
import sqlite3
import time
from typing import Callable, Optional

from marketpush.config import PriceAlertJobConfig
from marketpush.data.fetcher import MarketDataProvider
from marketpush.database.models import PRICE_ALERT, PriceAlert
from marketpush.database.repository import PriceAlertRepository, utcnow
from marketpush.errors import DeliveryError, ProviderError
from marketpush.notifiers.base import Dispatcher
from marketpush.notifiers.compose import compose_price_alert
from marketpush.rules.scoring import should_trigger
from .base import Clock, Job, JobResult

logger = logging.getLogger(__name__)


class PriceAlertCheckJob(Job):
    """Evaluates every pending price alert against a fresh quote."""

    name = "price-alerts"

    def __init__(
        self,
        alerts: PriceAlertRepository,
        provider: MarketDataProvider,
        dispatcher: Dispatcher,
        config: Optional[PriceAlertJobConfig] = None,
        clock: Clock = utcnow,
        sleep: Callable[[float], None] = time.sleep,
        dry_run: bool = False,
    ):
        self.alerts = alerts
        self.provider = provider
        self.dispatcher = dispatcher
        self.config = config or PriceAlertJobConfig()
        self.clock = clock
        self.sleep = sleep
        self.dry_run = dry_run

    def run(self) -> JobResult:
        """Check all active, untriggered alerts."""
        pending = self.alerts.list_pending()
        if not pending:
            return JobResult(
                job=self.name,
                message="No active alerts to check",
                data={"checked": 0, "triggered": 0, "triggered_ids": []},
            )

        # Group alerts by symbol so each symbol is quoted once
        by_symbol: dict[str, list[PriceAlert]] = {}
        for alert in pending:
            by_symbol.setdefault(alert.symbol, []).append(alert)

        triggered_ids: list[int] = []
        errors: list[str] = []

        for index, (symbol, alerts) in enumerate(by_symbol.items()):
            if index and self.config.symbol_delay_seconds:
                self.sleep(self.config.symbol_delay_seconds)

            try:
                quote = self.provider.get_quote(symbol)
            except ProviderError as e:
                logger.warning(f"Failed to get price for {symbol}: {e}")
                errors.append(f"Failed to get price for {symbol}")
                continue

            for alert in alerts:
                if self._check_alert(alert, quote.price, errors):
                    triggered_ids.append(alert.id)

        return JobResult(
            job=self.name,
            message=f"Checked {len(pending)} alerts, triggered {len(triggered_ids)}",
            data={
                "checked": len(pending),
                "triggered": len(triggered_ids),
                "triggered_ids": triggered_ids,
                "dry_run": self.dry_run,
            },
            errors=errors,
        )

    def _check_alert(
        self, alert: PriceAlert, current_price: float, errors: list[str]
    ) -> bool:
        """Evaluate one alert; returns True if this run triggered it."""
        try:
            fire = should_trigger(alert.direction, alert.target_price, current_price)
        except ValueError as e:
            logger.error(f"Skipping alert {alert.id}: {e}")
            errors.append(f"Invalid alert {alert.id}")
            return False

        if not fire:
            return False

        title, body, message = compose_price_alert(alert, current_price)

        if self.dry_run:
            logger.info(f"[dry-run] Alert {alert.id} would trigger, leaving it pending")
        else:
            try:
                notification = self.alerts.trigger(alert, message, self.clock())
            except sqlite3.Error as e:
                logger.error(f"Error triggering alert {alert.id}: {e}")
                errors.append(f"Failed to trigger alert {alert.id}")
                return False

            if notification is None:
                logger.info(f"Alert {alert.id} already triggered by another run")
                return False

            logger.info(
                f"Triggered alert {alert.id} for {alert.symbol} at ${current_price}"
            )

        try:
            self.dispatcher.send(
                title,
                body,
                data={
                    "type": PRICE_ALERT,
                    "symbol": alert.symbol,
                    "targetPrice": str(alert.target_price),
                    "currentPrice": current_price,
                    "direction": alert.direction,
                },
                recipients=[alert.user_id],
            )
        except DeliveryError as e:
            logger.error(f"Push failed for alert {alert.id}: {e}")
            errors.append(f"Push failed for alert {alert.id}")

        return True
