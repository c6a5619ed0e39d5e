"""
Repository classes for CRUD operations.
"""

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from marketpush.errors import DuplicateKeyError
from .connection import Database
from .models import PRICE_ALERT, Notification, PriceAlert, SentNotification

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _to_db(value: datetime) -> str:
    """Serialize a datetime as a UTC ISO string so text comparison orders correctly."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class PriceAlertRepository:
    """CRUD operations for price alerts."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, alert: PriceAlert) -> PriceAlert:
        """Create a new price alert."""
        alert.symbol = alert.symbol.upper()
        alert.created_at = alert.created_at or utcnow()
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO price_alerts
            (user_id, symbol, target_price, direction, is_active, is_triggered,
             triggered_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                alert.user_id,
                alert.symbol,
                str(alert.target_price),
                alert.direction,
                1 if alert.is_active else 0,
                1 if alert.is_triggered else 0,
                _to_db(alert.triggered_at) if alert.triggered_at else None,
                _to_db(alert.created_at),
            ),
        )
        self.db.connection.commit()
        alert.id = cursor.lastrowid
        return alert

    def get_by_id(self, alert_id: int) -> Optional[PriceAlert]:
        """Get price alert by ID."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM price_alerts WHERE id = ?", (alert_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_alert(row)

    def find_pending_duplicate(
        self,
        user_id: int,
        symbol: str,
        target_price: Decimal,
        direction: str,
    ) -> Optional[PriceAlert]:
        """Find an active, untriggered alert with the same parameters."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM price_alerts
            WHERE user_id = ? AND symbol = ? AND direction = ?
              AND is_active = 1 AND is_triggered = 0
            """,
            (user_id, symbol.upper(), direction),
        )
        for row in cursor.fetchall():
            alert = self._row_to_alert(row)
            if alert.target_price == Decimal(target_price):
                return alert
        return None

    def list_for_user(
        self, user_id: int, active_only: bool = False
    ) -> list[PriceAlert]:
        """List a user's alerts, newest first."""
        cursor = self.db.connection.cursor()
        query = "SELECT * FROM price_alerts WHERE user_id = ?"
        if active_only:
            query += " AND is_active = 1 AND is_triggered = 0"
        query += " ORDER BY created_at DESC, id DESC"
        cursor.execute(query, (user_id,))
        return [self._row_to_alert(row) for row in cursor.fetchall()]

    def list_pending(self) -> list[PriceAlert]:
        """List alerts eligible for evaluation (active and not yet triggered)."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM price_alerts
            WHERE is_active = 1 AND is_triggered = 0
            ORDER BY symbol, id
            """
        )
        return [self._row_to_alert(row) for row in cursor.fetchall()]

    def trigger(
        self,
        alert: PriceAlert,
        message: str,
        triggered_at: Optional[datetime] = None,
    ) -> Optional[Notification]:
        """
        Mark an alert triggered and write its in-app notification.

        Both writes happen in one transaction. The update only matches rows
        that are still untriggered, so when two runs race on the same alert
        exactly one of them gets a notification back.

        Args:
            alert: Alert being triggered
            message: In-app notification text
            triggered_at: Trigger time (defaults to now)

        Returns:
            The created Notification, or None if the alert was already triggered
        """
        triggered_at = triggered_at or utcnow()
        conn = self.db.connection
        cursor = conn.cursor()
        try:
            cursor.execute(
                """
                UPDATE price_alerts
                SET is_triggered = 1, triggered_at = ?
                WHERE id = ? AND is_triggered = 0
                """,
                (_to_db(triggered_at), alert.id),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                return None

            cursor.execute(
                """
                INSERT INTO notifications (user_id, type, message, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (alert.user_id, PRICE_ALERT, message, _to_db(triggered_at)),
            )
            notification_id = cursor.lastrowid
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

        alert.is_triggered = True
        alert.triggered_at = triggered_at
        return Notification(
            id=notification_id,
            user_id=alert.user_id,
            type=PRICE_ALERT,
            message=message,
            created_at=triggered_at,
        )

    def set_active(self, alert_id: int, is_active: bool) -> None:
        """Toggle an alert. Reactivating clears the triggered state."""
        cursor = self.db.connection.cursor()
        if is_active:
            cursor.execute(
                """
                UPDATE price_alerts
                SET is_active = 1, is_triggered = 0, triggered_at = NULL
                WHERE id = ?
                """,
                (alert_id,),
            )
        else:
            cursor.execute(
                "UPDATE price_alerts SET is_active = 0 WHERE id = ?",
                (alert_id,),
            )
        self.db.connection.commit()

    def delete(self, alert_id: int) -> None:
        """Delete a price alert."""
        cursor = self.db.connection.cursor()
        cursor.execute("DELETE FROM price_alerts WHERE id = ?", (alert_id,))
        self.db.connection.commit()

    def _row_to_alert(self, row) -> PriceAlert:
        """Convert database row to PriceAlert."""
        return PriceAlert(
            id=row["id"],
            user_id=row["user_id"],
            symbol=row["symbol"],
            target_price=Decimal(row["target_price"]),
            direction=row["direction"],
            is_active=bool(row["is_active"]),
            is_triggered=bool(row["is_triggered"]),
            triggered_at=_from_db(row["triggered_at"]),
            created_at=_from_db(row["created_at"]),
        )


class NotificationRepository:
    """Read access to in-app notifications."""

    def __init__(self, db: Database):
        self.db = db

    def list_for_user(self, user_id: int, limit: int = 50) -> list[Notification]:
        """Get a user's in-app notifications, newest first."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM notifications
            WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            (user_id, limit),
        )
        return [
            Notification(
                id=row["id"],
                user_id=row["user_id"],
                type=row["type"],
                message=row["message"],
                is_read=bool(row["is_read"]),
                created_at=_from_db(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]


class SentNotificationRepository:
    """Dedup ledger: one row per logical event already dispatched."""

    def __init__(self, db: Database):
        self.db = db

    def has_sent(self, notification_type: str, external_id: str) -> bool:
        """Check whether this exact event was already dispatched."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT 1 FROM sent_notifications
            WHERE type = ? AND external_id = ?
            LIMIT 1
            """,
            (notification_type, external_id),
        )
        return cursor.fetchone() is not None

    def has_sent_recently(
        self,
        notification_type: str,
        within: timedelta,
        now: Optional[datetime] = None,
    ) -> bool:
        """Check if any notification of this type was sent inside the window."""
        cutoff = (now or utcnow()) - within
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT 1 FROM sent_notifications
            WHERE type = ? AND sent_at > ?
            LIMIT 1
            """,
            (notification_type, _to_db(cutoff)),
        )
        return cursor.fetchone() is not None

    def record(
        self,
        notification_type: str,
        external_id: str,
        title: str,
        recipient_count: Optional[int] = None,
        delivery_id: Optional[str] = None,
        sent_at: Optional[datetime] = None,
    ) -> SentNotification:
        """
        Record a dispatched notification.

        Raises:
            DuplicateKeyError: If (type, external_id) is already recorded
        """
        sent = SentNotification(
            type=notification_type,
            external_id=external_id,
            title=title,
            recipient_count=recipient_count,
            delivery_id=delivery_id,
            sent_at=sent_at or utcnow(),
        )
        cursor = self.db.connection.cursor()
        try:
            cursor.execute(
                """
                INSERT INTO sent_notifications
                (type, external_id, title, recipient_count, delivery_id, sent_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    sent.type,
                    sent.external_id,
                    sent.title,
                    sent.recipient_count,
                    sent.delivery_id,
                    _to_db(sent.sent_at),
                ),
            )
            self.db.connection.commit()
        except sqlite3.IntegrityError as e:
            self.db.connection.rollback()
            raise DuplicateKeyError(notification_type, external_id) from e

        sent.id = cursor.lastrowid
        return sent

    def purge_older_than(
        self, age: timedelta, now: Optional[datetime] = None
    ) -> int:
        """Delete ledger rows older than age. Returns the number removed."""
        cutoff = (now or utcnow()) - age
        cursor = self.db.connection.cursor()
        cursor.execute(
            "DELETE FROM sent_notifications WHERE sent_at < ?",
            (_to_db(cutoff),),
        )
        self.db.connection.commit()
        if cursor.rowcount:
            logger.info(f"Purged {cursor.rowcount} ledger rows older than {age}")
        return cursor.rowcount

    def list_recent(
        self, notification_type: Optional[str] = None, limit: int = 50
    ) -> list[SentNotification]:
        """List ledger rows, newest first."""
        cursor = self.db.connection.cursor()
        if notification_type:
            cursor.execute(
                """
                SELECT * FROM sent_notifications
                WHERE type = ?
                ORDER BY sent_at DESC
                LIMIT ?
                """,
                (notification_type, limit),
            )
        else:
            cursor.execute(
                "SELECT * FROM sent_notifications ORDER BY sent_at DESC LIMIT ?",
                (limit,),
            )
        return [self._row_to_sent(row) for row in cursor.fetchall()]

    def _row_to_sent(self, row) -> SentNotification:
        """Convert database row to SentNotification."""
        return SentNotification(
            id=row["id"],
            type=row["type"],
            external_id=row["external_id"],
            title=row["title"],
            recipient_count=row["recipient_count"],
            delivery_id=row["delivery_id"],
            sent_at=_from_db(row["sent_at"]),
        )
