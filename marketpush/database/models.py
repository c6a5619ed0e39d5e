"""
Data models for the notification engine.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

# Ledger notification types
MARKET_MOVER = "market_mover"
MARKET_NEWS = "market_news"
DAILY_RECAP = "daily_recap"

LEDGER_TYPES = (MARKET_MOVER, MARKET_NEWS, DAILY_RECAP)

# In-app notification type written by the price-alert job
PRICE_ALERT = "price_alert"

DIRECTIONS = ("above", "below")


@dataclass
class PriceAlert:
    """User's standing instruction to be notified when a price is crossed."""

    user_id: int
    symbol: str
    target_price: Decimal
    direction: str  # "above", "below"
    is_active: bool = True
    is_triggered: bool = False
    triggered_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class Notification:
    """In-app notification row."""

    user_id: int
    type: str
    message: str
    is_read: bool = False
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class SentNotification:
    """Ledger record of a dispatched notification, used for deduplication."""

    type: str
    external_id: str
    title: str
    sent_at: datetime
    recipient_count: Optional[int] = None
    delivery_id: Optional[str] = None
    id: Optional[int] = None
