"""
Base dispatcher classes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

from marketpush.config import PushConfig

logger = logging.getLogger(__name__)

# Recipient selector meaning "every subscribed device"
ALL_SUBSCRIBERS = "all"

Recipients = Union[str, list[int]]


@dataclass
class DeliveryResult:
    """Outcome of a successful push request."""

    id: Optional[str]
    recipient_count: int = 0


class Dispatcher(ABC):
    """Abstract base class for push dispatchers."""

    @abstractmethod
    def send(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        recipients: Recipients = ALL_SUBSCRIBERS,
        image: Optional[str] = None,
    ) -> DeliveryResult:
        """
        Send a push notification.

        Args:
            title: Notification heading
            body: Notification text
            data: Opaque payload the client uses for deep-linking
            recipients: ALL_SUBSCRIBERS or a list of user IDs
            image: Optional image URL

        Returns:
            DeliveryResult with the provider's message id and recipient count

        Raises:
            DeliveryError: If the provider could not be reached or refused
        """
        pass


class DryRunDispatcher(Dispatcher):
    """Logs notifications instead of sending them."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []

    def send(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        recipients: Recipients = ALL_SUBSCRIBERS,
        image: Optional[str] = None,
    ) -> DeliveryResult:
        """Record the notification and pretend it went out."""
        self.sent.append(
            {
                "title": title,
                "body": body,
                "data": data or {},
                "recipients": recipients,
                "image": image,
            }
        )
        logger.info(f"[dry-run] {title}: {body} -> {recipients}")
        return DeliveryResult(id=None, recipient_count=0)


class DispatcherFactory:
    """Factory for creating dispatcher instances."""

    @staticmethod
    def create(config: PushConfig, dry_run: bool = False) -> Dispatcher:
        """
        Create a dispatcher from configuration.

        Args:
            config: Push delivery configuration
            dry_run: Log instead of sending

        Returns:
            Appropriate Dispatcher instance
        """
        if dry_run:
            return DryRunDispatcher()

        from .onesignal import OneSignalDispatcher

        return OneSignalDispatcher(
            app_id=config.app_id,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
        )
