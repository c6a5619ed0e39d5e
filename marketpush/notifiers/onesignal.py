"""
OneSignal push dispatcher.
"""

import logging
import time
from typing import Any, Optional

import requests

from marketpush.errors import DeliveryError
from .base import ALL_SUBSCRIBERS, DeliveryResult, Dispatcher, Recipients

logger = logging.getLogger(__name__)


class OneSignalDispatcher(Dispatcher):
    """Sends push notifications through the OneSignal REST API."""

    API_URL = "https://api.onesignal.com/notifications"
    ALL_SEGMENT = "Total Subscriptions"
    MAX_RETRY_AFTER = 5.0

    def __init__(self, app_id: str, api_key: str, timeout: float = 10.0):
        """
        Initialize OneSignal dispatcher.

        Args:
            app_id: OneSignal app ID
            api_key: OneSignal REST API key
            timeout: Request timeout in seconds
        """
        self.app_id = app_id
        self.api_key = api_key
        self.timeout = timeout

    def send(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        recipients: Recipients = ALL_SUBSCRIBERS,
        image: Optional[str] = None,
    ) -> DeliveryResult:
        """Send a notification to all subscribers or to specific users."""
        if not self.app_id or not self.api_key:
            raise DeliveryError(
                "OneSignal credentials not configured (push.app_id, push.api_key)"
            )

        payload = self._create_payload(title, body, data, recipients, image)
        try:
            response = self._post(payload)
        except requests.RequestException as e:
            raise DeliveryError(f"OneSignal request failed: {e}") from e

        try:
            result = response.json()
        except ValueError:
            result = {}

        if not response.ok:
            raise DeliveryError(f"OneSignal HTTP {response.status_code}: {result}")

        delivery_id = result.get("id") if isinstance(result, dict) else None
        if not delivery_id:
            errors = result.get("errors") if isinstance(result, dict) else result
            raise DeliveryError(f"OneSignal rejected notification: {errors}")

        recipient_count = result.get("recipients") or 0
        logger.info(
            f"OneSignal notification sent: id={delivery_id}, "
            f"recipients={recipient_count}"
        )
        return DeliveryResult(id=delivery_id, recipient_count=recipient_count)

    def _post(self, payload: dict[str, Any]) -> requests.Response:
        """POST with a single retry on rate limiting."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Key {self.api_key}",
        }
        response = requests.post(
            self.API_URL, json=payload, headers=headers, timeout=self.timeout
        )

        # Handle rate limiting
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "1")
            try:
                delay = min(float(retry_after), self.MAX_RETRY_AFTER)
            except ValueError:
                delay = 1.0
            time.sleep(delay)
            response = requests.post(
                self.API_URL, json=payload, headers=headers, timeout=self.timeout
            )

        return response

    def _create_payload(
        self,
        title: str,
        body: str,
        data: Optional[dict[str, Any]],
        recipients: Recipients,
        image: Optional[str],
    ) -> dict[str, Any]:
        """Create OneSignal request body."""
        payload: dict[str, Any] = {
            "app_id": self.app_id,
            "target_channel": "push",
            "headings": {"en": title},
            "contents": {"en": body},
            "data": data or {},
            "priority": 10,
        }

        if recipients == ALL_SUBSCRIBERS:
            payload["included_segments"] = [self.ALL_SEGMENT]
        else:
            payload["include_aliases"] = {
                "external_id": [str(user_id) for user_id in recipients]
            }

        if image:
            payload["big_picture"] = image
            payload["ios_attachments"] = {"image": image}

        return payload
