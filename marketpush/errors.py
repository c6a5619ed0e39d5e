"""
Error taxonomy shared by fetchers, the ledger, dispatchers and job drivers.
"""


class MarketPushError(Exception):
    """Base class for engine errors."""

    pass


class ProviderError(MarketPushError):
    """Market-data fetch failed (transport, timeout, HTTP status, bad JSON)."""

    pass


class DuplicateKeyError(MarketPushError):
    """A ledger entry with the same (type, external_id) already exists."""

    def __init__(self, notification_type: str, external_id: str):
        super().__init__(
            f"Notification already recorded: {notification_type}/{external_id}"
        )
        self.notification_type = notification_type
        self.external_id = external_id


class DeliveryError(MarketPushError):
    """Push delivery failed."""

    pass


class AuthorizationError(MarketPushError):
    """Missing or incorrect trigger credential."""

    pass
