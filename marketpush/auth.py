"""
Trigger authorization for scheduled job calls.
"""

import hmac
from typing import Optional

from marketpush.config import TriggerConfig
from marketpush.errors import AuthorizationError


def authorize_trigger(
    config: TriggerConfig,
    authorization: Optional[str] = None,
    scheduler_header: Optional[str] = None,
) -> None:
    """
    Check the credentials of a job trigger.

    A call is allowed when no secret is configured, when the scheduler's
    header is present, or when the bearer token matches the secret.

    Args:
        config: Trigger settings
        authorization: Value of the Authorization header
        scheduler_header: Value of the scheduler header, if sent

    Raises:
        AuthorizationError: If none of the above holds
    """
    if not config.cron_secret:
        return

    if scheduler_header is not None:
        return

    expected = f"Bearer {config.cron_secret}"
    if authorization and hmac.compare_digest(
        authorization.encode("utf-8"), expected.encode("utf-8")
    ):
        return

    raise AuthorizationError("Unauthorized")
