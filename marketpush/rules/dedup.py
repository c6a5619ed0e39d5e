"""
Dedup keys: what counts as "the same event" for each ledger type.
"""

import hashlib
from datetime import date, datetime, timezone
from typing import Iterable, Union
from urllib.parse import urlsplit, urlunsplit


def date_key(when: Union[date, datetime]) -> str:
    """Calendar date as YYYY-MM-DD. Aware datetimes are converted to UTC first."""
    if isinstance(when, datetime):
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc)
        when = when.date()
    return when.isoformat()


def mover_batch_key(symbols: Iterable[str], when: Union[date, datetime]) -> str:
    """Same set of top movers on the same day is one event, in any order."""
    return ",".join(sorted(symbols)) + f"_{date_key(when)}"


def canonical_url(url: str) -> str:
    """Normalize a URL: trim, lower-case scheme and host, drop the fragment."""
    parts = urlsplit(url.strip())
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )


def news_external_id(url: str) -> str:
    """SHA-256 of the canonical article URL."""
    return hashlib.sha256(canonical_url(url).encode("utf-8")).hexdigest()


def recap_key(when: Union[date, datetime]) -> str:
    """One recap per calendar day."""
    return date_key(when)
