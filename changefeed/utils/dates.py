"""
Feed date parsing.

Feeds carry their dates as text (RFC 822 in RSS, ISO 8601 in some
generators). Entries keep that text untouched; everything that needs to
order or window entries goes through ``parse_feed_date``.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_feed_date(text: Optional[str]) -> Optional[datetime]:
    """Parse a feed date string into an aware datetime.

    Returns None for empty or unrecognised input; never raises.
    """
    if not text or not isinstance(text, str):
        return None

    text = text.strip()
    if not text:
        return None

    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        pass

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _as_utc(datetime.fromisoformat(iso_text))
    except ValueError:
        return None


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with parsed feed dates."""
    if value is None:
        return None
    return _as_utc(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
