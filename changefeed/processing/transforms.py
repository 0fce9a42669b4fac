"""
Entry Transforms
================

Stateless, synchronous transforms over entry sequences. Each function
returns a new list and leaves its input untouched, so the same entries can
be pushed through several recipes.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Set, TypeVar

from ..models import Entry
from ..utils.dates import ensure_aware, utc_now
from ..utils.exceptions import ErrorCode, ValidationError
from ..utils.logging import get_logger_for_component

E = TypeVar("E", bound=Entry)

ALLOWED_DAYS = (1, 3, 7, 14, 30)
DEFAULT_DAYS = 7

PLATFORM_CATEGORIES = (
    "admin",
    "analytics",
    "apps",
    "b2b",
    "checkout",
    "collective",
    "customers",
    "international",
    "inventory",
    "marketing",
    "mobile",
    "online-store",
    "orders",
    "payments",
    "pos",
    "products",
    "shipping",
    "shop",
    "themes",
)

logger = get_logger_for_component("transforms")


def coerce_days(days: Optional[int]) -> int:
    """Snap a lookback window onto the allowed set; anything else becomes 7."""
    if days in ALLOWED_DAYS:
        return days
    logger.warning(f"Unsupported days value {days!r}, using {DEFAULT_DAYS}")
    return DEFAULT_DAYS


def _slug(value: str) -> str:
    return "-".join(value.strip().lower().replace("_", " ").split())


def deduplicate(entries: Iterable[E]) -> List[E]:
    """Keep the first entry for each dedup key (link, else title), in order."""
    seen: Set[str] = set()
    out: List[E] = []
    for entry in entries:
        key = entry.dedup_key
        if key in seen:
            continue
        seen.add(key)
        out.append(entry)
    return out


def filter_by_keywords(entries: Iterable[E], keywords: Sequence[str]) -> List[E]:
    """Keep entries where any keyword appears in title, description or a category."""
    entries = list(entries)
    lowered = [k.lower() for k in keywords if k]
    if not lowered:
        return entries

    def matches(entry: Entry) -> bool:
        title = entry.title.lower()
        description = entry.description.lower()
        categories = [c.lower() for c in entry.categories]
        return any(
            k in title or k in description or any(k in c for c in categories)
            for k in lowered
        )

    return [e for e in entries if matches(e)]


def search_entries(entries: Iterable[E], query: str) -> List[E]:
    """Keep entries containing at least one whitespace-separated query term."""
    entries = list(entries)
    terms = (query or "").lower().split()
    if not terms:
        return entries
    return [e for e in entries if any(term in e.searchable_text() for term in terms)]


def filter_by_api_version(entries: Iterable[E], api_version: str) -> List[E]:
    """Keep entries that mention an API version such as ``2024-01``."""
    entries = list(entries)
    pattern = (api_version or "").strip().lower()
    if not pattern:
        return entries
    return [e for e in entries if pattern in e.searchable_text()]


def validate_categories(
    requested: Sequence[str],
    vocabulary: Sequence[str] = PLATFORM_CATEGORIES,
) -> List[str]:
    """Reduce a category request to known vocabulary entries.

    Unknown categories are dropped with a warning.

    Raises:
        ValidationError: nothing in the request is a known category
    """
    known = {_slug(v): v for v in vocabulary}
    effective: List[str] = []
    dropped: List[str] = []
    for category in requested:
        slug = _slug(category) if isinstance(category, str) else ""
        if slug in known:
            if known[slug] not in effective:
                effective.append(known[slug])
        else:
            dropped.append(str(category))

    if dropped:
        logger.warning(f"Ignoring unknown categories: {', '.join(dropped)}")

    if not effective:
        raise ValidationError(
            f"Invalid category. Valid categories are: {', '.join(vocabulary)}",
            field_name="category",
            error_code=ErrorCode.VALIDATION_UNKNOWN_VALUE,
        )
    return effective


def filter_by_category(
    entries: Iterable[E],
    categories: Sequence[str],
    vocabulary: Sequence[str] = PLATFORM_CATEGORIES,
) -> List[E]:
    """Keep entries whose categories intersect the (validated) request.

    Matching compares slug forms, so a feed label "Online Store" matches
    the ``online-store`` category.
    """
    wanted = {_slug(c) for c in validate_categories(categories, vocabulary)}
    return [e for e in entries if any(_slug(c) in wanted for c in e.categories)]


def filter_by_recency(entries: Iterable[E], days: Optional[int], now: Optional[datetime] = None) -> List[E]:
    """Keep entries published within the last ``days`` days.

    Entries without a parseable date are dropped.
    """
    days = coerce_days(days)
    cutoff = (ensure_aware(now) or utc_now()) - timedelta(days=days)
    out = []
    for entry in entries:
        published = entry.published
        if published is not None and published >= cutoff:
            out.append(entry)
    return out


def filter_by_date_range(
    entries: Iterable[E],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[E]:
    """Keep entries dated within ``[start, end]``.

    With no bounds every entry passes; with any bound, undated entries are
    dropped.
    """
    entries = list(entries)
    if start is None and end is None:
        return entries

    start = ensure_aware(start)
    end = ensure_aware(end)
    out = []
    for entry in entries:
        published = entry.published
        if published is None:
            continue
        if start is not None and published < start:
            continue
        if end is not None and published > end:
            continue
        out.append(entry)
    return out


def sort_by_date(entries: Iterable[E], ascending: bool = False) -> List[E]:
    """Order by publication date, newest first unless ``ascending``.

    Undated entries go after all dated ones in either direction and keep
    their relative order.
    """
    def key(entry: Entry):
        published = entry.published
        if published is None:
            return (1, 0.0)
        timestamp = published.timestamp()
        return (0, timestamp if ascending else -timestamp)

    return sorted(entries, key=key)


def limit_entries(entries: Iterable[E], limit: int) -> List[E]:
    """First ``limit`` entries; ``limit <= 0`` returns everything."""
    entries = list(entries)
    return entries[:limit] if limit > 0 else entries
