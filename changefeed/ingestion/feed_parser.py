"""
Changelog Feed Parser
=====================

Turns raw RSS text into ``Entry`` records, in document order.

The document as a whole must be well-formed; a broken document fails with
``FeedParseError`` and yields nothing. Individual items are read through
small accessors that fall back to defaults for missing fields, and an item
whose fields have an unexpected shape is skipped with a warning.
"""

from typing import Any, List, Optional
from xml.sax import SAXException

import feedparser

from ..models import Entry, Source
from ..utils.exceptions import FeedParseError, ItemSkipped
from ..utils.logging import get_logger_for_component


def _get(mapping: Any, key: str) -> Any:
    """Total lookup: None when the mapping or key is missing."""
    getter = getattr(mapping, "get", None)
    if getter is None:
        return None
    try:
        return getter(key)
    except (KeyError, AttributeError, TypeError):
        return None


def _text(value: Any, field_name: str, index: int) -> str:
    """Trimmed string for a scalar field; empty when absent."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    # feedparser detail dicts ({"value": ..., "type": ...})
    inner = _get(value, "value")
    if isinstance(inner, str):
        return inner.strip()
    raise ItemSkipped(
        f"Unexpected structure in <{field_name}>: {type(value).__name__}",
        item_index=index,
    )


def _categories(tags: Any, index: int) -> List[str]:
    """Category labels in order; zero, one or many occurrences."""
    if not tags:
        return []
    if isinstance(tags, (str, dict)) or hasattr(tags, "keys"):
        tags = [tags]
    if not isinstance(tags, (list, tuple)):
        raise ItemSkipped(f"Unexpected structure in <category>: {type(tags).__name__}", item_index=index)

    categories = []
    for tag in tags:
        term = tag if isinstance(tag, str) else _get(tag, "term")
        term = _text(term, "category", index)
        if term:
            categories.append(term)
    return categories


class FeedParser:
    """RSS 2.0 parser built on feedparser."""

    def __init__(self):
        self.logger = get_logger_for_component("feed_parser")

    def parse(self, text: str, source: Optional[Source] = None, feed_url: Optional[str] = None) -> List[Entry]:
        """Parse a feed document.

        Args:
            text: Raw feed XML
            source: Provenance tag applied to every entry (optional)
            feed_url: Used for error context only

        Returns:
            Entries in document order; empty when the channel has no items

        Raises:
            FeedParseError: Document is not well-formed or has no channel
        """
        if not text or not text.strip():
            raise FeedParseError("XML parsing failed: Invalid XML: empty document", feed_url=feed_url)

        parsed = feedparser.parse(text.encode("utf-8"))
        self._check_document(parsed, feed_url)

        entries = []
        for index, item in enumerate(_get(parsed, "entries") or []):
            try:
                entry = self._build_entry(item, index)
            except Exception as e:
                self.logger.warning(
                    f"Skipping malformed feed item #{index}: {e}",
                    extra={"item_index": index, "feed_url": feed_url},
                )
                continue
            if source is not None:
                entry = entry.with_source(source)
            entries.append(entry)

        self.logger.debug(f"Parsed {len(entries)} entries" + (f" from {feed_url}" if feed_url else ""))
        return entries

    def _check_document(self, parsed: Any, feed_url: Optional[str]) -> None:
        if _get(parsed, "bozo"):
            exc = _get(parsed, "bozo_exception")
            if isinstance(exc, SAXException) or exc is None:
                detail = exc if exc is not None else "Unknown validation error"
                raise FeedParseError(f"XML parsing failed: Invalid XML: {detail}", feed_url=feed_url)
            # Encoding overrides and similar are recoverable
            self.logger.warning(f"Feed has parse warnings: {exc}", extra={"feed_url": feed_url})

        # feedparser reports a version for a bare <rss> root, so require channel content too
        if not _get(parsed, "version") or not (_get(parsed, "feed") or _get(parsed, "entries")):
            raise FeedParseError(
                "XML parsing failed: Missing required RSS channel structure",
                feed_url=feed_url,
            )

    def _build_entry(self, item: Any, index: int) -> Entry:
        if item is None or not hasattr(item, "get"):
            raise ItemSkipped("Feed item is not a mapping", item_index=index)

        description = _get(item, "summary")
        if description is None:
            description = _get(item, "description")

        published = _get(item, "published")
        if published is None:
            published = _get(item, "updated")

        return Entry(
            title=_text(_get(item, "title"), "title", index),
            link=_text(_get(item, "link"), "link", index),
            description=_text(description, "description", index),
            published_at=_text(published, "pubDate", index),
            categories=_categories(_get(item, "tags"), index),
        )
