"""
Changelog Aggregator
====================

Cross-source search. All requested feeds are fetched concurrently; each
successful document is parsed, tagged with its source, deduplicated and
searched on its own, then the per-source matches are merged, sorted by date
and limited.

Dedup runs per source only. Identical links in different feeds are kept as
separate results.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config.settings import ChangefeedSettings, get_settings
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..models import Entry, Source
from ..utils.exceptions import ChangefeedError, ErrorCode, FeedError, ValidationError
from ..utils.logging import get_logger_for_component
from .pipeline import EntryPipeline
from .transforms import deduplicate, limit_entries, search_entries, sort_by_date


@dataclass
class AggregateResult:
    """Merged search outcome across sources."""
    entries: List[Entry]
    total: int
    counts: Dict[Source, int] = field(default_factory=dict)
    failures: Dict[Source, ChangefeedError] = field(default_factory=dict)


class ChangelogAggregator:
    """Fetches several feeds at once and merges their search matches."""

    def __init__(
        self,
        settings: Optional[ChangefeedSettings] = None,
        fetcher: Optional[FeedFetcher] = None,
        parser: Optional[FeedParser] = None,
    ):
        self.settings = settings or get_settings()
        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.parser = parser or FeedParser()
        self.logger = get_logger_for_component("aggregator")

    async def search(self, query: str, sources: Iterable[Source], limit: int) -> AggregateResult:
        """Search ``sources`` for ``query``.

        Args:
            query: Whitespace-separated terms; an entry matches if any term does
            sources: Feeds to search, each at most once
            limit: Maximum merged entries returned

        Returns:
            AggregateResult with the limited entries, the pre-limit total and
            per-source match counts

        Raises:
            ValidationError: No sources requested
            ChangefeedError: A source failed and partial results are disabled,
                or every source failed
        """
        requested: List[Source] = []
        for source in sources:
            if source not in requested:
                requested.append(Source(source))
        if not requested:
            raise ValidationError(
                "No valid sources specified for search",
                field_name="sources",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )

        fetched = await self.fetcher.fetch_sources(requested)

        result = AggregateResult(entries=[], total=0)
        matched: List[Entry] = []

        for fetch in fetched:
            source = fetch.source
            if not fetch.success:
                error = fetch.error or FeedError("Unknown fetch failure", feed_url=fetch.feed_url)
                if not self.settings.aggregation.partial_results:
                    raise error
                self.logger.warning(f"Source {source.value} failed, continuing without it: {error.message}")
                result.failures[source] = error
                continue

            try:
                entries = self.parser.parse(fetch.content or "", source=source, feed_url=fetch.feed_url)
            except ChangefeedError as e:
                if not self.settings.aggregation.partial_results:
                    raise
                self.logger.warning(f"Source {source.value} could not be parsed: {e.message}")
                result.failures[source] = e
                continue

            source_matches = (
                EntryPipeline(f"search_all:{source.value}")
                .then("dedupe", deduplicate)
                .then("search", lambda items: search_entries(items, query))
                .run(entries)
                .entries
            )
            result.counts[source] = len(source_matches)
            matched.extend(source_matches)

        if result.failures and not result.counts:
            # Nothing survived, so report the first failure
            raise next(iter(result.failures.values()))

        ordered = sort_by_date(matched)
        result.total = len(ordered)
        result.entries = limit_entries(ordered, limit)

        self.logger.info(
            f"Aggregated {result.total} matches for '{query}' across {len(result.counts)} sources",
            extra={"counts": {s.value: c for s, c in result.counts.items()}},
        )
        return result
