"""
Changelog Service
=================

The tool layer. Each tool is a fixed recipe over the shared pipeline:
fetch, parse, tag, dedupe, filter or classify, sort, limit, format.

Tools never raise. Parameter problems come back as ``Error: ...`` results,
and fetch or parse failures as ``Error <doing something>: ...`` results.
Empty outcomes are ordinary results with an explanatory message.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from ..config.settings import ChangefeedSettings, get_settings
from ..delivery.digest_formatter import DigestFormatter
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..models import ClassifiedEntry, Entry, Source, ToolResult
from ..processing.aggregator import ChangelogAggregator
from ..processing.classifier import UrgencyClassifier, build_classifier
from ..processing.pipeline import EntryPipeline
from ..processing.transforms import (
    PLATFORM_CATEGORIES,
    deduplicate,
    filter_by_api_version,
    filter_by_category,
    filter_by_date_range,
    filter_by_keywords,
    filter_by_recency,
    limit_entries,
    search_entries,
    sort_by_date,
    validate_categories,
)
from ..utils.exceptions import ValidationError, handle_exception
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .tool_params import (
    BreakingChangesParams,
    CategoryParams,
    DevSearchParams,
    FetchChangelogParams,
    RecentParams,
    SearchAllParams,
    SearchParams,
    ToolParams,
)
from .tool_registry import ToolSpec, build_tool_registry

ERROR_PREFIXES = {
    "fetch_changelog": "Error fetching changelog",
    "dev_search": "Error searching developer changelog",
    "dev_breaking_changes": "Error fetching developer breaking changes",
    "dev_recent": "Error fetching recent developer updates",
    "platform_search": "Error searching platform changelog",
    "platform_category": "Error fetching platform category updates",
    "platform_recent": "Error fetching recent platform updates",
    "search_all": "Error searching changelogs",
}


class ChangelogService:
    """Runs changelog tools against the configured feeds."""

    def __init__(
        self,
        settings: Optional[ChangefeedSettings] = None,
        fetcher: Optional[FeedFetcher] = None,
        parser: Optional[FeedParser] = None,
        formatter: Optional[DigestFormatter] = None,
    ):
        """Initialize the changelog service.

        Args:
            settings: Application settings (default: global settings)
            fetcher: Feed fetcher (default: one built from settings)
            parser: Feed parser
            formatter: Output formatter
        """
        self.settings = settings or get_settings()
        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.parser = parser or FeedParser()
        self.formatter = formatter or DigestFormatter()
        self.aggregator = ChangelogAggregator(self.settings, fetcher=self.fetcher, parser=self.parser)
        self.registry: Dict[str, ToolSpec] = build_tool_registry(self.settings)
        self.logger = get_logger_for_component("changelog_service")

        self._handlers: Dict[str, Callable[[Any], Awaitable[str]]] = {
            "fetch_changelog": self._fetch_changelog,
            "dev_search": self._dev_search,
            "dev_breaking_changes": self._dev_breaking_changes,
            "dev_recent": self._dev_recent,
            "platform_search": self._platform_search,
            "platform_category": self._platform_category,
            "platform_recent": self._platform_recent,
            "search_all": self._search_all,
        }

    # Dispatch

    async def run_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Invoke a tool by its registered name.

        Args:
            name: Registered tool name (depends on enabled sources)
            arguments: Raw tool arguments

        Returns:
            ToolResult; unknown tool names produce an error result
        """
        spec = self.registry.get(name)
        if spec is None:
            self.logger.warning(f"Unknown tool requested: {name}")
            available = ", ".join(self.registry)
            return ToolResult.error(f"Error: Unknown tool '{name}'. Available tools: {available}")
        return await self._execute(spec.operation, spec.params_model, arguments, tool_name=name)

    async def _execute(
        self,
        operation: str,
        params_model: type,
        arguments: Optional[Dict[str, Any]],
        tool_name: Optional[str] = None,
    ) -> ToolResult:
        tool_name = tool_name or operation
        try:
            params = params_model.parse_arguments(arguments)
            with PerformanceLogger(self.logger, f"tool {tool_name}", tool=tool_name):
                text = await self._handlers[operation](params)
            return ToolResult.ok(text)

        except ValidationError as e:
            self.logger.warning(f"Rejected arguments for {tool_name}: {e.message}", extra=e.to_dict())
            return ToolResult.error(f"Error: {e.user_message}")

        except Exception as e:
            error = handle_exception(e, self.logger, tool_name, context={"arguments": arguments or {}})
            return ToolResult.error(f"{ERROR_PREFIXES[operation]}: {error.user_message}")

    # Public tools

    async def fetch_changelog(
        self,
        filter: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        action_required: Optional[bool] = None,
        api_version: Optional[str] = None,
        api_type: Optional[str] = None,
    ) -> ToolResult:
        arguments = {
            "filter": filter,
            "limit": limit,
            "action_required": action_required,
            "api_version": api_version,
            "api_type": api_type,
        }
        return await self._execute("fetch_changelog", FetchChangelogParams, arguments)

    async def dev_search(
        self,
        query: str,
        limit: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> ToolResult:
        arguments = {"query": query, "limit": limit, "date_from": date_from, "date_to": date_to}
        return await self._execute("dev_search", DevSearchParams, arguments)

    async def dev_breaking_changes(
        self,
        limit: Optional[int] = None,
        api_version: Optional[str] = None,
        api_type: Optional[str] = None,
        include_deprecations: Optional[bool] = None,
        days_back: Optional[int] = None,
    ) -> ToolResult:
        arguments = {
            "limit": limit,
            "api_version": api_version,
            "api_type": api_type,
            "include_deprecations": include_deprecations,
            "days_back": days_back,
        }
        return await self._execute("dev_breaking_changes", BreakingChangesParams, arguments)

    async def dev_recent(self, days: Optional[int] = None, limit: Optional[int] = None) -> ToolResult:
        return await self._execute("dev_recent", RecentParams, {"days": days, "limit": limit})

    async def platform_search(self, query: str, limit: Optional[int] = None) -> ToolResult:
        return await self._execute("platform_search", SearchParams, {"query": query, "limit": limit})

    async def platform_category(self, category, days: Optional[int] = None, limit: Optional[int] = None) -> ToolResult:
        arguments = {"category": category, "days": days, "limit": limit}
        return await self._execute("platform_category", CategoryParams, arguments)

    async def platform_recent(self, days: Optional[int] = None, limit: Optional[int] = None) -> ToolResult:
        return await self._execute("platform_recent", RecentParams, {"days": days, "limit": limit})

    async def search_all(
        self,
        query: str,
        sources: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> ToolResult:
        arguments = {"query": query, "sources": list(sources) if sources is not None else None, "limit": limit}
        return await self._execute("search_all", SearchAllParams, arguments)

    # Recipes

    def _limit(self, params: ToolParams, default: int) -> int:
        requested = params.limit or default
        return min(requested, self.settings.limits.max_allowed)

    async def _load(self, source: Source, tag: bool = True) -> List[Entry]:
        """Fetch and parse one feed; entries are tagged with ``source`` unless ``tag`` is False."""
        url = self.fetcher.url_for(source)
        text = await self.fetcher.fetch_text(url)
        return self.parser.parse(text, source=source if tag else None, feed_url=url)

    async def _fetch_changelog(self, params: FetchChangelogParams) -> str:
        entries = await self._load(Source.DEVELOPER, tag=False)
        limit = self._limit(params, self.settings.limits.recent)
        # Same breaking-change rules as the urgency report, without deprecations
        action = UrgencyClassifier(include_deprecations=False)

        result = (
            EntryPipeline("fetch_changelog")
            .then("dedupe", deduplicate)
            .then("sort", sort_by_date)
            .when(bool(params.filter), "keywords", lambda items: filter_by_keywords(items, params.filter))
            .when(params.action_required, "action_required", lambda items: [e for e in items if action.is_breaking(e)])
            .when(bool(params.api_version), "api_version", lambda items: filter_by_api_version(items, params.api_version))
            .when(bool(params.api_type), "api_type", lambda items: filter_by_keywords(items, [params.api_type]))
            .run(entries)
        )
        shown = limit_entries(result.entries, limit)

        qualifiers = []
        if params.filter:
            qualifiers.append(f"matching filter: {', '.join(params.filter)}")
        if params.action_required:
            qualifiers.append("requiring action")
        if params.api_version:
            qualifiers.append(f"for API version {params.api_version}")
        if params.api_type:
            qualifiers.append(f"for API type {params.api_type}")
        summary = " ".join([f"Found {len(result.entries)} changelog entries", *qualifiers])
        if len(shown) < len(result.entries):
            summary += f" (showing first {len(shown)})"
        return f"{summary}\n\n{self.formatter.format_entries(shown)}"

    async def _source_search(self, source: Source, params: SearchParams) -> str:
        entries = await self._load(source)
        limit = self._limit(params, self.settings.limits.search)
        date_from = getattr(params, "date_from", None)
        date_to = getattr(params, "date_to", None)

        matched = (
            EntryPipeline(f"{source.value}_search")
            .then("dedupe", deduplicate)
            .when(
                date_from is not None or date_to is not None,
                "date_range",
                lambda items: filter_by_date_range(items, date_from, date_to),
            )
            .then("search", lambda items: search_entries(items, params.query))
            .then("sort", sort_by_date)
            .run(entries)
            .entries
        )
        shown = limit_entries(matched, limit)

        summary = self.formatter.format_source_search_summary(source, params.query, len(matched), len(shown))
        return f"{summary}\n\n{self.formatter.format_entries(shown)}"

    async def _dev_search(self, params: DevSearchParams) -> str:
        return await self._source_search(Source.DEVELOPER, params)

    async def _platform_search(self, params: SearchParams) -> str:
        return await self._source_search(Source.PLATFORM, params)

    async def _dev_breaking_changes(self, params: BreakingChangesParams) -> str:
        classifier = build_classifier(
            self.settings.classification,
            include_deprecations=params.include_deprecations,
            lookback_days=params.days_back,
        )
        entries = await self._load(Source.DEVELOPER)
        limit = self._limit(params, self.settings.limits.breaking_changes)

        classified: List[ClassifiedEntry] = (
            EntryPipeline("dev_breaking_changes")
            .then("dedupe", deduplicate)
            .then("cutoff", classifier.apply_cutoff)
            .when(bool(params.api_version), "api_version", lambda items: filter_by_api_version(items, params.api_version))
            .when(bool(params.api_type), "api_type", lambda items: filter_by_keywords(items, [params.api_type]))
            .then("classify", classifier.classify)
            .then("rank", classifier.rank)
            .run(entries)
            .entries
        )
        shown = limit_entries(classified, limit)

        if isinstance(classifier, UrgencyClassifier):
            return self.formatter.format_urgency_report(
                shown,
                days_back=classifier.lookback_days,
                api_version=params.api_version,
                api_type=params.api_type,
                include_deprecations=classifier.include_deprecations,
            )

        summary = self.formatter.format_breaking_summary(
            Source.DEVELOPER, len(classified), len(shown), api_version=params.api_version
        )
        warning = self.formatter.format_breaking_warning(len(shown)) or "\n\n"
        return f"{summary}{warning}{self.formatter.format_entries(shown)}"

    async def _source_recent(self, source: Source, params: RecentParams) -> str:
        entries = await self._load(source)
        limit = self._limit(params, self.settings.limits.recent)

        recent = (
            EntryPipeline(f"{source.value}_recent")
            .then("dedupe", deduplicate)
            .then("recency", lambda items: filter_by_recency(items, params.days))
            .then("sort", sort_by_date)
            .run(entries)
            .entries
        )
        shown = limit_entries(recent, limit)

        summary = self.formatter.format_recent_summary(source, params.days, len(recent), len(shown))
        if not recent:
            return summary
        return f"{summary}\n\n{self.formatter.format_entries(shown)}"

    async def _dev_recent(self, params: RecentParams) -> str:
        return await self._source_recent(Source.DEVELOPER, params)

    async def _platform_recent(self, params: RecentParams) -> str:
        return await self._source_recent(Source.PLATFORM, params)

    async def _platform_category(self, params: CategoryParams) -> str:
        # Validated before fetching so a bad request never touches the network
        categories = validate_categories(params.categories, PLATFORM_CATEGORIES)
        entries = await self._load(Source.PLATFORM)
        limit = self._limit(params, self.settings.limits.category)

        matched = (
            EntryPipeline("platform_category")
            .then("dedupe", deduplicate)
            .then("category", lambda items: filter_by_category(items, categories, PLATFORM_CATEGORIES))
            .when(params.days is not None, "recency", lambda items: filter_by_recency(items, params.days))
            .then("sort", sort_by_date)
            .run(entries)
            .entries
        )
        shown = limit_entries(matched, limit)

        summary = self.formatter.format_category_summary(categories, params.days, len(matched), len(shown))
        if not matched:
            return summary
        return f"{summary}\n\n{self.formatter.format_entries(shown)}"

    async def _search_all(self, params: SearchAllParams) -> str:
        limit = self._limit(params, self.settings.limits.search)
        result = await self.aggregator.search(params.query, params.sources, limit)

        sources = list(dict.fromkeys(params.sources))
        failures = {source: error.user_message for source, error in result.failures.items()}
        summary = self.formatter.format_aggregate_summary(
            params.query,
            sources,
            result.counts,
            result.total,
            len(result.entries),
            failures=failures,
        )
        if result.total == 0:
            return summary
        return f"{summary}\n\n{self.formatter.format_entries(result.entries)}"

    def list_tools(self) -> List[ToolSpec]:
        return list(self.registry.values())
