"""
Digest Formatter
================

Text rendering for changelog tool results.

Formats:
- Compact: one line per entry with categories, short date, link and a
  truncated plain-text description
- Urgency report: markdown document grouping classified entries by tier
- Summary lines for search, recency, category and cross-source results

Rendering is presentation only. Every value is guarded with a placeholder so
formatting never fails on a sparse entry.
"""

from datetime import timezone
from typing import Dict, List, Optional, Sequence

from ..ingestion.content_cleaner import extract_plain_text
from ..models import ChangeType, ClassifiedEntry, Entry, Source, Urgency
from ..utils.dates import parse_feed_date
from ..utils.logging import get_logger_for_component

NO_ENTRIES_MESSAGE = "No changelog entries found."
NO_TITLE = "No title found"
NO_LINK = "No link"
UNKNOWN_DATE_COMPACT = "Unknown"
UNKNOWN_DATE = "Unknown date"

BREAKING_WARNING = (
    "\n⚠️  IMPORTANT: These are breaking changes that may require code updates. "
    "Please review carefully and plan for necessary modifications.\n\n"
)

URGENCY_SECTIONS = (
    (Urgency.URGENT, "URGENT - Immediate Action Required"),
    (Urgency.HIGH, "HIGH PRIORITY - Action Required Soon"),
    (Urgency.MEDIUM, "MEDIUM PRIORITY - Plan for Migration"),
    (Urgency.LOW, "LOW PRIORITY - For Awareness"),
)

RECOMMENDED_ACTIONS = (
    "1. Review all URGENT and HIGH priority items immediately",
    "2. Create migration plans for deprecated features",
    "3. Test your integration with the latest API versions",
    "4. Subscribe to the Shopify Developer Changelog for updates",
)


class DigestFormatter:
    """Formats entry sequences into tool output text."""

    def __init__(self, description_length: int = 120):
        """Initialize digest formatter.

        Args:
            description_length: Characters of description kept in compact lines
        """
        self.description_length = description_length
        self.logger = get_logger_for_component("digest_formatter")

    # Compact format

    def format_entry(self, entry: Entry, position: int) -> str:
        """Format one entry as a compact line; ``position`` is 1-based."""
        title = entry.title or NO_TITLE
        categories = f" [{', '.join(entry.categories)}]" if entry.categories else ""
        date = self.format_date_compact(entry.published_at)
        link = entry.link or NO_LINK
        description = self.truncate_text(self.strip_html(entry.description), self.description_length)
        return f"{position}. {title}{categories} | {date} | {link} | {description}"

    def format_entries(self, entries: Sequence[Entry]) -> str:
        """Format entries one per line, numbered from 1."""
        if not entries:
            return NO_ENTRIES_MESSAGE
        return "\n".join(self.format_entry(entry, i) for i, entry in enumerate(entries, 1))

    # Urgency report

    def format_urgency_report(
        self,
        entries: Sequence[ClassifiedEntry],
        days_back: int,
        api_version: Optional[str] = None,
        api_type: Optional[str] = None,
        include_deprecations: bool = True,
    ) -> str:
        """Render classified entries as a markdown report grouped by urgency tier.

        Args:
            entries: Ranked classified entries
            days_back: Lookback window shown in the filters section
            api_version: API version filter, if any
            api_type: API type filter, if any
            include_deprecations: Whether deprecations were considered

        Returns:
            Markdown document, or a one-line message when nothing matched
        """
        if not entries:
            return (
                f"No breaking changes or deprecations found in the last {days_back} days "
                f"with the specified filters."
            )

        lines = [
            "# Shopify Breaking Changes & Deprecations",
            "",
            "## Filters Applied:",
            f"- Time Period: Last {days_back} days",
            f"- API Version: {api_version or 'All versions'}",
            f"- API Type: {api_type or 'All types'}",
            f"- Include Deprecations: {'true' if include_deprecations else 'false'}",
            "",
            f"## Critical Changes Requiring Action ({len(entries)} items):",
            "",
        ]

        grouped: Dict[Urgency, List[ClassifiedEntry]] = {urgency: [] for urgency, _ in URGENCY_SECTIONS}
        for entry in entries:
            grouped[entry.urgency or Urgency.LOW].append(entry)

        for urgency, heading in URGENCY_SECTIONS:
            section = grouped[urgency]
            if not section:
                continue

            lines.append(f"## {heading}")
            lines.append("")
            for i, entry in enumerate(section, 1):
                lines.extend(self._format_report_item(entry, i))

        lines.append("## Recommended Actions:")
        lines.append("")
        lines.extend(RECOMMENDED_ACTIONS)
        lines.append("")

        return "\n".join(lines)

    def _format_report_item(self, entry: ClassifiedEntry, position: int) -> List[str]:
        change_type = entry.change_type or ChangeType.BREAKING_CHANGE
        item = [
            f"### {position}. {entry.title or NO_TITLE}",
            f"**Type:** {change_type.value}",
            f"**Date:** {self.format_date_report(entry.published_at)}",
        ]
        if entry.categories:
            item.append(f"**Categories:** {', '.join(entry.categories)}")
        item.extend([
            f"**Link:** {entry.link or NO_LINK}",
            "",
            "**Impact:**",
            self.strip_html(entry.description),
            "",
            "---",
            "",
        ])
        return item

    # Summary lines

    def format_search_summary(
        self,
        query: str,
        total_found: int,
        displayed: int,
        filters: Optional[Sequence[str]] = None,
    ) -> str:
        summary = f"Found {total_found} entries"
        if query:
            summary += f' matching "{query}"'
        if filters:
            summary += f" with filter: {', '.join(filters)}"
        if displayed < total_found:
            summary += f" (showing first {displayed})"
        return summary

    def format_source_header(self, source: Source) -> str:
        return f"{source.icon} {source.label} Changelog"

    def format_source_search_summary(self, source: Source, query: str, total_found: int, displayed: int) -> str:
        """Header line for a single-source search."""
        return f"{self.format_source_header(source)} - {self.format_search_summary(query, total_found, displayed)}"

    def format_recent_summary(self, source: Source, days: int, total_found: int, displayed: int) -> str:
        days_text = self.format_days_window(days)
        if total_found == 0:
            return f"{self.format_source_header(source)} - No updates in the {days_text}"
        summary = f"{self.format_source_header(source)} - {total_found} updates from the {days_text}"
        return summary + self._showing_first(displayed, total_found)

    def format_category_summary(
        self,
        categories: Sequence[str],
        days: Optional[int],
        total_found: int,
        displayed: int,
    ) -> str:
        if len(categories) > 1:
            category_text = f"categories: {', '.join(categories)}"
        else:
            category_text = f"category: {categories[0] if categories else ''}"
        days_text = f" from the last {days} days" if days else ""
        header = self.format_source_header(Source.PLATFORM)

        if total_found == 0:
            return f"{header} - No updates found for {category_text}{days_text}"
        summary = f"{header} - {total_found} updates for {category_text}{days_text}"
        return summary + self._showing_first(displayed, total_found)

    def format_breaking_summary(
        self,
        source: Source,
        total_found: int,
        displayed: int,
        api_version: Optional[str] = None,
    ) -> str:
        summary = f"{self.format_source_header(source)} - Found {total_found} breaking changes/deprecations"
        if api_version:
            summary += f" for API version {api_version}"
        return summary + self._showing_first(displayed, total_found)

    def format_aggregate_summary(
        self,
        query: str,
        sources: Sequence[Source],
        counts: Dict[Source, int],
        total_found: int,
        displayed: int,
        failures: Optional[Dict[Source, str]] = None,
    ) -> str:
        """Header line for a cross-source search, with per-source match counts."""
        sources_text = self.format_sources_text(sources)
        if total_found == 0:
            summary = f'🔍 No entries found matching "{query}" in {sources_text}'
        else:
            details = ", ".join(f"{source.value}: {count}" for source, count in counts.items() if count > 0)
            summary = f'🔍 Search across {sources_text} - Found {total_found} entries matching "{query}"'
            if details:
                summary += f" ({details})"
            if displayed < total_found:
                summary += f" - showing first {displayed}"

        if failures:
            unavailable = "; ".join(f"{source.value}: {message}" for source, message in failures.items())
            summary += f"\n⚠️  Unavailable sources: {unavailable}"
        return summary

    @staticmethod
    def format_sources_text(sources: Sequence[Source]) -> str:
        if len(sources) == 2:
            return "both changelogs"
        return " and ".join(source.value for source in sources) + " changelog"

    @staticmethod
    def format_days_window(days: int) -> str:
        return "last 24 hours" if days == 1 else f"last {days} days"

    @staticmethod
    def _showing_first(displayed: int, total_found: int) -> str:
        return f" (showing first {displayed})" if displayed < total_found else ""

    def format_breaking_warning(self, entry_count: int) -> str:
        """Warning block shown above simple breaking-change listings."""
        if entry_count == 0:
            return ""
        return BREAKING_WARNING

    # Field helpers

    @staticmethod
    def format_categories(categories: Sequence[str]) -> str:
        """Readable list: ``a``, ``a and b``, ``a, b, and c``."""
        if not categories:
            return ""
        if len(categories) == 1:
            return categories[0]
        if len(categories) == 2:
            return " and ".join(categories)
        return f"{', '.join(categories[:-1])}, and {categories[-1]}"

    @staticmethod
    def format_date(date_text: str) -> str:
        """Long date such as ``January 10, 2024``; raw text when unparseable."""
        if not date_text:
            return UNKNOWN_DATE
        parsed = parse_feed_date(date_text)
        if parsed is None:
            return date_text
        return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"

    @staticmethod
    def format_date_report(date_text: str) -> str:
        """Report date with zero-padded day; raw text when unparseable."""
        if not date_text:
            return UNKNOWN_DATE
        parsed = parse_feed_date(date_text)
        if parsed is None:
            return date_text
        return parsed.strftime("%B %d, %Y")

    @staticmethod
    def format_date_compact(date_text: str) -> str:
        """Short date such as ``Jan 10``; first 10 characters when unparseable."""
        if not date_text:
            return UNKNOWN_DATE_COMPACT
        parsed = parse_feed_date(date_text)
        if parsed is None:
            return date_text[:10]
        return f"{parsed.strftime('%b')} {parsed.day}"

    @staticmethod
    def format_date_iso(date_text: str) -> Optional[str]:
        """UTC ISO 8601 timestamp, None when unparseable."""
        parsed = parse_feed_date(date_text)
        if parsed is None:
            return None
        return parsed.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

    @staticmethod
    def truncate_text(text: str, max_length: int) -> str:
        """Cut to ``max_length`` characters, trim, and append an ellipsis."""
        if not text or len(text) <= max_length:
            return text
        return text[:max_length].strip() + "..."

    def strip_html(self, text: str) -> str:
        """Plain text from an HTML description."""
        try:
            return extract_plain_text(text)
        except Exception as e:
            self.logger.warning(f"Could not strip HTML from description: {e}")
            return text or ""
