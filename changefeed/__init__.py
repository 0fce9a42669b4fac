"""
Changefeed - Shopify Changelog Query Toolkit
============================================

Query operations over the Shopify developer and platform changelog RSS feeds:
search, recency and category scopes, breaking-change detection and
cross-source search.

Main Components:
- Ingestion: async feed fetching (aiohttp) and RSS parsing (feedparser)
- Processing: entry transforms, pipeline, classifiers, aggregator
- Delivery: compact and urgency-report text formatting
- Services: tool registry and the changelog tool service
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "Changefeed Development Team"
__description__ = "Query toolkit for the Shopify changelog feeds"

# Core imports for easy access
from .config.settings import get_settings
from .models import ClassifiedEntry, Entry, Source, ToolResult
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import ChangefeedError

__all__ = [
    "get_settings",
    "Entry",
    "ClassifiedEntry",
    "Source",
    "ToolResult",
    "configure_application_logging",
    "get_logger_for_component",
    "ChangefeedError",
]
