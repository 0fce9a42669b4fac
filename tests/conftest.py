"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for changefeed tests: RSS document builders, settings
factories and a fetcher stub that serves documents from memory.
"""

import pytest
import os
import sys
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Dict, List, Optional, Union
from xml.sax.saxutils import escape

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Keep a developer's .env or shell from leaking into tests
for _name in list(os.environ):
    if _name.startswith("CHANGEFEED_"):
        del os.environ[_name]

from changefeed.config.settings import ChangefeedSettings, DEVELOPER_FEED_URL, PLATFORM_FEED_URL
from changefeed.ingestion.feed_fetcher import FeedFetcher
from changefeed.utils.exceptions import FeedFetchError


# ============================================================================
# RSS document builders
# ============================================================================


def rss_item(
    title: Optional[str] = None,
    link: Optional[str] = None,
    description: Optional[str] = None,
    pub_date: Optional[str] = None,
    categories: Optional[List[str]] = None,
    cdata: bool = False,
) -> str:
    """Render one <item>; None fields are omitted entirely."""
    parts = ["<item>"]
    if title is not None:
        parts.append(f"<title>{escape(title)}</title>")
    if link is not None:
        parts.append(f"<link>{escape(link)}</link>")
    if description is not None:
        body = f"<![CDATA[{description}]]>" if cdata else escape(description)
        parts.append(f"<description>{body}</description>")
    if pub_date is not None:
        parts.append(f"<pubDate>{escape(pub_date)}</pubDate>")
    for category in categories or []:
        parts.append(f"<category>{escape(category)}</category>")
    parts.append("</item>")
    return "".join(parts)


def rss_document(items: List[str], title: str = "Test Changelog") -> str:
    """Wrap rendered items in an RSS 2.0 channel."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{escape(title)}</title>"
        "<link>https://example.com/changelog</link>"
        "<description>Test feed</description>"
        + "".join(items)
        + "</channel></rss>"
    )


def rfc822(moment: datetime) -> str:
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def days_ago(days: float) -> str:
    """RFC 822 date ``days`` before now."""
    return rfc822(datetime.now(timezone.utc) - timedelta(days=days))


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def make_settings():
    """Factory for settings with nested overrides, e.g. ``make_settings(classification={"variant": "simple"})``."""

    def factory(**overrides) -> ChangefeedSettings:
        return ChangefeedSettings(_env_file=None, **overrides)

    return factory


@pytest.fixture
def settings(make_settings):
    return make_settings()


# ============================================================================
# Fetcher stub
# ============================================================================


class StubFetcher(FeedFetcher):
    """FeedFetcher that serves documents (or raises errors) from a URL map."""

    def __init__(self, settings: ChangefeedSettings, documents: Dict[str, Union[str, Exception]]):
        super().__init__(settings)
        self.documents = documents
        self.requested: List[str] = []

    async def fetch_text(self, url, session=None):
        self.requested.append(url)
        outcome = self.documents.get(url)
        if outcome is None:
            raise FeedFetchError("Failed to fetch RSS feed: HTTP 404: Not Found", feed_url=url, status_code=404)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def stub_fetcher():
    """Factory: ``stub_fetcher(settings, developer=xml, platform=xml)``."""

    def factory(settings, developer=None, platform=None) -> StubFetcher:
        documents = {}
        if developer is not None:
            documents[settings.sources.developer_url] = developer
        if platform is not None:
            documents[settings.sources.platform_url] = platform
        return StubFetcher(settings, documents)

    return factory


# ============================================================================
# Sample feeds
# ============================================================================


@pytest.fixture
def scenario_a_xml():
    """Two items: a breaking change and a plain feature."""
    return rss_document([
        rss_item(
            title="Breaking: Remove legacy field",
            link="https://shopify.dev/changelog/remove-legacy-field",
            description="The legacy field is gone.",
            pub_date="2024-01-10",
            categories=["api"],
        ),
        rss_item(
            title="New feature",
            link="https://shopify.dev/changelog/new-feature",
            description="Something shiny.",
            pub_date="2024-01-15",
            categories=["tools"],
        ),
    ])


@pytest.fixture
def cdata_xml():
    return rss_document([
        rss_item(
            title="Checkout UI extension update",
            link="https://shopify.dev/changelog/checkout-ui",
            description="<p>Checkout <strong>extensions</strong> now support  <a href='#'>metafields</a>.</p>",
            pub_date="Wed, 10 Jan 2024 12:00:00 GMT",
            categories=["  Checkout  ", "API", ""],
            cdata=True,
        ),
    ])


@pytest.fixture
def sparse_xml():
    """Items missing optional fields."""
    return rss_document([
        rss_item(title="Only a title", link="https://shopify.dev/changelog/only-title"),
        rss_item(title="No link at all"),
    ])


@pytest.fixture
def empty_channel_xml():
    return rss_document([])


@pytest.fixture
def malformed_xml():
    return '<?xml version="1.0"?><rss version="2.0"><channel><title>Broken</title><item><title>Unclosed'


@pytest.fixture
def developer_feed_xml():
    """Developer feed with recent, old, breaking, deprecation and duplicate items."""
    return rss_document([
        rss_item(
            title="Critical: API version 2023-01 removal",
            link="https://shopify.dev/changelog/2023-01-removal",
            description="API version 2023-01 will be removed. Immediate action required.",
            pub_date=days_ago(2),
            categories=["API", "Action Required"],
        ),
        rss_item(
            title="Webhook payload deprecation",
            link="https://shopify.dev/changelog/webhook-deprecation",
            description="The old webhook payload is deprecated in 2024-04.",
            pub_date=days_ago(5),
            categories=["Webhooks"],
        ),
        rss_item(
            title="GraphQL Admin API: new product fields",
            link="https://shopify.dev/changelog/product-fields",
            description="New fields on Product for the GraphQL Admin API.",
            pub_date=days_ago(1),
            categories=["API", "GraphQL"],
        ),
        rss_item(
            title="GraphQL Admin API: new product fields",
            link="https://shopify.dev/changelog/product-fields",
            description="Duplicate entry of the same post.",
            pub_date=days_ago(1),
            categories=["API"],
        ),
        rss_item(
            title="Old breaking change to REST endpoints",
            link="https://shopify.dev/changelog/old-rest-breaking",
            description="A breaking change shipped long ago.",
            pub_date=days_ago(200),
            categories=["REST"],
        ),
        rss_item(
            title="Theme app extensions webhook guide",
            link="https://shopify.dev/changelog/theme-guide",
            description="Docs for theme app extensions.",
            pub_date=days_ago(20),
            categories=["Themes"],
        ),
    ], title="Shopify Developer Changelog")


@pytest.fixture
def platform_feed_xml():
    return rss_document([
        rss_item(
            title="POS: webhook notifications for refunds",
            link="https://changelog.shopify.com/posts/pos-refunds",
            description="Point of Sale now emits refund notifications.",
            pub_date=days_ago(3),
            categories=["POS"],
        ),
        rss_item(
            title="Checkout branding editor",
            link="https://changelog.shopify.com/posts/checkout-branding",
            description="Customize checkout colors.",
            pub_date=days_ago(10),
            categories=["Checkout", "Online Store"],
        ),
        rss_item(
            title="Inventory transfers",
            link="https://changelog.shopify.com/posts/inventory-transfers",
            description="Move stock between locations.",
            pub_date=days_ago(40),
            categories=["Inventory"],
        ),
    ], title="Shopify Platform Changelog")


__all__ = [
    "rss_item",
    "rss_document",
    "days_ago",
    "rfc822",
    "StubFetcher",
    "DEVELOPER_FEED_URL",
    "PLATFORM_FEED_URL",
]
