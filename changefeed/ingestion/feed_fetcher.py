"""
Changelog Feed Fetcher
======================

Async retrieval of raw feed text over HTTP. Requests are bounded by a total
timeout and identify the client with User-Agent/Accept headers. No parsing
happens here; the fetcher only hands back text or a typed failure.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import aiohttp
import certifi

from ..config.settings import ChangefeedSettings, get_settings
from ..models import Source
from ..utils.exceptions import ErrorCode, FeedError, FeedFetchError, FeedTimeoutError
from ..utils.logging import get_logger_for_component


@dataclass
class FetchResult:
    """Result of fetching one source."""

    feed_url: str
    success: bool
    source: Optional[Source] = None
    content: Optional[str] = None
    error: Optional[FeedError] = None
    fetch_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class FeedFetcher:
    """HTTP client for the changelog feeds."""

    def __init__(self, settings: Optional[ChangefeedSettings] = None, timeout: Optional[float] = None):
        """Initialize feed fetcher.

        Args:
            settings: Application settings (default: global settings)
            timeout: Request timeout in seconds (default from config)
        """
        self.settings = settings or get_settings()
        self.timeout = timeout or self.settings.fetch.timeout_seconds
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @property
    def headers(self) -> dict:
        return {
            "User-Agent": self.settings.fetch.user_agent,
            "Accept": self.settings.fetch.accept,
        }

    def url_for(self, source: Source) -> str:
        if source is Source.PLATFORM:
            return self.settings.sources.platform_url
        return self.settings.sources.developer_url

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=5)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=self.headers
        ) as session:
            yield session

    async def fetch_text(self, url: str, session: Optional[aiohttp.ClientSession] = None) -> str:
        """Fetch a feed document.

        Args:
            url: Feed URL
            session: Session to reuse; a short-lived one is opened when omitted

        Returns:
            Response body as text

        Raises:
            FeedTimeoutError: The request did not complete within the timeout
            FeedFetchError: Network failure or non-2xx response
        """
        if session is None:
            async with self.get_session() as own_session:
                return await self.fetch_text(url, own_session)

        self.logger.debug(f"Fetching feed: {url}")
        try:
            async with session.get(url) as response:
                if response.status < 200 or response.status >= 300:
                    raise FeedFetchError(
                        f"Failed to fetch RSS feed: HTTP {response.status}: {response.reason}",
                        feed_url=url,
                        status_code=response.status,
                    )

                content_type = response.headers.get("Content-Type", "")
                if content_type and "xml" not in content_type:
                    self.logger.warning(f"Unexpected content type for {url}: {content_type}")

                return await response.text()

        except asyncio.TimeoutError as e:
            self.logger.warning(f"Feed fetch timeout for {url} after {self.timeout}s")
            raise FeedTimeoutError(
                f"Request timeout: RSS feed took too long to respond ({self.timeout}s)",
                feed_url=url,
                timeout=self.timeout,
            ) from e
        except aiohttp.InvalidURL as e:
            raise FeedFetchError(
                f"Failed to fetch RSS feed: invalid URL {url}", feed_url=url, error_code=ErrorCode.FEED_INVALID_URL
            ) from e
        except aiohttp.ClientError as e:
            self.logger.warning(f"Feed fetch failed for {url}: {e}")
            raise FeedFetchError(f"Failed to fetch RSS feed: {e}", feed_url=url) from e

    async def fetch_source(self, source: Source, session: Optional[aiohttp.ClientSession] = None) -> str:
        """Fetch the feed configured for ``source``."""
        return await self.fetch_text(self.url_for(source), session)

    async def fetch_sources(self, sources: Iterable[Source]) -> List[FetchResult]:
        """Fetch several sources concurrently.

        All requests are issued at once and joined before returning. A failing
        source yields an unsuccessful FetchResult; it never cancels the others.

        Args:
            sources: Sources to fetch

        Returns:
            One FetchResult per source, in request order
        """
        sources = list(sources)
        if not sources:
            return []

        self.logger.info(f"Starting concurrent fetch of {len(sources)} feeds")

        async with self.get_session() as session:
            outcomes = await asyncio.gather(
                *(self.fetch_source(source, session) for source in sources),
                return_exceptions=True,
            )

        results = []
        for source, outcome in zip(sources, outcomes):
            url = self.url_for(source)
            if isinstance(outcome, FeedError):
                results.append(FetchResult(feed_url=url, success=False, source=source, error=outcome))
            elif isinstance(outcome, Exception):
                error = FeedFetchError(f"Failed to fetch RSS feed: {outcome}", feed_url=url)
                results.append(FetchResult(feed_url=url, success=False, source=source, error=error))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(FetchResult(feed_url=url, success=True, source=source, content=outcome))

        successful = sum(1 for r in results if r.success)
        self.logger.info(f"Feed fetch complete: {successful}/{len(results)} feeds successful")
        return results

    async def health_check(self, url: str) -> bool:
        """Check whether a feed URL answers a HEAD request with 2xx."""
        timeout = aiohttp.ClientTimeout(total=self.settings.fetch.health_check_timeout)
        try:
            async with self.get_session() as session:
                async with session.head(url, timeout=timeout) as response:
                    return 200 <= response.status < 300
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            self.logger.info(f"Health check failed for {url}: {e}")
            return False
