"""
Feed Fetcher Tests
==================

HTTP retrieval against a local aiohttp test server: success, non-2xx,
timeouts, request headers, concurrent fetches and health checks.
"""

import asyncio
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from conftest import rss_document, rss_item
from changefeed.ingestion.feed_fetcher import FeedFetcher, FetchResult
from changefeed.models import Source
from changefeed.utils.exceptions import ErrorCode, FeedFetchError, FeedTimeoutError

FEED = rss_document([rss_item(title="Hello", link="https://x/hello")])


def build_app(seen_headers=None, tracker=None):
    tracker = tracker if tracker is not None else {}
    tracker.setdefault("in_flight", 0)
    tracker.setdefault("peak", 0)
    both_arrived = asyncio.Event()

    async def feed(request):
        if seen_headers is not None:
            seen_headers.update(request.headers)
        return web.Response(text=FEED, content_type="application/rss+xml")

    async def html(request):
        return web.Response(text=FEED, content_type="text/html")

    async def missing(request):
        return web.Response(status=404, text="nope")

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text=FEED, content_type="application/rss+xml")

    async def gated(request):
        # Holds each request until a second one is in flight, or gives up after 1s
        tracker["in_flight"] += 1
        tracker["peak"] = max(tracker["peak"], tracker["in_flight"])
        if tracker["in_flight"] >= 2:
            both_arrived.set()
        try:
            await asyncio.wait_for(both_arrived.wait(), timeout=1)
        except asyncio.TimeoutError:
            pass
        tracker["in_flight"] -= 1
        return web.Response(text=FEED, content_type="application/rss+xml")

    app = web.Application()
    app.router.add_get("/feed.xml", feed)
    app.router.add_get("/page", html)
    app.router.add_get("/missing.xml", missing)
    app.router.add_get("/slow.xml", slow)
    app.router.add_get("/gated.xml", gated)
    return app


@asynccontextmanager
async def running_server(seen_headers=None, tracker=None):
    server = TestServer(build_app(seen_headers, tracker))
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


class TestFetchText:
    """Test single-document retrieval."""

    @pytest.mark.asyncio
    async def test_returns_body_and_sends_headers(self, settings):
        seen = {}
        async with running_server(seen) as server:
            fetcher = FeedFetcher(settings)

            text = await fetcher.fetch_text(str(server.make_url("/feed.xml")))

        assert "<title>Hello</title>" in text
        assert seen["User-Agent"] == settings.fetch.user_agent
        assert seen["Accept"] == "application/rss+xml, application/xml, text/xml"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_fetch_error_with_status(self, settings):
        async with running_server() as server:
            fetcher = FeedFetcher(settings)

            with pytest.raises(FeedFetchError) as exc_info:
                await fetcher.fetch_text(str(server.make_url("/missing.xml")))

        error = exc_info.value
        assert error.status_code == 404
        assert error.error_code == ErrorCode.FEED_HTTP_ERROR
        assert "HTTP 404" in error.message

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self, make_settings):
        settings = make_settings(fetch={"timeout_seconds": 0.2})
        async with running_server() as server:
            fetcher = FeedFetcher(settings)

            with pytest.raises(FeedTimeoutError) as exc_info:
                await fetcher.fetch_text(str(server.make_url("/slow.xml")))

        assert "timeout" in exc_info.value.message.lower()
        assert exc_info.value.error_code == ErrorCode.FEED_FETCH_TIMEOUT

    @pytest.mark.asyncio
    async def test_non_xml_content_type_only_warns(self, settings, caplog):
        async with running_server() as server:
            fetcher = FeedFetcher(settings)

            text = await fetcher.fetch_text(str(server.make_url("/page")))

        assert "Hello" in text
        assert "Unexpected content type" in caplog.text

    @pytest.mark.asyncio
    async def test_connection_failure_raises_fetch_error(self, settings):
        async with running_server() as server:
            url = str(server.make_url("/feed.xml"))
        # Server is closed now

        with pytest.raises(FeedFetchError) as exc_info:
            await FeedFetcher(settings).fetch_text(url)

        assert exc_info.value.status_code is None
        assert exc_info.value.error_code == ErrorCode.FEED_NETWORK_ERROR


class TestFetchSources:
    """Test concurrent multi-source fetches."""

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self, make_settings):
        async with running_server() as server:
            settings = make_settings(sources={
                "developer_url": str(server.make_url("/feed.xml")),
                "platform_url": str(server.make_url("/missing.xml")),
            })
            fetcher = FeedFetcher(settings)

            results = await fetcher.fetch_sources([Source.DEVELOPER, Source.PLATFORM])

        assert [r.source for r in results] == [Source.DEVELOPER, Source.PLATFORM]
        developer, platform = results
        assert isinstance(developer, FetchResult)
        assert developer.success is True
        assert "Hello" in developer.content
        assert platform.success is False
        assert isinstance(platform.error, FeedFetchError)
        assert platform.error.status_code == 404

    @pytest.mark.asyncio
    async def test_sources_are_fetched_concurrently(self, make_settings):
        tracker = {}
        async with running_server(tracker=tracker) as server:
            settings = make_settings(sources={
                "developer_url": str(server.make_url("/gated.xml?feed=developer")),
                "platform_url": str(server.make_url("/gated.xml?feed=platform")),
            })

            results = await FeedFetcher(settings).fetch_sources([Source.DEVELOPER, Source.PLATFORM])

        assert all(r.success for r in results)
        assert tracker["peak"] == 2

    @pytest.mark.asyncio
    async def test_no_sources_returns_empty(self, settings):
        assert await FeedFetcher(settings).fetch_sources([]) == []

    def test_url_for_source(self, settings):
        fetcher = FeedFetcher(settings)

        assert fetcher.url_for(Source.DEVELOPER) == settings.sources.developer_url
        assert fetcher.url_for(Source.PLATFORM) == settings.sources.platform_url


class TestHealthCheck:
    """Test HEAD health checks."""

    @pytest.mark.asyncio
    async def test_reachable_feed(self, settings):
        async with running_server() as server:
            assert await FeedFetcher(settings).health_check(str(server.make_url("/feed.xml"))) is True

    @pytest.mark.asyncio
    async def test_missing_feed(self, settings):
        async with running_server() as server:
            assert await FeedFetcher(settings).health_check(str(server.make_url("/missing.xml"))) is False
