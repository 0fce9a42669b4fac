"""
Feed Parser Tests
=================

RSS parsing into Entry records: field extraction, tolerance of missing
fields, category handling and document-level failures.
"""

import pytest

from conftest import rss_document, rss_item
from changefeed.ingestion.feed_parser import FeedParser, _categories, _text
from changefeed.models import Source
from changefeed.utils.exceptions import ErrorCode, FeedParseError, ItemSkipped


@pytest.fixture
def parser():
    return FeedParser()


class TestFeedParser:
    """Test document parsing."""

    def test_parses_items_in_document_order(self, parser, scenario_a_xml):
        entries = parser.parse(scenario_a_xml)

        assert [e.title for e in entries] == ["Breaking: Remove legacy field", "New feature"]
        first = entries[0]
        assert first.link == "https://shopify.dev/changelog/remove-legacy-field"
        assert first.description == "The legacy field is gone."
        assert first.published_at == "2024-01-10"
        assert first.categories == ["api"]
        assert first.source is None

    def test_cdata_description_and_trimmed_categories(self, parser, cdata_xml):
        entries = parser.parse(cdata_xml)

        assert len(entries) == 1
        entry = entries[0]
        assert "Checkout" in entry.description
        assert "extensions" in entry.description
        assert entry.categories == ["Checkout", "API"]
        assert entry.published is not None
        assert entry.published.year == 2024

    def test_missing_optional_fields_default_to_empty(self, parser, sparse_xml):
        entries = parser.parse(sparse_xml)

        assert len(entries) == 2
        for entry in entries:
            assert entry.description == ""
            assert entry.published_at == ""
            assert entry.categories == []
        assert entries[1].link == ""
        assert entries[1].dedup_key == "No link at all"

    def test_zero_items_returns_empty_list(self, parser, empty_channel_xml):
        assert parser.parse(empty_channel_xml) == []

    def test_multiple_categories_keep_order(self, parser):
        xml = rss_document([
            rss_item(title="Multi", link="https://x/1", categories=["Admin", "POS", "Checkout"]),
        ])

        entries = parser.parse(xml)

        assert entries[0].categories == ["Admin", "POS", "Checkout"]

    def test_source_tag_applied_to_every_entry(self, parser, scenario_a_xml):
        entries = parser.parse(scenario_a_xml, source=Source.PLATFORM)

        assert {e.source for e in entries} == {Source.PLATFORM}

    def test_malformed_xml_raises_parse_error(self, parser, malformed_xml):
        with pytest.raises(FeedParseError) as exc_info:
            parser.parse(malformed_xml)

        assert "Invalid XML" in exc_info.value.message
        assert exc_info.value.error_code == ErrorCode.FEED_PARSE_ERROR
        assert exc_info.value.recoverable is False

    def test_empty_document_raises_parse_error(self, parser):
        with pytest.raises(FeedParseError) as exc_info:
            parser.parse("   ")

        assert "Invalid XML" in exc_info.value.message

    def test_well_formed_non_feed_raises_parse_error(self, parser):
        with pytest.raises(FeedParseError) as exc_info:
            parser.parse('<?xml version="1.0"?><html><body>Not a feed</body></html>', feed_url="https://x/feed")

        assert "Missing required RSS channel structure" in exc_info.value.message
        assert exc_info.value.context["feed_url"] == "https://x/feed"

    @pytest.mark.parametrize(
        "document",
        [
            '<?xml version="1.0"?><rss version="2.0"></rss>',
            '<?xml version="1.0"?><rss version="2.0"><channel></channel></rss>',
        ],
    )
    def test_rss_root_without_channel_content_raises_parse_error(self, parser, document):
        with pytest.raises(FeedParseError) as exc_info:
            parser.parse(document)

        assert "Missing required RSS channel structure" in exc_info.value.message


class TestAccessors:
    """Test the total field accessors."""

    def test_text_handles_none_and_strings(self):
        assert _text(None, "title", 0) == ""
        assert _text("  padded  ", "title", 0) == "padded"

    def test_text_reads_detail_dicts(self):
        assert _text({"value": " inner ", "type": "text/plain"}, "title", 0) == "inner"

    def test_text_rejects_unexpected_shapes(self):
        with pytest.raises(ItemSkipped) as exc_info:
            _text(42, "title", 3)

        assert exc_info.value.context["item_index"] == 3

    def test_categories_normalizes_shapes(self):
        assert _categories(None, 0) == []
        assert _categories([], 0) == []
        assert _categories({"term": "Solo"}, 0) == ["Solo"]
        assert _categories([{"term": " A "}, {"term": ""}, {"term": "B"}], 0) == ["A", "B"]

    def test_malformed_item_is_skipped(self, parser, monkeypatch):
        xml = rss_document([
            rss_item(title="Good one", link="https://x/good"),
            rss_item(title="Bad one", link="https://x/bad"),
        ])
        original = FeedParser._build_entry

        def flaky(self, item, index):
            if index == 1:
                raise ItemSkipped("Unexpected structure in <title>: int", item_index=index)
            return original(self, item, index)

        monkeypatch.setattr(FeedParser, "_build_entry", flaky)

        entries = parser.parse(xml)

        assert [e.title for e in entries] == ["Good one"]
