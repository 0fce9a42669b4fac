"""
Tool Parameter Tests
====================

Argument validation, defaults and coercion for each tool.
"""

from datetime import datetime, timezone

import pytest

from changefeed.models import Source
from changefeed.services.tool_params import (
    BreakingChangesParams,
    CategoryParams,
    DevSearchParams,
    FetchChangelogParams,
    RecentParams,
    SearchAllParams,
    SearchParams,
)
from changefeed.utils.exceptions import ErrorCode, ValidationError


class TestCommonArguments:
    """Test behaviour shared by every tool."""

    def test_none_values_take_defaults(self):
        params = RecentParams.parse_arguments({"days": None, "limit": None})

        assert params.days == 7
        assert params.limit is None

    def test_missing_arguments_dict(self):
        assert FetchChangelogParams.parse_arguments(None).filter == []

    def test_unknown_argument_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            RecentParams.parse_arguments({"bogus": 1})

        assert exc_info.value.field_name == "bogus"
        assert exc_info.value.error_code == ErrorCode.VALIDATION_UNKNOWN_VALUE
        assert exc_info.value.message.startswith("Invalid parameter 'bogus'")

    @pytest.mark.parametrize("limit", [0, -3])
    def test_limit_below_one_rejected(self, limit):
        with pytest.raises(ValidationError) as exc_info:
            SearchParams.parse_arguments({"query": "x", "limit": limit})

        assert exc_info.value.field_name == "limit"
        assert exc_info.value.error_code == ErrorCode.VALIDATION_OUT_OF_RANGE

    def test_numeric_strings_accepted(self):
        assert SearchParams.parse_arguments({"query": "x", "limit": "5"}).limit == 5


class TestSearchParams:
    """Test query validation and date bounds."""

    def test_query_required(self):
        with pytest.raises(ValidationError) as exc_info:
            SearchParams.parse_arguments({})

        assert exc_info.value.field_name == "query"
        assert exc_info.value.error_code == ErrorCode.VALIDATION_REQUIRED_FIELD

    def test_blank_query_rejected(self):
        with pytest.raises(ValidationError):
            SearchParams.parse_arguments({"query": "   "})

    def test_query_is_stripped(self):
        assert SearchParams.parse_arguments({"query": "  webhook "}).query == "webhook"

    def test_bare_date_to_covers_whole_day(self):
        params = DevSearchParams.parse_arguments({"query": "x", "date_from": "2024-01-05", "date_to": "2024-01-10"})

        assert params.date_from == datetime(2024, 1, 5, tzinfo=timezone.utc)
        assert params.date_to.date() == datetime(2024, 1, 10).date()
        assert (params.date_to.hour, params.date_to.minute) == (23, 59)

    def test_full_timestamp_kept(self):
        params = DevSearchParams.parse_arguments({"query": "x", "date_to": "2024-01-10T08:00:00Z"})

        assert params.date_to == datetime(2024, 1, 10, 8, tzinfo=timezone.utc)

    def test_unparseable_date_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            DevSearchParams.parse_arguments({"query": "x", "date_from": "next tuesday"})

        assert exc_info.value.field_name == "date_from"


class TestDaysCoercion:
    """Test that lookback windows snap to the allowed set."""

    @pytest.mark.parametrize("days,expected", [(1, 1), (30, 30), (5, 7), ("14", 14), ("soon", 7), (0, 7)])
    def test_recent_days(self, days, expected):
        assert RecentParams.parse_arguments({"days": days}).days == expected

    def test_category_days_optional(self):
        assert CategoryParams.parse_arguments({"category": "pos"}).days is None
        assert CategoryParams.parse_arguments({"category": "pos", "days": 2}).days == 7


class TestToolSpecificParams:
    """Test list handling and per-tool fields."""

    def test_filter_accepts_single_string(self):
        assert FetchChangelogParams.parse_arguments({"filter": "webhooks"}).filter == ["webhooks"]
        assert FetchChangelogParams.parse_arguments({"filter": ["a", "b"]}).filter == ["a", "b"]

    def test_fetch_changelog_action_flag_from_text(self):
        params = FetchChangelogParams.parse_arguments({"action_required": "true", "api_type": "webhook"})

        assert params.action_required is True
        assert params.api_type == "webhook"
        assert FetchChangelogParams.parse_arguments({}).action_required is False

    def test_category_string_or_list(self):
        assert CategoryParams.parse_arguments({"category": "pos"}).categories == ["pos"]
        assert CategoryParams.parse_arguments({"category": ["pos", "admin"]}).categories == ["pos", "admin"]

    def test_category_required(self):
        with pytest.raises(ValidationError):
            CategoryParams.parse_arguments({})

    def test_breaking_changes_fields(self):
        params = BreakingChangesParams.parse_arguments(
            {"api_version": "2024-01", "include_deprecations": "false", "days_back": 30}
        )

        assert params.api_version == "2024-01"
        assert params.include_deprecations is False
        assert params.days_back == 30

    def test_days_back_out_of_range(self):
        with pytest.raises(ValidationError):
            BreakingChangesParams.parse_arguments({"days_back": 0})

    def test_search_all_sources(self):
        assert SearchAllParams.parse_arguments({"query": "x"}).sources == [Source.DEVELOPER, Source.PLATFORM]
        assert SearchAllParams.parse_arguments({"query": "x", "sources": "platform"}).sources == [Source.PLATFORM]

    def test_search_all_unknown_source_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            SearchAllParams.parse_arguments({"query": "x", "sources": ["partners"]})

        assert exc_info.value.field_name.startswith("sources")
