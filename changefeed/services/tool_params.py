"""
Tool Parameter Models
=====================

Pydantic models validating the arguments of each changelog tool. Invalid
``days`` values are coerced to the default window; everything else outside
its domain is rejected with ``ValidationError``.
"""

from datetime import datetime, time
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from ..models import Source
from ..processing.transforms import coerce_days
from ..utils.dates import parse_feed_date
from ..utils.exceptions import ErrorCode, ValidationError

P = TypeVar("P", bound="ToolParams")


class ToolParams(BaseModel):
    """Base for tool arguments; unknown arguments are rejected."""

    limit: Optional[int] = Field(default=None, ge=1, description="Maximum entries returned")

    model_config = {"extra": "forbid"}

    @classmethod
    def parse_arguments(cls: Type[P], arguments: Optional[Dict[str, Any]]) -> P:
        """Validate raw tool arguments; omitted and None values take defaults.

        Raises:
            ValidationError: An argument is missing, unknown or out of range
        """
        provided = {k: v for k, v in (arguments or {}).items() if v is not None}
        try:
            return cls(**provided)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ())) or None
            message = first.get("msg", str(e))
            raise ValidationError(
                f"Invalid parameter '{field_name}': {message}" if field_name else f"Invalid parameters: {message}",
                field_name=field_name,
                error_code=_ERROR_CODES.get(first.get("type"), ErrorCode.VALIDATION_INVALID_FORMAT),
            ) from e


_ERROR_CODES = {
    "missing": ErrorCode.VALIDATION_REQUIRED_FIELD,
    "greater_than_equal": ErrorCode.VALIDATION_OUT_OF_RANGE,
    "less_than_equal": ErrorCode.VALIDATION_OUT_OF_RANGE,
    "enum": ErrorCode.VALIDATION_UNKNOWN_VALUE,
    "extra_forbidden": ErrorCode.VALIDATION_UNKNOWN_VALUE,
}


def _coerce_days_value(value: Any) -> Any:
    if value is None:
        return value
    try:
        days = int(value)
    except (TypeError, ValueError):
        return coerce_days(None)
    return coerce_days(days)


class FetchChangelogParams(ToolParams):
    filter: List[str] = Field(default_factory=list, description="Keywords matched against title, description and categories")
    action_required: bool = Field(default=False, description="Only entries that require developer action")
    api_version: Optional[str] = Field(default=None, description="API version mentioned by the entry, e.g. 2024-01")
    api_type: Optional[str] = Field(default=None, description="API surface mentioned by the entry, e.g. webhook")

    @field_validator("filter", mode="before")
    @classmethod
    def split_filter(cls, v):
        """A single keyword string is accepted as a one-item list."""
        if isinstance(v, str):
            return [v] if v.strip() else []
        return v


class SearchParams(ToolParams):
    query: str = Field(min_length=1, description="Whitespace-separated search terms")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v):
        if not v.strip():
            raise ValueError("query must not be blank")
        return v.strip()


class DevSearchParams(SearchParams):
    date_from: Optional[datetime] = Field(default=None, description="Earliest publication date (inclusive)")
    date_to: Optional[datetime] = Field(default=None, description="Latest publication date (inclusive)")

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def parse_date(cls, v, info):
        if v is None or isinstance(v, datetime):
            return v
        text = str(v).strip()
        parsed = parse_feed_date(text)
        if parsed is None:
            raise ValueError(f"unrecognised date: {text}")
        # A bare calendar date as upper bound covers that whole day
        if info.field_name == "date_to" and len(text) == 10:
            parsed = datetime.combine(parsed.date(), time.max, tzinfo=parsed.tzinfo)
        return parsed


class BreakingChangesParams(ToolParams):
    api_version: Optional[str] = Field(default=None, description="API version mentioned by the entry, e.g. 2024-01")
    api_type: Optional[str] = Field(default=None, description="API surface mentioned by the entry, e.g. graphql")
    include_deprecations: Optional[bool] = Field(default=None, description="Also report deprecations")
    days_back: Optional[int] = Field(default=None, ge=1, le=3650, description="Lookback window in days")


class RecentParams(ToolParams):
    days: int = Field(default=7, description="Lookback window: 1, 3, 7, 14 or 30")

    @field_validator("days", mode="before")
    @classmethod
    def validate_days(cls, v):
        return _coerce_days_value(v)


class CategoryParams(ToolParams):
    category: Union[str, List[str]] = Field(description="Platform category or list of categories")
    days: Optional[int] = Field(default=None, description="Optional lookback window: 1, 3, 7, 14 or 30")

    @field_validator("days", mode="before")
    @classmethod
    def validate_days(cls, v):
        return _coerce_days_value(v)

    @property
    def categories(self) -> List[str]:
        return [self.category] if isinstance(self.category, str) else list(self.category)


class SearchAllParams(SearchParams):
    sources: List[Source] = Field(
        default_factory=lambda: [Source.DEVELOPER, Source.PLATFORM],
        description="Changelogs to search",
    )

    @field_validator("sources", mode="before")
    @classmethod
    def split_sources(cls, v):
        if isinstance(v, str):
            return [v]
        return v
