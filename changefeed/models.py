"""
Changefeed Data Models
======================

Pydantic models for changelog entries and tool results. Entries are frozen:
every pipeline stage builds new sequences instead of editing records.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .utils.dates import parse_feed_date


class Source(str, Enum):
    """Upstream changelog feeds."""
    DEVELOPER = "developer"
    PLATFORM = "platform"

    @property
    def label(self) -> str:
        return "Developer" if self is Source.DEVELOPER else "Platform"

    @property
    def icon(self) -> str:
        return "📘" if self is Source.DEVELOPER else "🛍️"


class ChangeType(str, Enum):
    """What a classified entry signals."""
    BREAKING_CHANGE = "Breaking Change"
    DEPRECATION = "Deprecation"


class Urgency(str, Enum):
    """Priority tier; lower rank sorts first."""
    URGENT = "URGENT"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _URGENCY_RANKS[self]


_URGENCY_RANKS = {
    Urgency.URGENT: 0,
    Urgency.HIGH: 1,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 3,
}


class Entry(BaseModel):
    """One changelog item as it appeared in the feed."""
    title: str = Field(default="", description="Item title, empty when the feed omits it")
    link: str = Field(default="", description="Canonical URL, primary dedup key")
    description: str = Field(default="", description="Item body, possibly HTML")
    published_at: str = Field(default="", description="Date text exactly as supplied by the feed")
    categories: List[str] = Field(default_factory=list, description="Category labels in feed order")
    source: Optional[Source] = Field(default=None, description="Provenance tag")

    model_config = {"frozen": True}

    @field_validator('categories', mode='before')
    @classmethod
    def validate_categories(cls, v):
        """None becomes an empty sequence."""
        if v is None:
            return []
        return v

    @property
    def dedup_key(self) -> str:
        """Link, or title when the link is empty. Compared exactly."""
        return self.link or self.title

    @property
    def published(self) -> Optional[datetime]:
        """Parsed publication date, None when the feed text is unparseable."""
        return parse_feed_date(self.published_at)

    def with_source(self, source: Source) -> "Entry":
        return self.model_copy(update={"source": source})

    def searchable_text(self) -> str:
        """Lowercased title, description and categories joined by spaces."""
        return f"{self.title} {self.description} {' '.join(self.categories)}".lower()

    def __str__(self) -> str:
        return f"Entry({self.title[:50]})"


class ClassifiedEntry(Entry):
    """Entry annotated by a classifier."""
    change_type: Optional[ChangeType] = Field(default=None, description="Set when a classification rule matched")
    urgency: Optional[Urgency] = Field(default=None, description="Set by the urgency classifier only")

    @classmethod
    def from_entry(
        cls,
        entry: Entry,
        change_type: Optional[ChangeType] = None,
        urgency: Optional[Urgency] = None,
    ) -> "ClassifiedEntry":
        data = entry.model_dump()
        data.update(change_type=change_type, urgency=urgency)
        return cls(**data)


class ToolResult(BaseModel):
    """Outcome of one tool invocation: rendered text, flagged when it is an error."""
    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolResult":
        return cls(text=text)

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=True)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            payload["isError"] = True
        return payload
