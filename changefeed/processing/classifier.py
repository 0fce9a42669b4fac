"""
Breaking Change Classifier
==========================

Decides whether an entry announces a breaking change or deprecation and,
for the urgency strategy, how soon it needs attention.

Two strategies share one interface:

- ``SimpleClassifier``: keyword match on title and description. Ranking is
  newest first.
- ``UrgencyClassifier``: category and phrase rules, optional deprecations,
  and a four-tier urgency. Ranking is tier first, then newest first.

Both are deterministic: an entry's classification depends only on its own
fields.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config.settings import ClassificationSettings, ClassifierVariant
from ..models import ChangeType, ClassifiedEntry, Entry, Urgency
from ..utils.dates import ensure_aware, utc_now
from ..utils.logging import get_logger_for_component
from .transforms import sort_by_date

BREAKING_KEYWORDS = (
    "breaking",
    "deprecated",
    "removal",
    "discontinued",
    "migration",
    "upgrade",
)

BREAKING_CATEGORY_MARKERS = ("breaking", "action required")
BREAKING_TITLE_PHRASES = ("breaking", "removal", "migration required")
BREAKING_DESCRIPTION_PHRASES = ("breaking change", "will be removed", "action required")
DEPRECATION_CATEGORY_MARKER = "deprecation"
DEPRECATION_STEM = "deprecat"

URGENT_MARKERS = ("immediate", "critical", "urgent")
HIGH_MARKERS = ("breaking", "removal", "action required")


class Classifier(ABC):
    """Interface for breaking-change classification strategies."""

    name = "classifier"

    def __init__(self):
        self.logger = get_logger_for_component("classifier", tool_name=self.name)

    @abstractmethod
    def classify_entry(self, entry: Entry) -> Optional[ClassifiedEntry]:
        """Classify one entry; None when it is neither breaking nor a deprecation."""

    @abstractmethod
    def rank(self, entries: Iterable[ClassifiedEntry]) -> List[ClassifiedEntry]:
        """Order classified entries for presentation."""

    def classify(self, entries: Iterable[Entry]) -> List[ClassifiedEntry]:
        """Keep only classified entries, preserving input order."""
        entries = list(entries)
        classified = [c for c in (self.classify_entry(e) for e in entries) if c is not None]
        self.logger.debug(f"Classified {len(classified)}/{len(entries)} entries as breaking")
        return classified

    def apply_cutoff(self, entries: Iterable[Entry], now: Optional[datetime] = None) -> List[Entry]:
        """Date cutoff applied before classification. No-op by default."""
        return list(entries)


class SimpleClassifier(Classifier):
    """Keyword classifier over title and description."""

    name = "simple"

    def __init__(self, keywords: Sequence[str] = BREAKING_KEYWORDS):
        super().__init__()
        self.keywords = tuple(k.lower() for k in keywords)

    def classify_entry(self, entry: Entry) -> Optional[ClassifiedEntry]:
        content = f"{entry.title} {entry.description}".lower()
        if any(keyword in content for keyword in self.keywords):
            return ClassifiedEntry.from_entry(entry, change_type=ChangeType.BREAKING_CHANGE)
        return None

    def rank(self, entries: Iterable[ClassifiedEntry]) -> List[ClassifiedEntry]:
        return sort_by_date(entries)


class UrgencyClassifier(Classifier):
    """Rule-based classifier with urgency tiers."""

    name = "urgency"

    def __init__(self, include_deprecations: bool = True, lookback_days: int = 90):
        super().__init__()
        self.include_deprecations = include_deprecations
        self.lookback_days = lookback_days

    def is_breaking(self, entry: Entry) -> bool:
        categories = [c.lower() for c in entry.categories]
        if any(marker in c for c in categories for marker in BREAKING_CATEGORY_MARKERS):
            return True
        title = entry.title.lower()
        description = entry.description.lower()
        return (
            any(phrase in title for phrase in BREAKING_TITLE_PHRASES)
            or any(phrase in description for phrase in BREAKING_DESCRIPTION_PHRASES)
        )

    def is_deprecation(self, entry: Entry) -> bool:
        if not self.include_deprecations:
            return False
        if any(DEPRECATION_CATEGORY_MARKER in c.lower() for c in entry.categories):
            return True
        return DEPRECATION_STEM in entry.title.lower() or DEPRECATION_STEM in entry.description.lower()

    @staticmethod
    def determine_urgency(entry: Entry) -> Urgency:
        text = entry.searchable_text()
        if any(marker in text for marker in URGENT_MARKERS):
            return Urgency.URGENT
        if any(marker in text for marker in HIGH_MARKERS):
            return Urgency.HIGH
        if DEPRECATION_STEM in text:
            return Urgency.MEDIUM
        return Urgency.LOW

    def classify_entry(self, entry: Entry) -> Optional[ClassifiedEntry]:
        if self.is_breaking(entry):
            change_type = ChangeType.BREAKING_CHANGE
        elif self.is_deprecation(entry):
            change_type = ChangeType.DEPRECATION
        else:
            return None
        return ClassifiedEntry.from_entry(entry, change_type=change_type, urgency=self.determine_urgency(entry))

    def apply_cutoff(self, entries: Iterable[Entry], now: Optional[datetime] = None) -> List[Entry]:
        """Drop entries dated before the lookback window; undated entries stay."""
        cutoff = (ensure_aware(now) or utc_now()) - timedelta(days=self.lookback_days)
        kept = []
        for entry in entries:
            published = entry.published
            if published is not None and published < cutoff:
                continue
            kept.append(entry)
        return kept

    def rank(self, entries: Iterable[ClassifiedEntry]) -> List[ClassifiedEntry]:
        def key(entry: ClassifiedEntry) -> Tuple[int, int, float]:
            tier = entry.urgency.rank if entry.urgency is not None else len(Urgency)
            published = entry.published
            if published is None:
                return (tier, 1, 0.0)
            return (tier, 0, -published.timestamp())

        return sorted(entries, key=key)


def build_classifier(
    settings: ClassificationSettings,
    include_deprecations: Optional[bool] = None,
    lookback_days: Optional[int] = None,
) -> Classifier:
    """Create the configured classifier; explicit arguments override settings."""
    if settings.variant == ClassifierVariant.SIMPLE:
        return SimpleClassifier()

    return UrgencyClassifier(
        include_deprecations=settings.include_deprecations if include_deprecations is None else include_deprecations,
        lookback_days=settings.lookback_days if lookback_days is None else lookback_days,
    )
