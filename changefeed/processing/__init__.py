"""
Changefeed Processing Module
============================

Entry transforms, pipeline composition, breaking-change classification and
cross-source aggregation.
"""

from .pipeline import EntryPipeline
from .classifier import Classifier, SimpleClassifier, UrgencyClassifier, build_classifier
from .aggregator import ChangelogAggregator, AggregateResult

__all__ = [
    'EntryPipeline',
    'Classifier',
    'SimpleClassifier',
    'UrgencyClassifier',
    'build_classifier',
    'ChangelogAggregator',
    'AggregateResult',
]
