"""
app/services package marker.
"""

from app.services.duplicate_resolver import DuplicateResolver
from app.services.import_result_aggregator import ImportResultAggregator
from app.services.progress_channel import DiscardingProgressSink, ProgressChannel, ProgressSink
from app.services.score_normalizer import NormalizedScore, normalize_score

__all__ = [
    "DiscardingProgressSink",
    "DuplicateResolver",
    "ImportResultAggregator",
    "NormalizedScore",
    "ProgressChannel",
    "ProgressSink",
    "normalize_score",
]
