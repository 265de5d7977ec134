"""Aggregation of normalized reviews into per-show consensus scores.

This module provides tools for merging and deduplicating reviews and
computing tier-weighted show scores with a confidence level.

Example:
    >>> from src.etl.aggregation import Aggregator
    >>> aggregator = Aggregator()
    >>> aggregates = aggregator.aggregate(normalized_reviews)
    >>> aggregator.export_json(aggregates, Path("show_scores.json"))
"""

from src.etl.aggregation.aggregator import AggregationStats, Aggregator
from src.etl.aggregation.deduplicator import (
    DeduplicationResult,
    DeduplicationStats,
    Deduplicator,
    MatchType,
    MergeOutcome,
    normalize_url,
)
from src.etl.aggregation.merger import DuplicateConflict, MergeStats, ReviewMerger, precedence_key
from src.etl.aggregation.schemas import ConfidenceLevel, ShowAggregate, TierBreakdown
from src.etl.aggregation.score_calculator import ScoreStats, ShowScoreCalculator, weighted_mean

__all__ = [
    # Main orchestrator
    "Aggregator",
    "AggregationStats",
    # Components
    "Deduplicator",
    "DeduplicationResult",
    "DeduplicationStats",
    "MatchType",
    "MergeOutcome",
    "normalize_url",
    "ReviewMerger",
    "MergeStats",
    "DuplicateConflict",
    "precedence_key",
    "ShowScoreCalculator",
    "ScoreStats",
    "weighted_mean",
    # Schemas
    "ConfidenceLevel",
    "ShowAggregate",
    "TierBreakdown",
]
