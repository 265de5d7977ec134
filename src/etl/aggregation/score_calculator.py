"""Show score calculator.

Computes the tier-weighted mean of review scores:
score = sum(score_i * w_i) / sum(w_i), with tier 1 = 1.0, tier 2 = 0.70,
tier 3 = 0.40. Shows below the minimum review count stay pending.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from src.etl.aggregation.schemas import ConfidenceLevel, ShowAggregate, TierBreakdown
from src.etl.normalization.schemas import TIER_WEIGHTS, Designation, NormalizedReview
from src.etl.scoring.buckets import MAX_SCORE, score_to_bucket, score_to_thumb
from src.settings import ScoringSettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DESIGNATION_BUMPS = MappingProxyType(
    {
        Designation.CRITICS_PICK: 3,
        Designation.CRITICS_CHOICE: 2,
        Designation.RECOMMENDED: 2,
    }
)
"""Points added to a review score for an editorial designation (when enabled)."""

SCORE_PRECISION = 2
"""Decimal places of the weighted show score."""


# =============================================================================
# SCORE STATISTICS
# =============================================================================


@dataclass
class ScoreStats:
    """Statistics for show score calculation.

    Attributes:
        total_shows: Shows processed.
        pending: Shows left without a score.
        high: Shows scored with high confidence.
        medium: Shows scored with medium confidence.
        low: Shows scored with low confidence.
        score_sum: Sum of weighted scores of scored shows.
    """

    total_shows: int = 0
    pending: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    score_sum: float = 0.0

    @property
    def scored(self) -> int:
        """Shows with a numeric score."""
        return self.total_shows - self.pending

    @property
    def avg_score(self) -> float:
        """Average weighted score of scored shows."""
        if self.scored == 0:
            return 0.0
        return round(self.score_sum / self.scored, SCORE_PRECISION)

    def record(self, aggregate: ShowAggregate) -> None:
        """Count one computed aggregate."""
        self.total_shows += 1
        match aggregate.confidence:
            case ConfidenceLevel.PENDING:
                self.pending += 1
            case ConfidenceLevel.HIGH:
                self.high += 1
            case ConfidenceLevel.MEDIUM:
                self.medium += 1
            case _:
                self.low += 1
        if aggregate.weighted_score is not None:
            self.score_sum += aggregate.weighted_score

    def log_summary(self) -> None:
        """Log score calculation statistics."""
        logger.info(
            "Score calculation: %d shows, avg=%.2f (high=%d, medium=%d, low=%d, pending=%d)",
            self.total_shows,
            self.avg_score,
            self.high,
            self.medium,
            self.low,
            self.pending,
        )


# =============================================================================
# FUNCTIONS
# =============================================================================


def weighted_mean(pairs: Iterable[tuple[float, float]]) -> float | None:
    """Weighted mean of (value, weight) pairs rounded to 2 decimals.

    Args:
        pairs: (value, weight) tuples.

    Returns:
        Rounded weighted mean, None when the total weight is zero.
    """
    total = 0.0
    weight_sum = 0.0
    for value, weight in pairs:
        total += value * weight
        weight_sum += weight
    if weight_sum <= 0:
        return None
    return round(total / weight_sum, SCORE_PRECISION)


# =============================================================================
# SCORE CALCULATOR
# =============================================================================


class ShowScoreCalculator:
    """Calculates the consensus score of a show from its reviews.

    Attributes:
        stats: Calculation statistics.
    """

    def __init__(self, config: ScoringSettings | None = None) -> None:
        """Initialize calculator.

        Args:
            config: Thresholds and bump toggle (default: global settings).
        """
        self._config = config or settings.scoring
        self.stats = ScoreStats()

    # =========================================================================
    # Public API
    # =========================================================================

    def calculate(self, show_id: str, reviews: Sequence[NormalizedReview]) -> ShowAggregate:
        """Compute the aggregate of one show.

        Args:
            show_id: Production identifier.
            reviews: Deduplicated reviews of the show.

        Returns:
            ShowAggregate; pending without a score below the minimum count.
        """
        pending = len(reviews) < self._config.min_reviews_for_score
        tiers = self._build_tiers(reviews, with_scores=not pending)
        tier1_count = next((t.count for t in tiers if t.tier == 1), 0)

        if pending:
            aggregate = ShowAggregate(
                show_id=show_id,
                review_count=len(reviews),
                confidence=ConfidenceLevel.PENDING,
                tiers=tiers,
            )
        else:
            score = weighted_mean((self.effective_score(r), r.tier_weight) for r in reviews)
            aggregate = ShowAggregate(
                show_id=show_id,
                weighted_score=score,
                review_count=len(reviews),
                bucket=score_to_bucket(score),
                thumb=score_to_thumb(score),
                confidence=self.determine_confidence(len(reviews), tier1_count),
                tiers=tiers,
            )

        self.stats.record(aggregate)
        logger.debug(
            "Show %s: %d reviews, score=%s, confidence=%s",
            show_id,
            aggregate.review_count,
            aggregate.weighted_score,
            aggregate.confidence,
        )
        return aggregate

    def effective_score(self, review: NormalizedReview) -> int:
        """Review score including the designation bump when enabled.

        Args:
            review: Normalized review.

        Returns:
            Score capped at 100.
        """
        if not self._config.apply_designation_bumps or review.designation is None:
            return review.assigned_score
        bump = DESIGNATION_BUMPS.get(review.designation, 0)
        return min(MAX_SCORE, review.assigned_score + bump)

    def determine_confidence(self, review_count: int, tier1_count: int) -> ConfidenceLevel:
        """Confidence of a scored show.

        Args:
            review_count: Reviews included.
            tier1_count: Reviews from tier-1 outlets.

        Returns:
            high, medium, or low.
        """
        if review_count >= self._config.high_min_reviews and tier1_count >= self._config.high_min_tier1:
            return ConfidenceLevel.HIGH
        if (
            review_count >= self._config.medium_min_reviews
            and tier1_count >= self._config.medium_min_tier1
        ):
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def reset_stats(self) -> None:
        """Reset statistics for a new batch."""
        self.stats = ScoreStats()

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _build_tiers(self, reviews: Sequence[NormalizedReview], with_scores: bool = True) -> list[TierBreakdown]:
        """Per-tier counts; score sums are left out for pending shows."""
        counts = dict.fromkeys(TIER_WEIGHTS, 0)
        sums = dict.fromkeys(TIER_WEIGHTS, 0.0)
        for review in reviews:
            counts[review.tier] += 1
            sums[review.tier] += self.effective_score(review)
        return [
            TierBreakdown(
                tier=tier,
                count=counts[tier],
                score_sum=sums[tier] if with_scores else None,
                weight=weight,
            )
            for tier, weight in TIER_WEIGHTS.items()
        ]
