"""Pydantic schemas for per-show aggregation."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.etl.scoring.buckets import Bucket, Thumb

# =============================================================================
# ENUMS
# =============================================================================


class ConfidenceLevel(StrEnum):
    """Confidence in a show score; pending shows have no score yet."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    PENDING = "pending"


# =============================================================================
# TIER BREAKDOWN
# =============================================================================


class TierBreakdown(BaseModel):
    """Review count and score sum for one outlet tier.

    Attributes:
        tier: Outlet tier (1-3).
        count: Reviews from outlets of this tier.
        score_sum: Sum of (effective) review scores, None while the show
            is pending.
        weight: Tier weight applied to each review.
    """

    model_config = ConfigDict(frozen=True)

    tier: int = Field(ge=1, le=3)
    count: int = Field(default=0, ge=0)
    score_sum: float | None = Field(default=0.0, ge=0.0)
    weight: float = Field(ge=0.0, le=1.0)

    @property
    def mean_score(self) -> float | None:
        """Unweighted mean of this tier, None without reviews or sums."""
        if not self.count or self.score_sum is None:
            return None
        return round(self.score_sum / self.count, 2)


# =============================================================================
# SHOW AGGREGATE
# =============================================================================


class ShowAggregate(BaseModel):
    """Consensus score of one production.

    Recomputed wholesale from the current review set on every run.

    Attributes:
        show_id: Production identifier.
        weighted_score: Tier-weighted mean, None while pending.
        review_count: Reviews included.
        bucket: Bucket of the weighted score.
        thumb: Thumb of the weighted score.
        confidence: high, medium, low, or pending.
        tiers: Per-tier counts and sums.
        computed_at: Computation timestamp.
    """

    model_config = ConfigDict(frozen=True)

    show_id: str = Field(min_length=1)
    weighted_score: float | None = Field(default=None, ge=0.0, le=100.0)
    review_count: int = Field(default=0, ge=0)
    bucket: Bucket | None = None
    thumb: Thumb | None = None
    confidence: ConfidenceLevel = ConfidenceLevel.PENDING
    tiers: list[TierBreakdown] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def validate_pending(self) -> Self:
        """Pending shows never carry a numeric score."""
        is_pending = self.confidence == ConfidenceLevel.PENDING
        if is_pending and self.weighted_score is not None:
            raise ValueError("Pending aggregate must not have a weighted score")
        if not is_pending and self.weighted_score is None:
            raise ValueError(f"{self.confidence} aggregate requires a weighted score")
        return self

    @property
    def is_pending(self) -> bool:
        """True when the show does not have enough reviews for a score."""
        return self.confidence == ConfidenceLevel.PENDING

    def tier(self, tier: int) -> TierBreakdown | None:
        """Return the breakdown of one tier."""
        return next((t for t in self.tiers if t.tier == tier), None)
