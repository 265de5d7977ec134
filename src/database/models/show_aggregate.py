"""ShowAggregateRecord model.

One consensus score row per show, replaced wholesale on every run.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.models.base import Base, TimestampMixin
from src.etl.aggregation.schemas import ShowAggregate


class ShowAggregateRecord(TimestampMixin, Base):
    """Persisted show aggregate.

    Attributes:
        show_id: Production identifier (primary key).
        weighted_score: Tier-weighted score, NULL while pending.
        review_count: Reviews included.
        confidence: high, medium, low, or pending.
        tiers: Per-tier counts and sums (JSON).
        computed_at: Computation timestamp.
    """

    __tablename__ = "show_aggregates"

    show_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    weighted_score: Mapped[float | None] = mapped_column(Float)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bucket: Mapped[str | None] = mapped_column(String(20))
    thumb: Mapped[str | None] = mapped_column(String(10))
    confidence: Mapped[str] = mapped_column(String(10), nullable=False)
    tiers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_show_aggregates_confidence", "confidence"),)

    @classmethod
    def from_aggregate(cls, aggregate: ShowAggregate) -> "ShowAggregateRecord":
        """Build a row from an aggregate."""
        return cls(
            show_id=aggregate.show_id,
            weighted_score=aggregate.weighted_score,
            review_count=aggregate.review_count,
            bucket=aggregate.bucket,
            thumb=aggregate.thumb,
            confidence=aggregate.confidence,
            tiers=[tier.model_dump() for tier in aggregate.tiers],
            computed_at=aggregate.computed_at,
        )

    def to_aggregate(self) -> ShowAggregate:
        """Convert the row back to an aggregate."""
        return ShowAggregate(
            show_id=self.show_id,
            weighted_score=self.weighted_score,
            review_count=self.review_count,
            bucket=self.bucket,
            thumb=self.thumb,
            confidence=self.confidence,
            tiers=self.tiers or [],
            computed_at=self.computed_at,
        )

    @property
    def is_pending(self) -> bool:
        """True when the show has no score yet."""
        return self.weighted_score is None

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<ShowAggregateRecord(show={self.show_id}, score={self.weighted_score}, "
            f"confidence={self.confidence})>"
        )
