"""CriticReview model.

Stores one normalized review per (show, outlet, critic).
"""

from datetime import date
from typing import Any

from sqlalchemy import JSON, Date, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.database.models.base import Base, TimestampMixin
from src.etl.normalization.schemas import NormalizedReview
from src.etl.scoring.schemas import EnsembleResult


class CriticReview(TimestampMixin, Base):
    """Persisted normalized review.

    Attributes:
        id: Primary key.
        show_id: Production identifier.
        outlet_id: Canonical outlet id.
        critic_key: Critic slug ("" when no critic), part of the unique key.
        assigned_score: Score in [0, 100].
        provenance: explicit, ensemble, or inferred.
        flags: Advisory flags (JSON list).
        ensemble: Oracle ensemble details (JSON), if any.
    """

    __tablename__ = "critic_reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    show_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    outlet_id: Mapped[str] = mapped_column(String(20), nullable=False)
    outlet_name: Mapped[str] = mapped_column(String(200), nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    critic_key: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    critic_name: Mapped[str | None] = mapped_column(String(200))
    url: Mapped[str | None] = mapped_column(String(2000))
    publish_date: Mapped[date | None] = mapped_column(Date)

    # Score
    assigned_score: Mapped[int] = mapped_column(Integer, nullable=False)
    original_rating: Mapped[str | None] = mapped_column(String(200))
    bucket: Mapped[str] = mapped_column(String(20), nullable=False)
    thumb: Mapped[str] = mapped_column(String(10), nullable=False)
    designation: Mapped[str | None] = mapped_column(String(30))
    provenance: Mapped[str] = mapped_column(String(20), nullable=False)
    score_method: Mapped[str] = mapped_column(String(20), nullable=False)

    # Text
    pull_quote: Mapped[str | None] = mapped_column(Text)
    excerpt: Mapped[str | None] = mapped_column(Text)

    # Metadata
    source: Mapped[str] = mapped_column(String(100), nullable=False, default="unknown")
    flags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    ensemble: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    __table_args__ = (
        UniqueConstraint("show_id", "outlet_id", "critic_key", name="uq_critic_reviews_identity"),
        Index("idx_critic_reviews_outlet", "outlet_id"),
    )

    @classmethod
    def from_review(cls, review: NormalizedReview) -> "CriticReview":
        """Build a row from a normalized review."""
        data = review.model_dump(mode="json", exclude={"ensemble", "publish_date"})
        return cls(
            **data,
            critic_key=review.critic_slug,
            publish_date=review.publish_date,
            ensemble=review.ensemble.model_dump(mode="json") if review.ensemble else None,
        )

    def to_review(self) -> NormalizedReview:
        """Convert the row back to a normalized review."""
        return NormalizedReview(
            show_id=self.show_id,
            outlet_id=self.outlet_id,
            outlet_name=self.outlet_name,
            tier=self.tier,
            critic_name=self.critic_name,
            url=self.url,
            publish_date=self.publish_date,
            assigned_score=self.assigned_score,
            original_rating=self.original_rating,
            bucket=self.bucket,
            thumb=self.thumb,
            designation=self.designation,
            pull_quote=self.pull_quote,
            excerpt=self.excerpt,
            provenance=self.provenance,
            score_method=self.score_method,
            source=self.source,
            flags=list(self.flags or []),
            ensemble=EnsembleResult.model_validate(self.ensemble) if self.ensemble else None,
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<CriticReview(show={self.show_id}, outlet={self.outlet_id}, "
            f"critic={self.critic_key!r}, score={self.assigned_score})>"
        )
