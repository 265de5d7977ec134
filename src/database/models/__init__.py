"""SQLAlchemy ORM models for the review store.

Usage:
    from src.database.models import Base, CriticReview, ShowAggregateRecord

Tables:
    - critic_reviews: Normalized reviews, unique per (show, outlet, critic)
    - show_aggregates: One consensus score per show
"""

from src.database.models.base import Base, TimestampMixin
from src.database.models.review import CriticReview
from src.database.models.show_aggregate import ShowAggregateRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "CriticReview",
    "ShowAggregateRecord",
]
