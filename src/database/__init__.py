"""Database package for the critic review store.

Provides connection management, ORM models, repositories, and the
ReviewStore facade.

Usage:
    from src.database import ReviewStore

    store = ReviewStore()
    aggregate = store.get_aggregate("hamlet-2024")
"""

from src.database.connection import DatabaseConnection, close_database, get_database
from src.database.models import Base, CriticReview, ShowAggregateRecord
from src.database.repositories import (
    BaseRepository,
    CriticReviewRepository,
    ShowAggregateRepository,
)
from src.database.store import ReviewStore

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "close_database",
    # Models
    "Base",
    "CriticReview",
    "ShowAggregateRecord",
    # Repositories
    "BaseRepository",
    "CriticReviewRepository",
    "ShowAggregateRepository",
    # Store
    "ReviewStore",
]
