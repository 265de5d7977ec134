"""Repositories for the review store.

Usage:
    from src.database.repositories import CriticReviewRepository

    with db.session() as session:
        repo = CriticReviewRepository(session)
        reviews = repo.get_by_show("hamlet-2024")
"""

from src.database.repositories.base import BaseRepository
from src.database.repositories.review import CriticReviewRepository
from src.database.repositories.show_aggregate import ShowAggregateRepository

__all__ = [
    "BaseRepository",
    "CriticReviewRepository",
    "ShowAggregateRepository",
]
