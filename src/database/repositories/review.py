"""Critic review repository."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.database.models.review import CriticReview
from src.database.repositories.base import BaseRepository


class CriticReviewRepository(BaseRepository[CriticReview]):
    """Repository for CriticReview entity operations."""

    model = CriticReview

    def __init__(self, session: Session) -> None:
        """Initialize review repository.

        Args:
            session: SQLAlchemy session instance.
        """
        super().__init__(session)

    def get_by_show(self, show_id: str) -> list[CriticReview]:
        """Retrieve the reviews of a show ordered by outlet and critic.

        Args:
            show_id: Production identifier.

        Returns:
            List of reviews.
        """
        stmt = (
            select(CriticReview)
            .where(CriticReview.show_id == show_id)
            .order_by(CriticReview.outlet_id, CriticReview.critic_key)
        )
        return list(self._session.scalars(stmt).all())

    def delete_by_show(self, show_id: str) -> int:
        """Delete every review of a show.

        Args:
            show_id: Production identifier.

        Returns:
            Number of reviews deleted.
        """
        return self.delete_by_field("show_id", show_id)

    def get_show_ids(self) -> list[str]:
        """List shows that have at least one review."""
        stmt = select(CriticReview.show_id).distinct().order_by(CriticReview.show_id)
        return list(self._session.scalars(stmt).all())

