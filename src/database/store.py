"""Review store facade.

Reads and writes normalized reviews and show aggregates. A show's
reviews and its aggregate are always replaced together in one
transaction, so readers never see a partially updated show.
"""

import logging
from collections.abc import Sequence

from src.database.connection import DatabaseConnection, get_database
from src.database.models import CriticReview, ShowAggregateRecord
from src.database.repositories import CriticReviewRepository, ShowAggregateRepository
from src.etl.aggregation.schemas import ShowAggregate
from src.etl.normalization.schemas import NormalizedReview

logger = logging.getLogger(__name__)


class ReviewStore:
    """Persistent store of reviews and aggregates."""

    def __init__(self, db: DatabaseConnection | None = None) -> None:
        """Initialize store.

        Args:
            db: Database connection (default: shared connection).
        """
        self._db = db or get_database()

    def load_reviews(self, show_id: str) -> list[NormalizedReview]:
        """Load the stored reviews of a show.

        Args:
            show_id: Production identifier.

        Returns:
            Reviews ordered by outlet and critic.
        """
        with self._db.session() as session:
            rows = CriticReviewRepository(session).get_by_show(show_id)
            return [row.to_review() for row in rows]

    def load_all_reviews(self) -> list[NormalizedReview]:
        """Load every stored review."""
        with self._db.session() as session:
            repo = CriticReviewRepository(session)
            return [row.to_review() for show_id in repo.get_show_ids() for row in repo.get_by_show(show_id)]

    def replace_show(
        self,
        show_id: str,
        reviews: Sequence[NormalizedReview],
        aggregate: ShowAggregate,
    ) -> None:
        """Atomically replace the reviews and aggregate of a show.

        Args:
            show_id: Production identifier.
            reviews: Complete deduplicated review set of the show.
            aggregate: Aggregate computed from ``reviews``.

        Raises:
            ValueError: A review or the aggregate belongs to another show.
        """
        if aggregate.show_id != show_id or any(r.show_id != show_id for r in reviews):
            raise ValueError(f"Records do not all belong to show {show_id}")

        with self._db.session() as session:
            review_repo = CriticReviewRepository(session)
            removed = review_repo.delete_by_show(show_id)
            review_repo.create_many([CriticReview.from_review(r) for r in reviews])
            ShowAggregateRepository(session).replace(ShowAggregateRecord.from_aggregate(aggregate))

        logger.debug("Stored show %s: %d reviews (replaced %d)", show_id, len(reviews), removed)

    def get_aggregate(self, show_id: str) -> ShowAggregate | None:
        """Load the aggregate of a show, None if never computed."""
        with self._db.session() as session:
            record = ShowAggregateRepository(session).get_by_show_id(show_id)
            return record.to_aggregate() if record else None

    def list_aggregates(self) -> list[ShowAggregate]:
        """Load every aggregate ordered by show id."""
        with self._db.session() as session:
            return [record.to_aggregate() for record in ShowAggregateRepository(session).get_all_ordered()]
