"""Show aggregate repository."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.database.models.show_aggregate import ShowAggregateRecord
from src.database.repositories.base import BaseRepository


class ShowAggregateRepository(BaseRepository[ShowAggregateRecord]):
    """Repository for ShowAggregateRecord entity operations.

    Aggregates are never updated in place: ``replace`` deletes the
    previous row and inserts the recomputed one.
    """

    model = ShowAggregateRecord

    def __init__(self, session: Session) -> None:
        """Initialize aggregate repository.

        Args:
            session: SQLAlchemy session instance.
        """
        super().__init__(session)

    def get_by_show_id(self, show_id: str) -> ShowAggregateRecord | None:
        """Retrieve the aggregate of a show."""
        return self.get_by_id(show_id)

    def replace(self, record: ShowAggregateRecord) -> ShowAggregateRecord:
        """Replace the aggregate of a show.

        Args:
            record: Recomputed aggregate row.

        Returns:
            Persisted row.
        """
        self.delete_by_field("show_id", record.show_id)
        return self.create(record)

    def get_all_ordered(self) -> list[ShowAggregateRecord]:
        """List every aggregate ordered by show id."""
        stmt = select(ShowAggregateRecord).order_by(ShowAggregateRecord.show_id)
        return list(self._session.scalars(stmt).all())
