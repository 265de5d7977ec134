"""
Base repository with generic CRUD operations.

Provides a reusable base class for the review store repositories.
"""

from datetime import date, datetime
from typing import Generic, TypeVar

from sqlalchemy import delete
from sqlalchemy.orm import Session

from src.database.models.base import Base

# Type alias for valid database field values
FieldValue = str | int | float | bool | date | datetime | None

# Generic type variable bound to Base model
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic repository providing common CRUD operations.

    Attributes:
        model: SQLAlchemy model class.
        session: Database session.
    """

    model: type[ModelT]

    def __init__(self, session: Session) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session instance.
        """
        self._session = session

    @property
    def session(self) -> Session:
        """Get the database session."""
        return self._session

    def get_by_id(self, entity_id: int | str) -> ModelT | None:
        """Retrieve entity by primary key.

        Args:
            entity_id: Primary key value.

        Returns:
            Entity instance or None if not found.
        """
        return self._session.get(self.model, entity_id)

    def delete_by_field(self, field_name: str, value: FieldValue) -> int:
        """Delete all entities matching a field value.

        Args:
            field_name: Name of the field to filter on.
            value: Value to match.

        Returns:
            Number of rows deleted.
        """
        field = getattr(self.model, field_name)
        result = self._session.execute(delete(self.model).where(field == value))
        self._session.flush()
        return result.rowcount or 0

    def create(self, entity: ModelT) -> ModelT:
        """Persist a new entity.

        Args:
            entity: Entity instance to persist.

        Returns:
            Persisted entity with generated ID.
        """
        self._session.add(entity)
        self._session.flush()
        return entity

    def create_many(self, entities: list[ModelT]) -> list[ModelT]:
        """Persist multiple entities in batch.

        Args:
            entities: List of entity instances.

        Returns:
            List of persisted entities.
        """
        self._session.add_all(entities)
        self._session.flush()
        return entities
