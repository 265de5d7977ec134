"""Engine and session handling for the review store.

SQLite is used by default; any SQLAlchemy URL can be configured via
DATABASE_URL. Sessions commit on success and roll back on error, so a
show replacement is all or nothing.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.database.models.base import Base
from src.settings import DatabaseSettings, settings

logger = logging.getLogger(__name__)

_MEMORY_MARKERS = (":memory:", "mode=memory")


class DatabaseConnection:
    """Owns the engine and session factory of the review store.

    Example:
        ```python
        db = DatabaseConnection()
        db.create_tables()
        with db.session() as session:
            CriticReviewRepository(session).get_by_show("hamlet-2024")
        ```
    """

    def __init__(self, config: DatabaseSettings | None = None) -> None:
        """Create engine and session factory.

        Args:
            config: Database settings (default: global settings).
        """
        self._config = config or settings.database
        self._engine = self._create_engine()
        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    def _create_engine(self) -> Engine:
        """Create the SQLAlchemy engine.

        In-memory SQLite uses a single static connection so every
        session sees the same database.
        """
        url = self._config.sync_url
        options: dict[str, Any] = {}

        if self._config.is_sqlite:
            options["connect_args"] = {"check_same_thread": False}
            if any(marker in url for marker in _MEMORY_MARKERS):
                options["poolclass"] = StaticPool
            else:
                self._ensure_sqlite_directory(url)
        else:
            options["pool_pre_ping"] = True

        return create_engine(url, **options)

    @staticmethod
    def _ensure_sqlite_directory(url: str) -> None:
        database = make_url(url).database
        if database:
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional session scope.

        Yields:
            SQLAlchemy Session, committed on exit and rolled back on error.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all store tables that do not exist yet."""
        Base.metadata.create_all(self._engine)
        logger.debug("Database tables ensured on %s", self._engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        """Dispose the connection pool and release resources."""
        self._engine.dispose()


# =============================================================================
# SHARED CONNECTION
# =============================================================================

_db: DatabaseConnection | None = None


def get_database() -> DatabaseConnection:
    """Get the shared connection, creating it and its tables on first call."""
    global _db  # noqa: PLW0603
    if _db is None:
        _db = DatabaseConnection()
        _db.create_tables()
    return _db


def close_database() -> None:
    """Close the shared connection pool."""
    global _db  # noqa: PLW0603
    if _db is not None:
        _db.dispose()
        _db = None
        logger.info("Database connections closed")
