"""Shared pytest fixtures for the review pipeline tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.database import DatabaseConnection, ReviewStore
from src.settings import DatabaseSettings


@pytest.fixture(autouse=True, scope="function")
def mock_env_for_tests(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reproducible environment for every test."""
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

    # Ensemble scoring stays off unless a test wires oracles explicitly
    for name in ("ORACLE_PRIMARY_URL", "ORACLE_SECONDARY_URL", "ORACLE_TIEBREAKER_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def override_project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point data, calibration and log paths to a temporary root."""
    monkeypatch.setattr("src.settings.base._PROJECT_ROOT", tmp_path)
    return tmp_path


@pytest.fixture
def db() -> Generator[DatabaseConnection, None, None]:
    """In-memory SQLite database with tables created."""
    connection = DatabaseConnection(DatabaseSettings(url="sqlite:///:memory:"))
    connection.create_tables()
    yield connection
    connection.dispose()


@pytest.fixture
def store(db: DatabaseConnection) -> ReviewStore:
    """Review store on the in-memory database."""
    return ReviewStore(db)


@pytest.fixture
def shared_database(db: DatabaseConnection, monkeypatch: pytest.MonkeyPatch) -> DatabaseConnection:
    """Install the in-memory database as the shared connection."""
    monkeypatch.setattr("src.database.connection._db", db)
    return db
