"""Centralized configuration for the critic review scoring pipeline.

Every section has safe defaults so the pipeline runs without a .env file.
Oracle endpoints and the database URL are opt-in overrides read from
environment variables (.env file).

Usage:
    from src.settings import settings

    settings.scoring.min_reviews_for_score
    settings.database.sync_url
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.settings.base import LoggingSettings, PathsSettings, PipelineSettings
from src.settings.database import DatabaseSettings
from src.settings.scoring import (
    CalibrationSettings,
    EnsembleSettings,
    ScoringSettings,
    ValidationSettings,
)

__all__ = [
    # Main
    "Settings",
    "settings",
    # Base
    "PathsSettings",
    "LoggingSettings",
    "PipelineSettings",
    # Database
    "DatabaseSettings",
    # Scoring
    "ScoringSettings",
    "EnsembleSettings",
    "CalibrationSettings",
    "ValidationSettings",
]


# =============================================================================
# GLOBAL SETTINGS
# =============================================================================


class Settings(BaseSettings):
    """Global pipeline settings, one attribute per section.

    Access via the singleton: `from src.settings import settings`
    """

    # Paths, logging and execution
    paths: PathsSettings = Field(default_factory=PathsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    # Storage
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    # Scoring
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    ensemble: EnsembleSettings = Field(default_factory=EnsembleSettings)
    calibration: CalibrationSettings = Field(default_factory=CalibrationSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

settings = Settings()
