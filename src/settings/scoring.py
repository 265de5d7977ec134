"""Scoring configuration settings.

Show aggregation thresholds, oracle ensemble, calibration,
and validation audit settings.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.settings.base import get_project_root

# =============================================================================
# AGGREGATION SETTINGS
# =============================================================================


class ScoringSettings(BaseSettings):
    """Per-show aggregation configuration.

    Attributes:
        min_reviews_for_score: Below this count a show stays pending.
        high_min_reviews: Total reviews required for high confidence.
        high_min_tier1: Tier-1 reviews required for high confidence.
        medium_min_reviews: Total reviews required for medium confidence.
        medium_min_tier1: Tier-1 reviews required for medium confidence.
        apply_designation_bumps: Add Critics' Pick style bumps to review scores.
    """

    min_reviews_for_score: int = Field(default=5, ge=1, alias="MIN_REVIEWS_FOR_SCORE")
    high_min_reviews: int = Field(default=15, ge=1, alias="CONFIDENCE_HIGH_MIN_REVIEWS")
    high_min_tier1: int = Field(default=3, ge=0, alias="CONFIDENCE_HIGH_MIN_TIER1")
    medium_min_reviews: int = Field(default=6, ge=1, alias="CONFIDENCE_MEDIUM_MIN_REVIEWS")
    medium_min_tier1: int = Field(default=1, ge=0, alias="CONFIDENCE_MEDIUM_MIN_TIER1")
    apply_designation_bumps: bool = Field(default=False, alias="APPLY_DESIGNATION_BUMPS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


# =============================================================================
# ENSEMBLE SETTINGS
# =============================================================================


class EnsembleSettings(BaseSettings):
    """Oracle ensemble configuration.

    Attributes:
        agreement_threshold: Disagreement below this keeps the primary score.
        tiebreak_threshold: Disagreement at or above this calls the tiebreaker.
        max_attempts: Attempts per oracle call (first call included).
        backoff_multiplier: Base wait in seconds for exponential backoff.
        backoff_max: Upper bound for a single backoff wait.
        primary_url: Endpoint of oracle A.
        secondary_url: Endpoint of oracle B.
        tiebreaker_url: Endpoint of oracle C.
        timeout: HTTP timeout per oracle call (seconds).
    """

    agreement_threshold: int = Field(default=10, ge=0, alias="ENSEMBLE_AGREEMENT_THRESHOLD")
    tiebreak_threshold: int = Field(default=20, ge=0, alias="ENSEMBLE_TIEBREAK_THRESHOLD")
    max_attempts: int = Field(default=3, ge=1, le=10, alias="ORACLE_MAX_ATTEMPTS")
    backoff_multiplier: float = Field(default=1.0, ge=0.0, alias="ORACLE_BACKOFF_MULTIPLIER")
    backoff_max: float = Field(default=4.0, ge=0.0, alias="ORACLE_BACKOFF_MAX")
    primary_url: str | None = Field(default=None, alias="ORACLE_PRIMARY_URL")
    secondary_url: str | None = Field(default=None, alias="ORACLE_SECONDARY_URL")
    tiebreaker_url: str | None = Field(default=None, alias="ORACLE_TIEBREAKER_URL")
    timeout: float = Field(default=30.0, gt=0.0, alias="ORACLE_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "EnsembleSettings":
        """Ensure the tiebreak threshold is not below the agreement threshold."""
        if self.tiebreak_threshold < self.agreement_threshold:
            raise ValueError(
                "ENSEMBLE_TIEBREAK_THRESHOLD must be >= ENSEMBLE_AGREEMENT_THRESHOLD"
            )
        return self

    @property
    def is_configured(self) -> bool:
        """Check if all three oracle endpoints are configured."""
        return bool(self.primary_url and self.secondary_url and self.tiebreaker_url)


# =============================================================================
# CALIBRATION SETTINGS
# =============================================================================


class CalibrationSettings(BaseSettings):
    """Calibration offset configuration.

    Attributes:
        min_sample_size: Buckets derived from fewer samples stay inert.
        offsets_path: JSON offset table location (relative to project root).
    """

    min_sample_size: int = Field(default=10, ge=1, alias="CALIBRATION_MIN_SAMPLE_SIZE")
    offsets_path: str = Field(
        default="data/calibration/offsets.json",
        alias="CALIBRATION_OFFSETS_PATH",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def absolute_offsets_path(self) -> Path:
        """Return absolute path to the offsets file."""
        path = Path(self.offsets_path)
        if path.is_absolute():
            return path
        return get_project_root() / path


# =============================================================================
# VALIDATION SETTINGS
# =============================================================================


class ValidationSettings(BaseSettings):
    """Post-batch audit configuration.

    Attributes:
        window_days_before: Allowed days before the opening date.
        window_days_after: Allowed days after the opening date.
        polarity_gap: Minimum score gap for a polarity contradiction.
        uniformity_min_reviews: Minimum reviews before checking uniformity.
    """

    window_days_before: int = Field(default=60, ge=0, alias="REVIEW_WINDOW_DAYS_BEFORE")
    window_days_after: int = Field(default=365, ge=0, alias="REVIEW_WINDOW_DAYS_AFTER")
    polarity_gap: int = Field(default=30, ge=0, le=100, alias="POLARITY_GAP")
    uniformity_min_reviews: int = Field(default=5, ge=2, alias="UNIFORMITY_MIN_REVIEWS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
