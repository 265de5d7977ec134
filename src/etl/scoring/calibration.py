"""Calibration corrector for oracle scores.

Applies per-bucket additive bias offsets derived offline by the
calibration job. Offsets are interpolated piecewise-linearly between
anchors so a one-point change of the raw score never jumps the result:

- Active bucket: anchor at the bucket midpoint carrying its offset.
- Inert bucket (too few samples): offset 0 pinned at both bucket edges.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.etl.exceptions import CalibrationDataError
from src.etl.scoring.buckets import (
    BUCKET_RANGES,
    Bucket,
    bucket_midpoint,
    clamp_score,
    score_to_bucket,
)
from src.settings import CalibrationSettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

INSUFFICIENT_DATA_FLAG = "insufficient_calibration_data"
"""Flag set when the raw score's bucket has no usable offset."""

JSON_INDENT = 2
"""JSON indentation for readable output."""


# =============================================================================
# OFFSET TABLE
# =============================================================================


class CalibrationEntry(BaseModel):
    """Offset for one bucket.

    Attributes:
        offset: Mean (verified - raw) difference, added to raw scores.
        sample_size: Samples the offset was derived from.
    """

    model_config = ConfigDict(frozen=True)

    offset: float = Field(default=0.0, ge=-100.0, le=100.0)
    sample_size: int = Field(default=0, ge=0)


class CalibrationOffsetTable(BaseModel):
    """Per-bucket offsets plus derivation metadata.

    Attributes:
        entries: Offset entry per bucket. Missing buckets are inert.
        generated_at: Derivation timestamp.
    """

    model_config = ConfigDict(frozen=True)

    entries: dict[Bucket, CalibrationEntry] = Field(default_factory=dict)
    generated_at: datetime | None = None

    def entry(self, bucket: Bucket) -> CalibrationEntry:
        """Return the entry for a bucket (empty entry when missing)."""
        return self.entries.get(bucket, CalibrationEntry())

    def is_active(self, bucket: Bucket, min_sample_size: int) -> bool:
        """Check whether a bucket has enough samples to be applied.

        Args:
            bucket: Bucket to check.
            min_sample_size: Minimum sample size.

        Returns:
            True if the bucket offset is usable.
        """
        return self.entry(bucket).sample_size >= min_sample_size

    def save(self, path: Path) -> Path:
        """Write the table as JSON.

        Args:
            path: Target file.

        Returns:
            Path written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=JSON_INDENT))
        logger.info("Saved calibration offsets to %s", path)
        return path

    @classmethod
    def load(cls, path: Path) -> Self:
        """Read a table written by ``save``.

        A missing file yields an empty table (every bucket inert).

        Args:
            path: JSON file.

        Returns:
            Loaded table.

        Raises:
            CalibrationDataError: File exists but is not a valid table.
        """
        if not path.exists():
            logger.warning("No calibration table at %s, oracle scores pass uncorrected", path)
            return cls()
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
            return cls.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise CalibrationDataError(f"Invalid calibration table {path}: {e}") from e

    @classmethod
    def from_offsets(cls, offsets: dict[Bucket, tuple[float, int]]) -> Self:
        """Build a table from ``{bucket: (offset, sample_size)}``."""
        return cls(
            entries={
                bucket: CalibrationEntry(offset=offset, sample_size=size)
                for bucket, (offset, size) in offsets.items()
            },
            generated_at=datetime.now(UTC),
        )


# =============================================================================
# CORRECTOR
# =============================================================================


@dataclass(frozen=True)
class CalibratedScore:
    """Result of applying calibration to one raw score.

    Attributes:
        score: Corrected score (raw score when not applied).
        applied: Whether an offset was applied.
        offset: Interpolated offset (0.0 when not applied).
        flag: Advisory flag, None when applied.
    """

    score: int
    applied: bool
    offset: float = 0.0
    flag: str | None = None


class CalibrationCorrector:
    """Corrects oracle scores with an interpolated offset table."""

    def __init__(
        self,
        table: CalibrationOffsetTable | None = None,
        config: CalibrationSettings | None = None,
    ) -> None:
        """Initialize corrector.

        Args:
            table: Offset table (default: empty, every bucket inert).
            config: Calibration settings (default: global settings).
        """
        self._config = config or settings.calibration
        self._table = table or CalibrationOffsetTable()
        self._anchors = self._build_anchors()

    @classmethod
    def from_settings(cls, config: CalibrationSettings | None = None) -> Self:
        """Load the offset table configured in settings."""
        config = config or settings.calibration
        return cls(CalibrationOffsetTable.load(config.absolute_offsets_path), config)

    @property
    def table(self) -> CalibrationOffsetTable:
        """Offset table in use."""
        return self._table

    # =========================================================================
    # Public API
    # =========================================================================

    def apply(self, raw_score: int) -> CalibratedScore:
        """Correct one raw oracle score.

        Args:
            raw_score: Score in [0, 100].

        Returns:
            CalibratedScore; unchanged and flagged when the bucket is inert.
        """
        bucket = score_to_bucket(raw_score)
        if not self._table.is_active(bucket, self._config.min_sample_size):
            return CalibratedScore(score=raw_score, applied=False, flag=INSUFFICIENT_DATA_FLAG)

        offset = self.offset_at(raw_score)
        return CalibratedScore(
            score=clamp_score(raw_score + offset),
            applied=True,
            offset=offset,
        )

    def offset_at(self, raw_score: float) -> float:
        """Interpolate the offset for a raw score.

        Args:
            raw_score: Score in [0, 100].

        Returns:
            Offset, clamped to the end anchors outside their range.
        """
        anchors = self._anchors
        if raw_score <= anchors[0][0]:
            return anchors[0][1]
        if raw_score >= anchors[-1][0]:
            return anchors[-1][1]

        for (x0, y0), (x1, y1) in zip(anchors, anchors[1:]):
            if x0 <= raw_score <= x1:
                if x1 == x0:
                    return y0
                return y0 + (y1 - y0) * (raw_score - x0) / (x1 - x0)
        return 0.0

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _build_anchors(self) -> list[tuple[float, float]]:
        anchors: list[tuple[float, float]] = []
        for bucket, (low, high) in BUCKET_RANGES.items():
            if self._table.is_active(bucket, self._config.min_sample_size):
                anchors.append((bucket_midpoint(bucket), self._table.entry(bucket).offset))
            else:
                anchors.extend([(float(low), 0.0), (float(high), 0.0)])
        return sorted(anchors, key=lambda anchor: anchor[0])
