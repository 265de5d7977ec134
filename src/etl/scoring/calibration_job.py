"""Offline calibration job.

Compares raw oracle scores against verified explicit scores to derive
per-bucket offsets and an accuracy report (MAE, RMSE, bias, per-outlet
bias). Runs separately from the scoring pipeline; the offset table it
writes is loaded at pipeline start.
"""

import json
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.etl.exceptions import CalibrationDataError
from src.etl.scoring.buckets import BUCKET_RANGES, Bucket, score_to_bucket
from src.etl.scoring.calibration import CalibrationOffsetTable
from src.settings import CalibrationSettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_OUTLET_SAMPLES = 2
"""Outlets with fewer samples are left out of the per-outlet bias."""

METRIC_PRECISION = 2
"""Decimal places kept for error metrics."""


# =============================================================================
# SAMPLE SCHEMA
# =============================================================================


class CalibrationSample(BaseModel):
    """One oracle judgment paired with a verified score.

    Attributes:
        raw_score: Uncorrected oracle score.
        true_score: Verified explicit score for the same review.
        outlet_id: Outlet of the review, for per-outlet bias.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    raw_score: int = Field(ge=0, le=100)
    true_score: int = Field(ge=0, le=100)
    outlet_id: str | None = None

    @property
    def delta(self) -> int:
        """Oracle error: raw minus verified."""
        return self.raw_score - self.true_score


# =============================================================================
# REPORT
# =============================================================================


@dataclass
class CalibrationReport:
    """Accuracy of oracle scores against verified scores.

    Attributes:
        count: Samples compared.
        mae: Mean absolute error.
        rmse: Root mean squared error.
        mean_bias: Mean (raw - verified); positive means oracles score high.
        std_dev: Standard deviation of the error.
        bucket_accuracy: Percent of samples landing in the verified bucket.
        outlet_bias: Mean bias and count per outlet.
        bucket_sizes: Samples per raw-score bucket.
    """

    count: int = 0
    mae: float = 0.0
    rmse: float = 0.0
    mean_bias: float = 0.0
    std_dev: float = 0.0
    bucket_accuracy: float = 0.0
    outlet_bias: dict[str, dict[str, float]] = field(default_factory=dict)
    bucket_sizes: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON export."""
        return {
            "count": self.count,
            "mae": self.mae,
            "rmse": self.rmse,
            "mean_bias": self.mean_bias,
            "std_dev": self.std_dev,
            "bucket_accuracy": self.bucket_accuracy,
            "outlet_bias": self.outlet_bias,
            "bucket_sizes": self.bucket_sizes,
        }

    def log_summary(self) -> None:
        """Log calibration report summary."""
        logger.info(
            "Calibration: %d samples, MAE=%.2f, RMSE=%.2f, bias=%+.2f, std=%.2f, bucket accuracy=%.1f%%",
            self.count,
            self.mae,
            self.rmse,
            self.mean_bias,
            self.std_dev,
            self.bucket_accuracy,
        )
        for outlet, data in sorted(self.outlet_bias.items()):
            logger.debug("  %s: bias=%+.2f (n=%d)", outlet, data["mean_bias"], int(data["count"]))


# =============================================================================
# DERIVATION
# =============================================================================


def derive_offsets(samples: list[CalibrationSample]) -> CalibrationOffsetTable:
    """Derive per-bucket offsets from samples.

    Samples are grouped by the bucket of their raw score. The offset is
    the mean correction (verified - raw), so adding it removes the bias.

    Args:
        samples: Calibration samples.

    Returns:
        Offset table with sample sizes (buckets without samples get size 0).
    """
    grouped: dict[Bucket, list[int]] = defaultdict(list)
    for sample in samples:
        grouped[score_to_bucket(sample.raw_score)].append(-sample.delta)

    offsets: dict[Bucket, tuple[float, int]] = {}
    for bucket in BUCKET_RANGES:
        corrections = grouped.get(bucket, [])
        mean = sum(corrections) / len(corrections) if corrections else 0.0
        offsets[bucket] = (round(mean, METRIC_PRECISION), len(corrections))
    return CalibrationOffsetTable.from_offsets(offsets)


def build_report(samples: list[CalibrationSample]) -> CalibrationReport:
    """Compute accuracy metrics for samples.

    Args:
        samples: Calibration samples.

    Returns:
        CalibrationReport (all zero when there are no samples).
    """
    if not samples:
        return CalibrationReport()

    count = len(samples)
    deltas = [sample.delta for sample in samples]
    mean_bias = sum(deltas) / count
    mae = sum(abs(d) for d in deltas) / count
    rmse = math.sqrt(sum(d * d for d in deltas) / count)
    std_dev = math.sqrt(sum((d - mean_bias) ** 2 for d in deltas) / count)
    bucket_hits = sum(
        1 for s in samples if score_to_bucket(s.raw_score) == score_to_bucket(s.true_score)
    )

    return CalibrationReport(
        count=count,
        mae=round(mae, METRIC_PRECISION),
        rmse=round(rmse, METRIC_PRECISION),
        mean_bias=round(mean_bias, METRIC_PRECISION),
        std_dev=round(std_dev, METRIC_PRECISION),
        bucket_accuracy=round(bucket_hits / count * 100, 1),
        outlet_bias=_outlet_bias(samples),
        bucket_sizes=_bucket_sizes(samples),
    )


def _outlet_bias(samples: list[CalibrationSample]) -> dict[str, dict[str, float]]:
    by_outlet: dict[str, list[int]] = defaultdict(list)
    for sample in samples:
        if sample.outlet_id:
            by_outlet[sample.outlet_id].append(sample.delta)

    return {
        outlet: {
            "count": len(deltas),
            "mean_bias": round(sum(deltas) / len(deltas), METRIC_PRECISION),
        }
        for outlet, deltas in by_outlet.items()
        if len(deltas) >= MIN_OUTLET_SAMPLES
    }


def _bucket_sizes(samples: list[CalibrationSample]) -> dict[str, int]:
    sizes = {str(bucket): 0 for bucket in BUCKET_RANGES}
    for sample in samples:
        sizes[str(score_to_bucket(sample.raw_score))] += 1
    return sizes


# =============================================================================
# JOB
# =============================================================================


class CalibrationJob:
    """Loads samples, derives offsets, writes the table, reports accuracy."""

    def __init__(self, config: CalibrationSettings | None = None) -> None:
        self._config = config or settings.calibration

    def run(
        self,
        samples_path: Path,
        output_path: Path | None = None,
    ) -> tuple[CalibrationOffsetTable, CalibrationReport]:
        """Execute the calibration job.

        Args:
            samples_path: JSON file with a list of samples
                (or ``{"samples": [...]}``).
            output_path: Offset table target (default: configured path).

        Returns:
            Tuple of (written table, accuracy report).

        Raises:
            CalibrationDataError: Sample file missing or invalid.
        """
        samples = self.load_samples(samples_path)
        logger.info("Deriving calibration offsets from %d samples", len(samples))

        table = derive_offsets(samples)
        report = build_report(samples)

        for bucket in BUCKET_RANGES:
            entry = table.entry(bucket)
            state = "active" if table.is_active(bucket, self._config.min_sample_size) else "inert"
            logger.info("  %s: offset=%+.2f (n=%d, %s)", bucket, entry.offset, entry.sample_size, state)

        table.save(output_path or self._config.absolute_offsets_path)
        report.log_summary()
        return table, report

    @staticmethod
    def load_samples(path: Path) -> list[CalibrationSample]:
        """Read calibration samples from JSON.

        Args:
            path: Sample file.

        Returns:
            Parsed samples.

        Raises:
            CalibrationDataError: File missing or invalid.
        """
        if not path.exists():
            raise CalibrationDataError(f"Sample file not found: {path}")
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
            records = data.get("samples", []) if isinstance(data, dict) else data
            return [CalibrationSample.model_validate(record) for record in records]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise CalibrationDataError(f"Invalid sample file {path}: {e}") from e
