"""Per-show aggregation orchestrator.

Coordinates deduplication and show scoring, and exports the
resulting aggregates to JSON for the display layer.
"""

import json
import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.etl.aggregation.deduplicator import Deduplicator
from src.etl.aggregation.schemas import ShowAggregate
from src.etl.aggregation.score_calculator import ShowScoreCalculator
from src.etl.normalization.schemas import NormalizedReview
from src.settings import ScoringSettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_OUTPUT_FILENAME = "show_scores.json"
"""Default output filename for JSON export."""

JSON_INDENT = 2
"""JSON indentation for readable output."""


# =============================================================================
# AGGREGATION STATISTICS
# =============================================================================


@dataclass
class AggregationStats:
    """Aggregation run statistics.

    Attributes:
        start_time: Run start timestamp.
        end_time: Run end timestamp.
        input_reviews: Reviews received.
        after_dedup: Reviews after deduplication.
        shows: Shows aggregated.
        pending: Shows left pending.
    """

    start_time: datetime | None = None
    end_time: datetime | None = None
    input_reviews: int = 0
    after_dedup: int = 0
    shows: int = 0
    pending: int = 0

    @property
    def duration_seconds(self) -> float:
        """Calculate run duration in seconds."""
        if not self.start_time or not self.end_time:
            return 0.0
        delta = self.end_time - self.start_time
        return round(delta.total_seconds(), 2)

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for JSON export."""
        return {
            "duration_seconds": self.duration_seconds,
            "input_reviews": self.input_reviews,
            "after_dedup": self.after_dedup,
            "shows": self.shows,
            "pending": self.pending,
        }

    def log_summary(self) -> None:
        """Log aggregation summary."""
        logger.info(
            "Aggregation complete in %.2fs: %d shows (%d pending) from %d reviews (%d after dedup)",
            self.duration_seconds,
            self.shows,
            self.pending,
            self.input_reviews,
            self.after_dedup,
        )


# =============================================================================
# AGGREGATOR
# =============================================================================


class Aggregator:
    """Deduplicates and scores reviews per show.

    Pipeline stages per show:
    1. Deduplicate: merge duplicate reviews
    2. Score: weighted mean, tier breakdown, confidence

    Attributes:
        stats: Run statistics.
        deduplicator: Deduplicator (exposes merge conflicts).
        calculator: Show score calculator.
    """

    def __init__(self, config: ScoringSettings | None = None) -> None:
        """Initialize aggregator with component instances.

        Args:
            config: Scoring settings (default: global settings).
        """
        self.stats = AggregationStats()
        self.deduplicator = Deduplicator()
        self.calculator = ShowScoreCalculator(config or settings.scoring)

    # =========================================================================
    # Public API
    # =========================================================================

    def aggregate_show(
        self,
        show_id: str,
        reviews: Iterable[NormalizedReview],
    ) -> tuple[list[NormalizedReview], ShowAggregate]:
        """Deduplicate and score one show.

        Args:
            show_id: Production identifier.
            reviews: Reviews of the show.

        Returns:
            Tuple of (unique reviews, aggregate).
        """
        reviews = [r for r in reviews if r.show_id == show_id]
        result = self.deduplicator.deduplicate(reviews)
        aggregate = self.calculator.calculate(show_id, result.reviews)

        self.stats.input_reviews += len(reviews)
        self.stats.after_dedup += len(result.reviews)
        self.stats.shows += 1
        if aggregate.is_pending:
            self.stats.pending += 1
        return result.reviews, aggregate

    def aggregate(self, reviews: Iterable[NormalizedReview]) -> list[ShowAggregate]:
        """Aggregate reviews of any number of shows.

        Args:
            reviews: Normalized reviews.

        Returns:
            Aggregates sorted by show id.
        """
        self._start()
        by_show: dict[str, list[NormalizedReview]] = defaultdict(list)
        for review in reviews:
            by_show[review.show_id].append(review)

        aggregates = [self.aggregate_show(show_id, by_show[show_id])[1] for show_id in sorted(by_show)]
        self._finish()
        return aggregates

    def export_json(
        self,
        aggregates: list[ShowAggregate],
        output_path: Path | None = None,
        include_stats: bool = True,
    ) -> Path:
        """Export aggregates to a JSON file.

        Args:
            aggregates: Aggregates to export.
            output_path: Target path (default: processed data dir).
            include_stats: Include run stats in output.

        Returns:
            Path to created JSON file.
        """
        output_path = self._resolve_output_path(output_path)
        data = self._build_export_data(aggregates, include_stats)
        self._write_json(data, output_path)
        return output_path

    @staticmethod
    def to_dicts(aggregates: list[ShowAggregate]) -> list[dict[str, Any]]:
        """Convert aggregates to JSON-ready dictionaries."""
        return [aggregate.model_dump(mode="json") for aggregate in aggregates]

    def reset_stats(self) -> None:
        """Reset statistics of all components for a new batch."""
        self.stats = AggregationStats()
        self.deduplicator.reset_stats()
        self.calculator.reset_stats()

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _start(self) -> None:
        self.reset_stats()
        self.stats.start_time = datetime.now(UTC)
        logger.info("Starting aggregation")

    def _finish(self) -> None:
        self.stats.end_time = datetime.now(UTC)
        self.stats.log_summary()

    @staticmethod
    def _resolve_output_path(output_path: Path | None) -> Path:
        if output_path is None:
            output_path = settings.paths.processed_dir / DEFAULT_OUTPUT_FILENAME
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    def _build_export_data(
        self, aggregates: list[ShowAggregate], include_stats: bool
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            "generated_at": datetime.now(UTC).isoformat(),
            "count": len(aggregates),
            "shows": self.to_dicts(aggregates),
        }
        if include_stats:
            data["stats"] = self.stats.to_dict()
        return data

    @staticmethod
    def _write_json(data: dict[str, Any], output_path: Path) -> None:
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=JSON_INDENT, ensure_ascii=False, default=str)
        logger.info("Exported %d shows to %s", data["count"], output_path)
