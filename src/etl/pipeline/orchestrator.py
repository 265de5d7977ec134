"""Pipeline orchestration - batch scoring, merge, and persistence.

Runs one batch through the full chain for every show:
    1. Normalize raw reviews (parse, ensemble, sentiment)
    2. Merge with the reviews already stored for the show
    3. Deduplicate and compute the show aggregate
    4. Validate (advisory)
    5. Replace reviews and aggregate in one transaction

Shows run concurrently up to PIPELINE_MAX_WORKERS. A failing show is
logged and skipped; configuration errors abort the whole run.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from src.database.store import ReviewStore
from src.etl.aggregation import Aggregator, ShowAggregate
from src.etl.exceptions import JobCancelledError, OutletConfigurationError
from src.etl.normalization import (
    NormalizationStats,
    NormalizedReview,
    OutletResolver,
    RatingParser,
    Rejection,
    ReviewNormalizer,
    SentimentInferencer,
)
from src.etl.pipeline.batch import ReviewBatch, ShowInput
from src.etl.pipeline.job import BatchJob
from src.etl.scoring import (
    CalibrationCorrector,
    EnsembleScorer,
    ScoringOracle,
    build_http_oracles,
)
from src.etl.validation import (
    AuditReport,
    ReviewValidator,
    ValidationReport,
    build_audit_report,
)
from src.settings import settings

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================


class ShowStatus(StrEnum):
    """Outcome of one show in a batch."""

    WRITTEN = "written"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ShowOutcome:
    """Result of processing one show.

    Attributes:
        show_id: Production identifier.
        status: Written, failed, or skipped after cancellation.
        aggregate: Aggregate written to the store.
        reviews: Deduplicated reviews written to the store.
        rejections: Reviews that could not be scored.
        validation: Advisory findings for the show.
        added: Incoming reviews new to the store.
        updated: Incoming reviews merged into a stored duplicate.
        unchanged: Incoming reviews already fully stored.
        error: Failure message.
    """

    show_id: str
    status: ShowStatus
    aggregate: ShowAggregate | None = None
    reviews: list[NormalizedReview] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)
    validation: ValidationReport = field(default_factory=ValidationReport)
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    error: str | None = None


@dataclass
class PipelineStats:
    """Statistics for one pipeline run."""

    start_time: datetime | None = None
    end_time: datetime | None = None
    shows_total: int = 0
    shows_written: int = 0
    shows_failed: int = 0
    shows_skipped: int = 0
    reviews_added: int = 0
    reviews_updated: int = 0
    reviews_unchanged: int = 0
    normalization: NormalizationStats = field(default_factory=NormalizationStats)

    @property
    def duration_seconds(self) -> float:
        """Calculate run duration in seconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0

    def record(self, outcome: ShowOutcome) -> None:
        """Count one show outcome."""
        match outcome.status:
            case ShowStatus.WRITTEN:
                self.shows_written += 1
                self.reviews_added += outcome.added
                self.reviews_updated += outcome.updated
                self.reviews_unchanged += outcome.unchanged
            case ShowStatus.FAILED:
                self.shows_failed += 1
            case ShowStatus.SKIPPED:
                self.shows_skipped += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for JSON export."""
        return {
            "duration_seconds": round(self.duration_seconds, 2),
            "shows_total": self.shows_total,
            "shows_written": self.shows_written,
            "shows_failed": self.shows_failed,
            "shows_skipped": self.shows_skipped,
            "reviews_added": self.reviews_added,
            "reviews_updated": self.reviews_updated,
            "reviews_unchanged": self.reviews_unchanged,
            "normalization": self.normalization.to_dict(),
        }

    def log_summary(self) -> None:
        """Log pipeline statistics summary."""
        logger.info("=" * 60)
        logger.info("PIPELINE SUMMARY")
        logger.info("=" * 60)
        logger.info("Duration: %.2fs", self.duration_seconds)
        logger.info(
            "Shows: %d written, %d failed, %d skipped (of %d)",
            self.shows_written,
            self.shows_failed,
            self.shows_skipped,
            self.shows_total,
        )
        logger.info(
            "Reviews: %d added, %d updated, %d unchanged",
            self.reviews_added,
            self.reviews_updated,
            self.reviews_unchanged,
        )
        self.normalization.log_summary()
        logger.info("=" * 60)


@dataclass
class PipelineResult:
    """Pipeline execution result container.

    Attributes:
        job: Job handle of the run.
        outcomes: Per-show outcomes in batch order.
        validation: Merged advisory findings.
        audit: Audit report over the reviews written by the run.
        stats: Run statistics.
    """

    job: BatchJob
    outcomes: list[ShowOutcome] = field(default_factory=list)
    validation: ValidationReport = field(default_factory=ValidationReport)
    audit: AuditReport = field(default_factory=AuditReport)
    stats: PipelineStats = field(default_factory=PipelineStats)

    @property
    def aggregates(self) -> list[ShowAggregate]:
        """Aggregates of written shows."""
        return [o.aggregate for o in self.outcomes if o.aggregate is not None]

    @property
    def rejections(self) -> list[Rejection]:
        """Rejected reviews across all shows."""
        return [r for o in self.outcomes for r in o.rejections]

    @property
    def failures(self) -> dict[str, str]:
        """Failure message per failed show."""
        return {o.show_id: o.error or "" for o in self.outcomes if o.status == ShowStatus.FAILED}


# =============================================================================
# PIPELINE
# =============================================================================


class ReviewPipeline:
    """Scores, merges, and stores review batches."""

    def __init__(
        self,
        store: ReviewStore | None = None,
        resolver: OutletResolver | None = None,
        ensemble: EnsembleScorer | None = None,
        corrector: CalibrationCorrector | None = None,
        aggregator: Aggregator | None = None,
        validator: ReviewValidator | None = None,
        max_workers: int | None = None,
        oracles: Sequence[ScoringOracle] = (),
    ) -> None:
        """Initialize pipeline.

        Args:
            store: Review store (default: shared database).
            resolver: Outlet registry.
            ensemble: Oracle ensemble; disabled when None.
            corrector: Calibration for ensemble scores.
            aggregator: Dedup and show scoring.
            validator: Advisory checks.
            max_workers: Shows processed concurrently (default: settings).
            oracles: Oracles closed by ``aclose``.
        """
        self._store = store or ReviewStore()
        self._resolver = resolver or OutletResolver()
        self._parser = RatingParser()
        self._sentiment = SentimentInferencer()
        self._ensemble = ensemble
        self._corrector = corrector or CalibrationCorrector()
        self._aggregator = aggregator or Aggregator()
        self._validator = validator or ReviewValidator(sentiment=self._sentiment)
        self._max_workers = max_workers or settings.pipeline.max_workers
        self._oracles = tuple(oracles)

    @property
    def aggregator(self) -> Aggregator:
        """Aggregator holding the dedup and scoring stats of the last run."""
        return self._aggregator

    @classmethod
    def from_settings(cls, store: ReviewStore | None = None, max_workers: int | None = None) -> Self:
        """Build a pipeline from global settings.

        Ensemble scoring is enabled only when all three oracle URLs are set.
        """
        oracles = build_http_oracles(settings.ensemble)
        ensemble = EnsembleScorer(*oracles) if oracles else None
        return cls(
            store=store,
            ensemble=ensemble,
            corrector=CalibrationCorrector.from_settings(),
            max_workers=max_workers,
            oracles=oracles or (),
        )

    # =========================================================================
    # Public API
    # =========================================================================

    async def run(self, batch: ReviewBatch, job: BatchJob | None = None) -> PipelineResult:
        """Process every show of a batch.

        Args:
            batch: Validated batch input.
            job: Job handle used for cancellation (default: new job).

        Returns:
            PipelineResult with per-show outcomes, validation and audit.

        Raises:
            OutletConfigurationError: Systemic configuration failure.
        """
        job = job or BatchJob()
        result = PipelineResult(job=job)
        result.stats.start_time = datetime.now(UTC)
        result.stats.shows_total = len(batch.shows)
        job.start()
        self._aggregator.reset_stats()
        self._aggregator.stats.start_time = result.stats.start_time
        logger.info("Job %s: %d shows, %d reviews", job.job_id, len(batch.shows), batch.review_count)

        semaphore = asyncio.Semaphore(self._max_workers)
        tasks = [asyncio.create_task(self._run_show(show, job, semaphore, result.stats)) for show in batch.shows]
        try:
            outcomes = await asyncio.gather(*tasks)
        except OutletConfigurationError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            job.finish(failed=True)
            logger.error("Job %s aborted: outlet configuration error", job.job_id)
            raise

        for outcome in outcomes:
            result.outcomes.append(outcome)
            result.validation.extend(outcome.validation)
            result.stats.record(outcome)

        result.audit = build_audit_report([r for o in result.outcomes for r in o.reviews])
        job.finish()
        result.stats.end_time = datetime.now(UTC)
        self._aggregator.stats.end_time = result.stats.end_time

        result.stats.log_summary()
        result.validation.log_summary()
        result.audit.log_summary()
        return result

    async def aclose(self) -> None:
        """Close oracle clients."""
        for oracle in self._oracles:
            await oracle.aclose()

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _run_show(
        self,
        show: ShowInput,
        job: BatchJob,
        semaphore: asyncio.Semaphore,
        stats: PipelineStats,
    ) -> ShowOutcome:
        """Process one show, isolating its failures."""
        async with semaphore:
            try:
                job.ensure_active()
                return await self._process_show(show, job, stats)
            except JobCancelledError:
                logger.info("Show %s skipped: job %s cancelled", show.show_id, job.job_id)
                return ShowOutcome(show_id=show.show_id, status=ShowStatus.SKIPPED)
            except OutletConfigurationError:
                raise
            except Exception as e:
                logger.error("Show %s failed: %s", show.show_id, e)
                return ShowOutcome(show_id=show.show_id, status=ShowStatus.FAILED, error=str(e))

    async def _process_show(self, show: ShowInput, job: BatchJob, stats: PipelineStats) -> ShowOutcome:
        """Normalize, merge, aggregate, validate, and store one show."""
        normalizer = ReviewNormalizer(
            resolver=self._resolver,
            parser=self._parser,
            sentiment=self._sentiment,
            ensemble=self._ensemble,
            corrector=self._corrector,
        )
        batch = await normalizer.normalize_many(show.reviews)
        stats.normalization.merge(normalizer.stats)

        existing = self._store.load_reviews(show.show_id)
        merged = self._aggregator.deduplicator.merge_with_existing(existing, batch.reviews)
        reviews, aggregate = self._aggregator.aggregate_show(show.show_id, merged.reviews)
        validation = self._validator.validate_show(show.show_id, reviews, show.opening_date)
        reviews = self._validator.flag_reviews(reviews, validation)

        job.ensure_active()
        self._store.replace_show(show.show_id, reviews, aggregate)

        logger.info(
            "Show %s: %d reviews, score=%s, confidence=%s",
            show.show_id,
            aggregate.review_count,
            aggregate.weighted_score,
            aggregate.confidence,
        )
        return ShowOutcome(
            show_id=show.show_id,
            status=ShowStatus.WRITTEN,
            aggregate=aggregate,
            reviews=reviews,
            rejections=batch.rejections,
            validation=validation,
            added=merged.added,
            updated=merged.updated,
            unchanged=merged.unchanged,
        )
