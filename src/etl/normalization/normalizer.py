"""Review normalizer.

Drives one raw review through the scoring chain and produces a
NormalizedReview or a rejection:

1. Explicit rating parsed by the RatingParser (provenance explicit)
2. Oracle ensemble on the excerpt, then calibration (provenance ensemble)
3. Keyword sentiment on the excerpt (provenance inferred)
4. Nothing matched: RatingParseError, never a default number
"""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from src.etl.exceptions import OutletResolutionError, RatingParseError, ReviewRejectedError
from src.etl.normalization.outlets import UNKNOWN_OUTLET_FLAG, OutletResolver
from src.etl.normalization.rating_parser import (
    RatingParser,
    detect_designation,
    is_designation_only,
)
from src.etl.normalization.schemas import (
    NormalizedReview,
    RawReview,
    ScoreMethod,
    ScoreProvenance,
)
from src.etl.normalization.sentiment import SentimentInferencer
from src.etl.scoring.calibration import CalibrationCorrector
from src.etl.scoring.ensemble import EnsembleScorer

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

UNPARSED_RATING_FLAG = "unparsed_rating"
"""Flag set when a printed rating matched no strategy."""

ENSEMBLE_REVIEW_FLAG = "ensemble_flagged"
"""Flag set when the ensemble asks for a human check."""


# =============================================================================
# RESULTS AND STATISTICS
# =============================================================================


@dataclass(frozen=True)
class Rejection:
    """A review that could not be scored.

    Attributes:
        show_id: Production identifier.
        outlet: Raw outlet string.
        critic_name: Critic display name.
        reason: Machine-readable reason (parse_failure, oracle_failure,
            invalid_outlet).
        message: Human-readable detail.
    """

    show_id: str
    outlet: str
    critic_name: str | None
    reason: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert rejection to dictionary for JSON export."""
        return {
            "show_id": self.show_id,
            "outlet": self.outlet,
            "critic_name": self.critic_name,
            "reason": self.reason,
            "message": self.message,
        }


@dataclass
class NormalizationStats:
    """Statistics for normalization.

    Attributes:
        total: Raw reviews received.
        by_provenance: Normalized reviews per provenance.
        rejected: Reviews rejected.
        rejection_reasons: Rejections per reason.
        unknown_outlets: Reviews from outlets missing in the registry.
    """

    total: int = 0
    by_provenance: Counter[str] = field(default_factory=Counter)
    rejected: int = 0
    rejection_reasons: Counter[str] = field(default_factory=Counter)
    unknown_outlets: int = 0

    @property
    def normalized(self) -> int:
        """Reviews normalized successfully."""
        return sum(self.by_provenance.values())

    def merge(self, other: "NormalizationStats") -> None:
        """Add another stats object into this one."""
        self.total += other.total
        self.by_provenance.update(other.by_provenance)
        self.rejected += other.rejected
        self.rejection_reasons.update(other.rejection_reasons)
        self.unknown_outlets += other.unknown_outlets

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary for JSON export."""
        return {
            "total": self.total,
            "normalized": self.normalized,
            "by_provenance": dict(self.by_provenance),
            "rejected": self.rejected,
            "rejection_reasons": dict(self.rejection_reasons),
            "unknown_outlets": self.unknown_outlets,
        }

    def log_summary(self) -> None:
        """Log normalization statistics summary."""
        logger.info(
            "Normalization: %d/%d reviews (explicit=%d, ensemble=%d, inferred=%d), rejected=%d, unknown outlets=%d",
            self.normalized,
            self.total,
            self.by_provenance[ScoreProvenance.EXPLICIT],
            self.by_provenance[ScoreProvenance.ENSEMBLE],
            self.by_provenance[ScoreProvenance.INFERRED],
            self.rejected,
            self.unknown_outlets,
        )


@dataclass
class NormalizationBatch:
    """Normalized reviews and rejections of one batch.

    Attributes:
        reviews: Successfully normalized reviews.
        rejections: Reviews that could not be scored.
    """

    reviews: list[NormalizedReview] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)


# =============================================================================
# NORMALIZER
# =============================================================================


class ReviewNormalizer:
    """Converts raw reviews to normalized, scored reviews.

    Attributes:
        stats: Normalization statistics.
    """

    def __init__(
        self,
        resolver: OutletResolver | None = None,
        parser: RatingParser | None = None,
        sentiment: SentimentInferencer | None = None,
        ensemble: EnsembleScorer | None = None,
        corrector: CalibrationCorrector | None = None,
    ) -> None:
        """Initialize normalizer.

        Args:
            resolver: Outlet resolver (default: built-in registry).
            parser: Explicit rating parser.
            sentiment: Keyword sentiment fallback.
            ensemble: Oracle ensemble; ensemble scoring is skipped when None.
            corrector: Calibration for ensemble scores (default: inert table).
        """
        self._resolver = resolver or OutletResolver()
        self._parser = parser or RatingParser()
        self._sentiment = sentiment or SentimentInferencer()
        self._ensemble = ensemble
        self._corrector = corrector or CalibrationCorrector()
        self.stats = NormalizationStats()

    # =========================================================================
    # Public API
    # =========================================================================

    async def normalize(self, raw: RawReview) -> NormalizedReview:
        """Normalize one raw review.

        Args:
            raw: Review from the retrieval collaborator.

        Returns:
            NormalizedReview with score, bucket, thumb, and provenance.

        Raises:
            RatingParseError: No rating, oracle score, or sentiment available.
            OracleUnavailableError: Ensemble configured but exhausted.
            OutletResolutionError: The outlet resolves to an invalid config.
        """
        try:
            resolved = self._resolver.resolve_review(raw.outlet, raw.url)
        except ValidationError as e:
            raise OutletResolutionError(
                f"Outlet {raw.outlet[:80]!r} of {raw.show_id} is not usable: {e.error_count()} validation error(s)"
            ) from e
        outlet = resolved.config
        flags: list[str] = []
        if not resolved.is_known:
            flags.append(UNKNOWN_OUTLET_FLAG)

        fields: dict[str, Any] = {
            "show_id": raw.show_id,
            "outlet_id": outlet.id,
            "outlet_name": outlet.name,
            "tier": outlet.tier,
            "critic_name": raw.critic_name,
            "url": raw.url,
            "publish_date": raw.publish_date,
            "original_rating": raw.original_rating,
            "designation": detect_designation(raw.designation)
            or detect_designation(raw.original_rating),
            "pull_quote": raw.pull_quote,
            "excerpt": raw.excerpt,
            "source": raw.source,
        }

        parsed = self._parser.parse(raw.original_rating)
        if parsed is not None:
            return NormalizedReview.from_score(
                parsed.score,
                provenance=ScoreProvenance.EXPLICIT,
                score_method=parsed.method,
                flags=flags,
                **fields,
            )

        if raw.original_rating and not is_designation_only(raw.original_rating):
            flags.append(UNPARSED_RATING_FLAG)

        text = raw.excerpt or raw.pull_quote
        if self._ensemble is not None and text:
            return await self._score_with_ensemble(text, flags, fields)

        inferred = self._sentiment.infer(text)
        if inferred is not None:
            return NormalizedReview.from_score(
                inferred,
                provenance=ScoreProvenance.INFERRED,
                score_method=ScoreMethod.SENTIMENT,
                flags=flags,
                **fields,
            )

        raise RatingParseError(
            f"No score for {raw.show_id}/{outlet.id}: rating={raw.original_rating!r}, "
            f"excerpt={'yes' if text else 'no'}"
        )

    async def normalize_many(self, raws: Iterable[RawReview]) -> NormalizationBatch:
        """Normalize reviews one by one, isolating per-review failures.

        Args:
            raws: Raw reviews.

        Returns:
            NormalizationBatch with reviews and rejections.
        """
        batch = NormalizationBatch()
        for raw in raws:
            self.stats.total += 1
            try:
                review = await self.normalize(raw)
            except ReviewRejectedError as e:
                self._record_rejection(batch, raw, e)
                continue

            self.stats.by_provenance[review.provenance] += 1
            if UNKNOWN_OUTLET_FLAG in review.flags:
                self.stats.unknown_outlets += 1
            batch.reviews.append(review)
        return batch

    def reset_stats(self) -> None:
        """Reset statistics for a new batch."""
        self.stats = NormalizationStats()

    # =========================================================================
    # Internal Methods
    # =========================================================================

    async def _score_with_ensemble(
        self,
        text: str,
        flags: list[str],
        fields: dict[str, Any],
    ) -> NormalizedReview:
        result = await self._ensemble.score(text)
        calibrated = self._corrector.apply(result.final_score)

        if calibrated.flag:
            flags.append(calibrated.flag)
        if result.flag_for_review:
            flags.append(ENSEMBLE_REVIEW_FLAG)

        return NormalizedReview.from_score(
            calibrated.score,
            provenance=ScoreProvenance.ENSEMBLE,
            score_method=ScoreMethod.ENSEMBLE,
            flags=flags,
            ensemble=result,
            **fields,
        )

    def _record_rejection(
        self,
        batch: NormalizationBatch,
        raw: RawReview,
        error: ReviewRejectedError,
    ) -> None:
        logger.warning("Rejected review %s/%s (%s): %s", raw.show_id, raw.outlet, error.reason, error)
        self.stats.rejected += 1
        self.stats.rejection_reasons[error.reason] += 1
        batch.rejections.append(
            Rejection(
                show_id=raw.show_id,
                outlet=raw.outlet,
                critic_name=raw.critic_name,
                reason=error.reason,
                message=str(error),
            )
        )
