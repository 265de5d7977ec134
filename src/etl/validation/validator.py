"""Post-batch consistency and plausibility checks.

Advisory only: records are never rejected here. Per-review issues are
reported, logged, and attached to the review flags by ``flag_reviews``.

Checks:
- Bucket or thumb not matching the assigned score
- Excerpt sentiment contradicting the assigned score
- Every review of a show in the same bucket
- Publish date outside the window around the opening date
"""

import logging
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import StrEnum
from typing import Any

from src.etl.normalization.schemas import NormalizedReview, ScoreProvenance
from src.etl.normalization.sentiment import SentimentInferencer
from src.etl.scoring.buckets import MIXED_MIN, POSITIVE_MIN, score_to_bucket, score_to_thumb
from src.settings import ValidationSettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# ISSUES
# =============================================================================


class IssueKind(StrEnum):
    """Kinds of validation findings."""

    BUCKET_MISMATCH = "bucket_mismatch"
    THUMB_MISMATCH = "thumb_mismatch"
    POLARITY_CONTRADICTION = "polarity_contradiction"
    UNIFORM_BUCKETS = "uniform_buckets"
    DATE_OUT_OF_WINDOW = "date_out_of_window"


VALIDATION_FLAGS = frozenset(kind.value for kind in IssueKind)
"""Review flags owned by the validator."""


@dataclass(frozen=True)
class ValidationIssue:
    """One validation finding.

    Attributes:
        kind: Issue kind.
        show_id: Production identifier.
        message: Human-readable detail.
        outlet_id: Outlet of the review (None for show-level issues).
        critic_name: Critic of the review.
        review_key: Outlet and critic key of the review.
    """

    kind: IssueKind
    show_id: str
    message: str
    outlet_id: str | None = None
    critic_name: str | None = None
    review_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert issue to dictionary for JSON export."""
        return {
            "kind": self.kind.value,
            "show_id": self.show_id,
            "outlet_id": self.outlet_id,
            "critic_name": self.critic_name,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    """Findings of one validation run.

    Attributes:
        issues: All findings.
        reviews_checked: Reviews inspected.
        shows_checked: Shows inspected.
    """

    issues: list[ValidationIssue] = field(default_factory=list)
    reviews_checked: int = 0
    shows_checked: int = 0

    @property
    def counts(self) -> dict[str, int]:
        """Number of issues per kind."""
        return dict(Counter(issue.kind.value for issue in self.issues))

    def extend(self, other: "ValidationReport") -> None:
        """Add the findings of another report."""
        self.issues.extend(other.issues)
        self.reviews_checked += other.reviews_checked
        self.shows_checked += other.shows_checked

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON export."""
        return {
            "reviews_checked": self.reviews_checked,
            "shows_checked": self.shows_checked,
            "counts": self.counts,
            "issues": [issue.to_dict() for issue in self.issues],
        }

    def log_summary(self) -> None:
        """Log validation summary."""
        logger.info(
            "Validation: %d issues in %d reviews of %d shows %s",
            len(self.issues),
            self.reviews_checked,
            self.shows_checked,
            self.counts,
        )


# =============================================================================
# VALIDATOR
# =============================================================================


class ReviewValidator:
    """Audits normalized reviews of a show."""

    def __init__(
        self,
        config: ValidationSettings | None = None,
        sentiment: SentimentInferencer | None = None,
    ) -> None:
        """Initialize validator.

        Args:
            config: Window and threshold settings (default: global settings).
            sentiment: Inferencer used for the polarity check.
        """
        self._config = config or settings.validation
        self._sentiment = sentiment or SentimentInferencer()

    # =========================================================================
    # Public API
    # =========================================================================

    def validate_show(
        self,
        show_id: str,
        reviews: Sequence[NormalizedReview],
        opening_date: date | None = None,
    ) -> ValidationReport:
        """Run all checks on the reviews of one show.

        Args:
            show_id: Production identifier.
            reviews: Reviews of the show.
            opening_date: Opening date, enables the date window check.

        Returns:
            ValidationReport for the show.
        """
        report = ValidationReport(reviews_checked=len(reviews), shows_checked=1)
        for review in reviews:
            report.issues.extend(self.validate_review(review, opening_date))

        uniform = self.check_uniformity(show_id, reviews)
        if uniform:
            report.issues.append(uniform)

        for issue in report.issues:
            logger.debug("ValidationMismatch %s: %s", issue.kind, issue.message)
        return report

    def validate_review(
        self,
        review: NormalizedReview,
        opening_date: date | None = None,
    ) -> list[ValidationIssue]:
        """Run the per-review checks.

        Args:
            review: Review to check.
            opening_date: Opening date of the show.

        Returns:
            Issues found (possibly empty).
        """
        issues = self.check_bands(review)
        polarity = self.check_polarity(review)
        if polarity:
            issues.append(polarity)
        window = self.check_date_window(review, opening_date)
        if window:
            issues.append(window)
        return issues

    @staticmethod
    def flag_reviews(
        reviews: Sequence[NormalizedReview],
        report: ValidationReport,
    ) -> list[NormalizedReview]:
        """Attach the kinds of per-review issues to the review flags.

        Flags left by an earlier validation are replaced; other flags are
        kept. Show-level issues stay in the report only.

        Args:
            reviews: Reviews the report was computed on.
            report: Findings of ``validate_show``.

        Returns:
            Reviews with updated flags, in input order.
        """
        kinds: dict[tuple[str, str], set[str]] = defaultdict(set)
        for issue in report.issues:
            if issue.review_key is not None:
                kinds[(issue.show_id, issue.review_key)].add(issue.kind.value)

        flagged = []
        for review in reviews:
            kept = {flag for flag in review.flags if flag not in VALIDATION_FLAGS}
            flags = sorted(kept | kinds.get((review.show_id, review.review_key), set()))
            flagged.append(review if flags == review.flags else review.model_copy(update={"flags": flags}))
        return flagged

    @staticmethod
    def check_bands(review: NormalizedReview) -> list[ValidationIssue]:
        """Check bucket and thumb against the assigned score."""
        issues = []
        expected_bucket = score_to_bucket(review.assigned_score)
        if review.bucket != expected_bucket:
            issues.append(
                _review_issue(
                    IssueKind.BUCKET_MISMATCH,
                    review,
                    f"bucket {review.bucket} but score {review.assigned_score} is {expected_bucket}",
                )
            )
        expected_thumb = score_to_thumb(review.assigned_score)
        if review.thumb != expected_thumb:
            issues.append(
                _review_issue(
                    IssueKind.THUMB_MISMATCH,
                    review,
                    f"thumb {review.thumb} but score {review.assigned_score} is {expected_thumb}",
                )
            )
        return issues

    def check_polarity(self, review: NormalizedReview) -> ValidationIssue | None:
        """Check excerpt sentiment against the assigned score.

        Reviews scored from sentiment are skipped. A contradiction needs a
        gap of at least the configured points and opposite bands
        (one side positive, the other negative).
        """
        if review.provenance == ScoreProvenance.INFERRED:
            return None
        inferred = self._sentiment.infer(review.excerpt or review.pull_quote)
        if inferred is None:
            return None

        gap = abs(inferred - review.assigned_score)
        if gap < self._config.polarity_gap or not _opposite_bands(inferred, review.assigned_score):
            return None
        return _review_issue(
            IssueKind.POLARITY_CONTRADICTION,
            review,
            f"text reads {inferred} but assigned {review.assigned_score} (gap {gap})",
        )

    def check_date_window(
        self,
        review: NormalizedReview,
        opening_date: date | None,
    ) -> ValidationIssue | None:
        """Check the publish date lies in [opening - before, opening + after]."""
        if opening_date is None or review.publish_date is None:
            return None
        earliest = opening_date - timedelta(days=self._config.window_days_before)
        latest = opening_date + timedelta(days=self._config.window_days_after)
        if earliest <= review.publish_date <= latest:
            return None
        return _review_issue(
            IssueKind.DATE_OUT_OF_WINDOW,
            review,
            f"published {review.publish_date}, outside {earliest}..{latest} (opening {opening_date})",
        )

    def check_uniformity(
        self,
        show_id: str,
        reviews: Sequence[NormalizedReview],
    ) -> ValidationIssue | None:
        """Flag a show whose reviews all share one bucket."""
        if len(reviews) < self._config.uniformity_min_reviews:
            return None
        buckets = {review.bucket for review in reviews}
        if len(buckets) != 1:
            return None
        return ValidationIssue(
            kind=IssueKind.UNIFORM_BUCKETS,
            show_id=show_id,
            message=f"all {len(reviews)} reviews are {buckets.pop()}",
        )


# =============================================================================
# HELPERS
# =============================================================================


def _opposite_bands(first: int, second: int) -> bool:
    low, high = sorted((first, second))
    return low < MIXED_MIN and high >= POSITIVE_MIN


def _review_issue(kind: IssueKind, review: NormalizedReview, message: str) -> ValidationIssue:
    return ValidationIssue(
        kind=kind,
        show_id=review.show_id,
        outlet_id=review.outlet_id,
        critic_name=review.critic_name,
        review_key=review.review_key,
        message=message,
    )
