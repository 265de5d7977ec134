"""Unit tests for post-batch review validation."""

from datetime import date

import pytest

from src.etl.normalization.schemas import NormalizedReview, ScoreMethod, ScoreProvenance
from src.etl.scoring.buckets import Bucket, Thumb
from src.etl.validation.validator import (
    IssueKind,
    ReviewValidator,
    ValidationIssue,
    ValidationReport,
)
from src.settings import ValidationSettings

OPENING = date(2024, 3, 21)


def _make_review(score: int = 80, **overrides) -> NormalizedReview:
    fields = {
        "show_id": "hamlet-2024",
        "outlet_id": "NYT",
        "outlet_name": "The New York Times",
        "tier": 1,
        "critic_name": "Jesse Green",
        "provenance": ScoreProvenance.EXPLICIT,
        "score_method": ScoreMethod.STAR,
    }
    fields.update(overrides)
    return NormalizedReview.from_score(score, **fields)


def _make_validator(**overrides) -> ReviewValidator:
    return ReviewValidator(ValidationSettings(**overrides))


# -------------------------------------------------------------------------
# Band consistency
# -------------------------------------------------------------------------


class TestCheckBands:
    @staticmethod
    def test_consistent_review() -> None:
        """Bands matching the score raise no issue."""
        assert ReviewValidator.check_bands(_make_review(85)) == []

    @staticmethod
    def test_mismatches_reported_not_fixed() -> None:
        """Mismatched bands are reported and left as stored."""
        review = _make_review(90).model_copy(update={"bucket": Bucket.PAN, "thumb": Thumb.DOWN})
        issues = ReviewValidator.check_bands(review)
        assert [issue.kind for issue in issues] == [IssueKind.BUCKET_MISMATCH, IssueKind.THUMB_MISMATCH]
        assert review.bucket == Bucket.PAN


# -------------------------------------------------------------------------
# Polarity
# -------------------------------------------------------------------------


class TestCheckPolarity:
    @staticmethod
    def test_contradiction() -> None:
        """Opposite bands with a large gap are reported."""
        review = _make_review(85, excerpt="Tedious, dull and overlong.")
        issue = _make_validator().check_polarity(review)
        assert issue is not None
        assert issue.kind == IssueKind.POLARITY_CONTRADICTION
        assert "gap 40" in issue.message

    @staticmethod
    def test_large_gap_same_side_ignored() -> None:
        """A large gap on one side of the scale is fine."""
        review = _make_review(20, excerpt="Uneven, with some moments, however the cast tries.")
        assert _make_validator().check_polarity(review) is None

    @staticmethod
    def test_small_gap_ignored() -> None:
        """A small gap is fine."""
        review = _make_review(72, excerpt="Tedious, dull and overlong.")
        assert _make_validator(polarity_gap=30).check_polarity(review) is None

    @staticmethod
    def test_inferred_reviews_skipped() -> None:
        """Inferred reviews are not polarity checked."""
        review = _make_review(
            85,
            excerpt="Tedious, dull and overlong.",
            provenance=ScoreProvenance.INFERRED,
            score_method=ScoreMethod.SENTIMENT,
        )
        assert _make_validator().check_polarity(review) is None

    @staticmethod
    def test_no_text() -> None:
        """Reviews without text are not polarity checked."""
        assert _make_validator().check_polarity(_make_review(85)) is None


# -------------------------------------------------------------------------
# Date window
# -------------------------------------------------------------------------


class TestCheckDateWindow:
    @staticmethod
    @pytest.mark.parametrize("published", [date(2024, 1, 21), OPENING, date(2025, 3, 21)])
    def test_inside_window(published: date) -> None:
        """Dates inside the window pass."""
        review = _make_review(publish_date=published)
        assert _make_validator().check_date_window(review, OPENING) is None

    @staticmethod
    @pytest.mark.parametrize("published", [date(2024, 1, 20), date(2025, 3, 22)])
    def test_outside_window(published: date) -> None:
        """Dates outside the window are reported."""
        issue = _make_validator().check_date_window(_make_review(publish_date=published), OPENING)
        assert issue.kind == IssueKind.DATE_OUT_OF_WINDOW

    @staticmethod
    def test_missing_dates_skipped() -> None:
        """Missing dates are skipped."""
        validator = _make_validator()
        assert validator.check_date_window(_make_review(), OPENING) is None
        assert validator.check_date_window(_make_review(publish_date=date(2000, 1, 1)), None) is None


# -------------------------------------------------------------------------
# Uniformity and full show
# -------------------------------------------------------------------------


class TestCheckUniformity:
    @staticmethod
    def test_all_same_bucket() -> None:
        """Every review in one bucket is reported."""
        reviews = [_make_review(86 + i, critic_name=f"C{i}") for i in range(5)]
        issue = _make_validator().check_uniformity("hamlet-2024", reviews)
        assert issue == ValidationIssue(
            kind=IssueKind.UNIFORM_BUCKETS,
            show_id="hamlet-2024",
            message="all 5 reviews are Rave",
        )

    @staticmethod
    def test_too_few_reviews() -> None:
        """Small shows are not uniformity checked."""
        reviews = [_make_review(90, critic_name=f"C{i}") for i in range(4)]
        assert _make_validator().check_uniformity("s", reviews) is None

    @staticmethod
    def test_mixed_buckets() -> None:
        """Mixed buckets pass."""
        reviews = [_make_review(90, critic_name=f"C{i}") for i in range(4)] + [_make_review(40)]
        assert _make_validator().check_uniformity("s", reviews) is None


class TestValidateShow:
    @staticmethod
    def test_collects_issues() -> None:
        """All checks contribute to the show report."""
        reviews = [
            _make_review(85, excerpt="Tedious, dull and overlong."),
            _make_review(60, critic_name="Other", publish_date=date(2023, 1, 1)),
        ]
        report = _make_validator().validate_show("hamlet-2024", reviews, OPENING)
        assert report.reviews_checked == 2
        assert report.shows_checked == 1
        assert report.counts == {"polarity_contradiction": 1, "date_out_of_window": 1}


class TestFlagReviews:
    @staticmethod
    def test_issue_kinds_attached() -> None:
        """Per-review issue kinds become sorted review flags."""
        contradicted = _make_review(85, excerpt="Tedious, dull and overlong.", flags=["unknown_outlet"])
        clean = _make_review(80, outlet_id="WSJ", outlet_name="The Wall Street Journal")
        validator = _make_validator()
        report = validator.validate_show("hamlet-2024", [contradicted, clean], OPENING)

        flagged = validator.flag_reviews([contradicted, clean], report)
        assert flagged[0].flags == ["polarity_contradiction", "unknown_outlet"]
        assert flagged[1] is clean
        assert contradicted.flags == ["unknown_outlet"]

    @staticmethod
    def test_stale_validation_flags_replaced() -> None:
        """Validation flags whose issue is gone are dropped, others kept."""
        review = _make_review(80, flags=["date_out_of_window", "unparsed_rating"])
        validator = _make_validator()
        report = validator.validate_show("hamlet-2024", [review], OPENING)
        assert validator.flag_reviews([review], report)[0].flags == ["unparsed_rating"]

    @staticmethod
    def test_show_level_issue_not_attached() -> None:
        """Uniform buckets is reported on the show, not on its reviews."""
        reviews = [_make_review(80), _make_review(81, critic_name="Ben Brantley")]
        validator = _make_validator(uniformity_min_reviews=2)
        report = validator.validate_show("hamlet-2024", reviews, OPENING)

        assert report.counts == {"uniform_buckets": 1}
        assert [review.flags for review in validator.flag_reviews(reviews, report)] == [[], []]


class TestValidationReport:
    @staticmethod
    def test_extend_and_to_dict() -> None:
        """Reports merge and serialize."""
        report = ValidationReport()
        other = ValidationReport(
            issues=[ValidationIssue(IssueKind.UNIFORM_BUCKETS, "s", "all 5 reviews are Rave")],
            reviews_checked=5,
            shows_checked=1,
        )
        report.extend(other)
        report.extend(other)
        data = report.to_dict()
        assert data["reviews_checked"] == 10
        assert data["counts"] == {"uniform_buckets": 2}
        assert data["issues"][0]["outlet_id"] is None

    @staticmethod
    def test_log_summary_no_error() -> None:
        """Logging the summary does not raise."""
        ValidationReport().log_summary()
