"""Unit tests for the show score calculator."""

import pytest
from pytest import approx

from src.etl.aggregation.schemas import ConfidenceLevel
from src.etl.aggregation.score_calculator import ScoreStats, ShowScoreCalculator, weighted_mean
from src.etl.normalization.schemas import Designation, NormalizedReview, ScoreMethod, ScoreProvenance
from src.etl.scoring.buckets import Bucket, Thumb
from src.settings import ScoringSettings


def _make_review(score: int = 80, tier: int = 1, **overrides) -> NormalizedReview:
    fields = {
        "show_id": "hamlet-2024",
        "outlet_id": f"OUT{tier}",
        "outlet_name": "Outlet",
        "tier": tier,
        "critic_name": "Critic",
        "provenance": ScoreProvenance.EXPLICIT,
        "score_method": ScoreMethod.NUMERIC,
    }
    fields.update(overrides)
    return NormalizedReview.from_score(score, **fields)


def _make_reviews(count: int, tier1: int, score: int = 80) -> list[NormalizedReview]:
    return [
        _make_review(score, tier=1 if i < tier1 else 2, critic_name=f"Critic {i}")
        for i in range(count)
    ]


# -------------------------------------------------------------------------
# weighted_mean
# -------------------------------------------------------------------------


class TestWeightedMean:
    @staticmethod
    def test_tier_weights() -> None:
        """Scores are weighted by tier."""
        assert weighted_mean([(90, 1.0), (80, 0.70), (60, 0.40)]) == approx(80.95)

    @staticmethod
    def test_rounds_to_two_decimals() -> None:
        """The mean is rounded to two decimals."""
        assert weighted_mean([(80, 1.0), (88, 1.0), (92, 1.0)]) == 86.67

    @staticmethod
    def test_zero_weight() -> None:
        """No weight means no score."""
        assert weighted_mean([]) is None


# -------------------------------------------------------------------------
# ScoreStats
# -------------------------------------------------------------------------


class TestScoreStats:
    @staticmethod
    def test_avg_score_empty() -> None:
        """Average is zero before any scored show."""
        assert ScoreStats().avg_score == 0.0

    @staticmethod
    def test_log_summary_no_error() -> None:
        """Summary logging does not raise."""
        ScoreStats(total_shows=2, pending=1, high=1, score_sum=80.0).log_summary()


# -------------------------------------------------------------------------
# ShowScoreCalculator
# -------------------------------------------------------------------------


class TestCalculate:
    @staticmethod
    def test_pending_below_minimum() -> None:
        """Fewer reviews than the minimum leave the show pending."""
        aggregate = ShowScoreCalculator(ScoringSettings()).calculate("s", _make_reviews(4, 4))
        assert aggregate.is_pending
        assert aggregate.weighted_score is None
        assert aggregate.bucket is None
        assert aggregate.review_count == 4
        assert aggregate.tier(1).count == 4

    @staticmethod
    def test_weighted_score_and_bands() -> None:
        """Weighted score drives bucket, thumb and confidence."""
        reviews = [
            _make_review(90, tier=1, critic_name="A"),
            _make_review(90, tier=1, critic_name="B"),
            _make_review(80, tier=2, critic_name="C"),
            _make_review(60, tier=3, critic_name="D"),
            _make_review(60, tier=3, critic_name="E"),
        ]
        aggregate = ShowScoreCalculator(ScoringSettings()).calculate("s", reviews)
        assert aggregate.weighted_score == approx(81.14)
        assert aggregate.bucket == Bucket.POSITIVE
        assert aggregate.thumb == Thumb.UP
        assert aggregate.confidence == ConfidenceLevel.LOW

    @staticmethod
    def test_tier_breakdown() -> None:
        """Every tier is listed with its count and sum."""
        reviews = [_make_review(90, tier=1), _make_review(60, tier=3, critic_name="X")]
        aggregate = ShowScoreCalculator(ScoringSettings(min_reviews_for_score=2)).calculate("s", reviews)
        assert [t.tier for t in aggregate.tiers] == [1, 2, 3]
        assert aggregate.tier(2).count == 0
        assert aggregate.tier(2).mean_score is None
        assert aggregate.tier(3).score_sum == 60.0

    @staticmethod
    def test_pending_tiers_hide_scores() -> None:
        """Pending shows keep tier counts but expose no tier sums or means."""
        reviews = [_make_review(90, tier=1), _make_review(60, tier=3, critic_name="X")]
        aggregate = ShowScoreCalculator(ScoringSettings()).calculate("s", reviews)
        assert aggregate.is_pending
        assert aggregate.tier(1).count == 1
        assert aggregate.tier(1).score_sum is None
        assert aggregate.tier(1).mean_score is None

    @staticmethod
    def test_stats_recorded() -> None:
        """Stats count pending and scored shows."""
        calculator = ShowScoreCalculator(ScoringSettings())
        calculator.calculate("a", _make_reviews(3, 3))
        calculator.calculate("b", _make_reviews(6, 1))
        assert calculator.stats.total_shows == 2
        assert calculator.stats.pending == 1
        assert calculator.stats.medium == 1
        assert calculator.stats.avg_score == 80.0
        calculator.reset_stats()
        assert calculator.stats.total_shows == 0


class TestDetermineConfidence:
    @staticmethod
    @pytest.mark.parametrize(
        ("count", "tier1", "expected"),
        [
            (15, 3, ConfidenceLevel.HIGH),
            (20, 2, ConfidenceLevel.MEDIUM),
            (14, 3, ConfidenceLevel.MEDIUM),
            (6, 1, ConfidenceLevel.MEDIUM),
            (6, 0, ConfidenceLevel.LOW),
            (5, 5, ConfidenceLevel.LOW),
        ],
    )
    def test_thresholds(count: int, tier1: int, expected: ConfidenceLevel) -> None:
        """Confidence follows review and tier-1 counts."""
        assert ShowScoreCalculator(ScoringSettings()).determine_confidence(count, tier1) == expected

    @staticmethod
    def test_configurable() -> None:
        """Confidence thresholds come from settings."""
        config = ScoringSettings(high_min_reviews=5, high_min_tier1=1)
        assert ShowScoreCalculator(config).determine_confidence(5, 1) == ConfidenceLevel.HIGH


class TestDesignationBumps:
    @staticmethod
    def test_disabled_by_default() -> None:
        """Designations do not change scores by default."""
        review = _make_review(90, designation=Designation.CRITICS_PICK)
        assert ShowScoreCalculator(ScoringSettings()).effective_score(review) == 90

    @staticmethod
    def test_enabled_and_capped() -> None:
        """Enabled bumps add points, capped at 100."""
        calculator = ShowScoreCalculator(ScoringSettings(apply_designation_bumps=True))
        assert calculator.effective_score(_make_review(90, designation=Designation.CRITICS_PICK)) == 93
        assert calculator.effective_score(_make_review(99, designation=Designation.RECOMMENDED)) == 100
        assert calculator.effective_score(_make_review(90)) == 90
