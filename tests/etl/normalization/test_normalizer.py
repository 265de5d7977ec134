"""Unit tests for the review normalizer."""

import pytest

from src.etl.exceptions import OracleError, OracleUnavailableError, RatingParseError
from src.etl.normalization.normalizer import (
    ENSEMBLE_REVIEW_FLAG,
    UNPARSED_RATING_FLAG,
    ReviewNormalizer,
)
from src.etl.normalization.outlets import UNKNOWN_OUTLET_FLAG, MatchKind, OutletResolver, ResolvedOutlet
from src.etl.normalization.schemas import (
    OUTLET_NAME_MAX_LENGTH,
    Designation,
    OutletConfig,
    RawReview,
    ScoreMethod,
    ScoreProvenance,
)
from src.etl.scoring.buckets import Bucket, Thumb
from src.etl.scoring.calibration import (
    INSUFFICIENT_DATA_FLAG,
    CalibrationCorrector,
    CalibrationOffsetTable,
)
from src.etl.scoring.schemas import Confidence
from src.settings import CalibrationSettings
from tests.fakes import FakeOracle, make_ensemble


def _make_raw(**overrides) -> RawReview:
    fields = {
        "show_id": "hamlet-2024",
        "outlet": "The New York Times",
        "critic_name": "Jesse Green",
        "publish_date": "2024-03-21",
    }
    fields.update(overrides)
    return RawReview(**fields)


class InvalidConfigResolver(OutletResolver):
    """Resolver that builds an out-of-range config for one outlet."""

    def resolve_review(self, outlet: str, url: str | None) -> ResolvedOutlet:
        if outlet == "Broken Outlet":
            return ResolvedOutlet(OutletConfig(id="BROKEN", name=outlet, tier=9), MatchKind.UNRESOLVED)
        return super().resolve_review(outlet, url)


def _make_corrector() -> CalibrationCorrector:
    table = CalibrationOffsetTable.from_offsets(
        {
            Bucket.POSITIVE: (4.0, 20),
            Bucket.RAVE: (-2.0, 20),
        }
    )
    return CalibrationCorrector(table, CalibrationSettings(min_sample_size=10))


# -------------------------------------------------------------------------
# Explicit ratings
# -------------------------------------------------------------------------


class TestExplicit:
    @staticmethod
    @pytest.mark.asyncio
    async def test_star_rating() -> None:
        """A star rating gives an explicit score with derived bands."""
        review = await ReviewNormalizer().normalize(_make_raw(original_rating="4/5"))
        assert review.assigned_score == 80
        assert review.bucket == Bucket.POSITIVE
        assert review.thumb == Thumb.UP
        assert review.provenance == ScoreProvenance.EXPLICIT
        assert review.score_method == ScoreMethod.STAR
        assert review.outlet_id == "NYT"
        assert review.tier == 1
        assert review.flags == []

    @staticmethod
    @pytest.mark.asyncio
    async def test_explicit_wins_over_excerpt() -> None:
        """A printed rating beats excerpt sentiment."""
        raw = _make_raw(original_rating="C-", excerpt="A brilliant, stunning masterpiece.")
        review = await ReviewNormalizer().normalize(raw)
        assert review.assigned_score == 72
        assert review.provenance == ScoreProvenance.EXPLICIT

    @staticmethod
    @pytest.mark.asyncio
    async def test_zero_rating_kept() -> None:
        """A zero rating is a score, not a missing one."""
        review = await ReviewNormalizer().normalize(_make_raw(original_rating="0/5"))
        assert review.assigned_score == 0
        assert review.bucket == Bucket.PAN

    @staticmethod
    @pytest.mark.asyncio
    async def test_designation_detected() -> None:
        """Designation text is recognized."""
        raw = _make_raw(original_rating="4/5", designation="Critic's Pick")
        review = await ReviewNormalizer().normalize(raw)
        assert review.designation == Designation.CRITICS_PICK

    @staticmethod
    @pytest.mark.asyncio
    async def test_unknown_outlet_flagged() -> None:
        """Unknown outlets get a synthetic tier-3 id and a flag."""
        review = await ReviewNormalizer().normalize(_make_raw(outlet="Some Blog", original_rating="B+"))
        assert review.outlet_id == "SOMEBLOG"
        assert review.tier == 3
        assert review.flags == [UNKNOWN_OUTLET_FLAG]


# -------------------------------------------------------------------------
# Fallback chain
# -------------------------------------------------------------------------


class TestFallbacks:
    @staticmethod
    @pytest.mark.asyncio
    async def test_sentiment_without_ensemble() -> None:
        """Without oracles the excerpt sentiment scores the review."""
        raw = _make_raw(excerpt="A brilliant, stunning, wonderful evening.")
        review = await ReviewNormalizer().normalize(raw)
        assert review.assigned_score == 78
        assert review.provenance == ScoreProvenance.INFERRED
        assert review.score_method == ScoreMethod.SENTIMENT

    @staticmethod
    @pytest.mark.asyncio
    async def test_unparsed_rating_flagged() -> None:
        """An unreadable rating is flagged when sentiment takes over."""
        raw = _make_raw(original_rating="zxq", excerpt="Tedious, dull and overlong.")
        review = await ReviewNormalizer().normalize(raw)
        assert review.assigned_score == 45
        assert UNPARSED_RATING_FLAG in review.flags

    @staticmethod
    @pytest.mark.asyncio
    async def test_designation_only_not_flagged() -> None:
        """A designation alone is not an unparsed rating."""
        raw = _make_raw(original_rating="Critics' Pick", excerpt="A brilliant, stunning, wonderful evening.")
        review = await ReviewNormalizer().normalize(raw)
        assert UNPARSED_RATING_FLAG not in review.flags
        assert review.designation == Designation.CRITICS_PICK

    @staticmethod
    @pytest.mark.asyncio
    async def test_nothing_to_score_raises() -> None:
        """No rating and no text raise RatingParseError."""
        with pytest.raises(RatingParseError):
            await ReviewNormalizer().normalize(_make_raw())


# -------------------------------------------------------------------------
# Ensemble scoring
# -------------------------------------------------------------------------


class TestEnsemble:
    @staticmethod
    @pytest.mark.asyncio
    async def test_calibrated_ensemble_score() -> None:
        """Ensemble scores are calibrated before use."""
        ensemble = make_ensemble(FakeOracle("a", 78), FakeOracle("b", 80), FakeOracle("c", 79))
        normalizer = ReviewNormalizer(ensemble=ensemble, corrector=_make_corrector())
        review = await normalizer.normalize(_make_raw(excerpt="Handsome and assured."))
        assert review.assigned_score == 82
        assert review.provenance == ScoreProvenance.ENSEMBLE
        assert review.score_method == ScoreMethod.ENSEMBLE
        assert review.ensemble.confidence == Confidence.HIGH
        assert review.flags == []

    @staticmethod
    @pytest.mark.asyncio
    async def test_inert_calibration_and_disagreement_flagged() -> None:
        """Disagreement and missing calibration data are flagged."""
        ensemble = make_ensemble(FakeOracle("a", 50), FakeOracle("b", 90), FakeOracle("c", 70))
        normalizer = ReviewNormalizer(ensemble=ensemble)
        review = await normalizer.normalize(_make_raw(excerpt="Hard to say."))
        assert review.assigned_score == 70
        assert review.flags == sorted([ENSEMBLE_REVIEW_FLAG, INSUFFICIENT_DATA_FLAG])

    @staticmethod
    @pytest.mark.asyncio
    async def test_explicit_rating_skips_oracles() -> None:
        """Oracles are not called for explicit ratings."""
        primary = FakeOracle("a", 60)
        ensemble = make_ensemble(primary, FakeOracle("b", 60), FakeOracle("c", 60))
        await ReviewNormalizer(ensemble=ensemble).normalize(_make_raw(original_rating="4/5", excerpt="Fine."))
        assert primary.calls == 0

    @staticmethod
    @pytest.mark.asyncio
    async def test_exhausted_oracles_raise() -> None:
        """Exhausted oracles raise OracleUnavailableError."""
        ensemble = make_ensemble(
            FakeOracle("a", OracleError("down")),
            FakeOracle("b", OracleError("down")),
            FakeOracle("c", 60),
        )
        with pytest.raises(OracleUnavailableError):
            await ReviewNormalizer(ensemble=ensemble).normalize(_make_raw(excerpt="Text."))


# -------------------------------------------------------------------------
# normalize_many
# -------------------------------------------------------------------------


class TestNormalizeMany:
    @staticmethod
    @pytest.mark.asyncio
    async def test_isolates_rejections() -> None:
        """A rejected review does not stop the rest of the batch."""
        normalizer = ReviewNormalizer()
        batch = await normalizer.normalize_many(
            [
                _make_raw(original_rating="4/5"),
                _make_raw(outlet="Variety", critic_name=None),
                _make_raw(outlet="Some Blog", excerpt="A brilliant, stunning, wonderful evening."),
            ]
        )

        assert len(batch.reviews) == 2
        assert len(batch.rejections) == 1
        rejection = batch.rejections[0]
        assert rejection.reason == "parse_failure"
        assert rejection.outlet == "Variety"

        stats = normalizer.stats
        assert stats.total == 3
        assert stats.normalized == 2
        assert stats.rejected == 1
        assert stats.unknown_outlets == 1
        assert stats.by_provenance[ScoreProvenance.INFERRED] == 1

    @staticmethod
    @pytest.mark.asyncio
    async def test_oracle_failure_reason() -> None:
        """Oracle exhaustion is counted as oracle_failure."""
        ensemble = make_ensemble(
            FakeOracle("a", OracleError("down")),
            FakeOracle("b", OracleError("down")),
            FakeOracle("c", 60),
        )
        normalizer = ReviewNormalizer(ensemble=ensemble)
        batch = await normalizer.normalize_many([_make_raw(excerpt="Text.")])
        assert batch.rejections[0].reason == "oracle_failure"
        assert normalizer.stats.to_dict()["rejection_reasons"] == {"oracle_failure": 1}

    @staticmethod
    @pytest.mark.asyncio
    async def test_reset_stats() -> None:
        """Stats reset between batches."""
        normalizer = ReviewNormalizer()
        await normalizer.normalize_many([_make_raw(original_rating="4/5")])
        normalizer.reset_stats()
        assert normalizer.stats.total == 0

    @staticmethod
    @pytest.mark.asyncio
    async def test_long_unknown_outlet_normalized() -> None:
        """An unknown outlet longer than the name limit is still scored."""
        normalizer = ReviewNormalizer()
        batch = await normalizer.normalize_many([_make_raw(outlet="Stage Notes " * 20, original_rating="4/5")])
        assert batch.rejections == []
        review = batch.reviews[0]
        assert len(review.outlet_name) == OUTLET_NAME_MAX_LENGTH
        assert review.flags == [UNKNOWN_OUTLET_FLAG]

    @staticmethod
    @pytest.mark.asyncio
    async def test_invalid_outlet_config_rejected() -> None:
        """A resolver producing an invalid config rejects only that review."""
        normalizer = ReviewNormalizer(resolver=InvalidConfigResolver())
        batch = await normalizer.normalize_many(
            [_make_raw(original_rating="4/5"), _make_raw(outlet="Broken Outlet", original_rating="B+")]
        )
        assert len(batch.reviews) == 1
        assert [r.reason for r in batch.rejections] == ["invalid_outlet"]
        assert batch.rejections[0].outlet == "Broken Outlet"
        assert normalizer.stats.rejection_reasons == {"invalid_outlet": 1}
