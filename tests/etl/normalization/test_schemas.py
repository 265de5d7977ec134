"""Unit tests for normalization schemas."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.etl.normalization.schemas import (
    TIER_WEIGHTS,
    NormalizedReview,
    OutletConfig,
    RawReview,
    ScoreMethod,
    ScoreProvenance,
    slugify_critic,
)
from src.etl.scoring.buckets import Bucket, Thumb


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


# -------------------------------------------------------------------------
# RawReview
# -------------------------------------------------------------------------


class TestRawReview:
    @staticmethod
    def test_blank_strings_become_none() -> None:
        """Blank optional strings become None."""
        raw = RawReview(show_id="s", outlet="NYT", critic_name="  ", original_rating="", url=" ")
        assert raw.critic_name is None
        assert raw.original_rating is None
        assert raw.url is None

    @staticmethod
    def test_datetime_keeps_date_part() -> None:
        """A datetime publish date keeps its date."""
        raw = RawReview(show_id="s", outlet="NYT", publish_date="2024-03-21T19:30:00Z")
        assert raw.publish_date == date(2024, 3, 21)

    @staticmethod
    def test_is_frozen() -> None:
        """Raw reviews are immutable."""
        raw = RawReview(show_id="s", outlet="NYT")
        with pytest.raises(ValidationError):
            raw.outlet = "WSJ"

    @staticmethod
    def test_requires_outlet() -> None:
        """An empty outlet is refused."""
        with pytest.raises(ValidationError):
            RawReview(show_id="s", outlet="")

    @staticmethod
    def test_unknown_fields_ignored() -> None:
        """Extra retrieval fields are ignored."""
        raw = RawReview.model_validate({"show_id": "s", "outlet": "NYT", "scraped_html": "<p>"})
        assert raw.source == "unknown"


# -------------------------------------------------------------------------
# NormalizedReview
# -------------------------------------------------------------------------


class TestNormalizedReview:
    @staticmethod
    def test_from_score_derives_bands() -> None:
        """Bucket and thumb derive from the score."""
        review = _make_review(85)
        assert review.bucket == Bucket.RAVE
        assert review.thumb == Thumb.UP

    @staticmethod
    def test_zero_score_is_valid() -> None:
        """Zero is a valid score."""
        review = _make_review(0)
        assert review.assigned_score == 0
        assert review.bucket == Bucket.PAN

    @staticmethod
    @pytest.mark.parametrize("score", [-1, 101])
    def test_score_range_enforced(score: int) -> None:
        """Scores outside 0-100 are refused."""
        with pytest.raises(ValidationError):
            _make_review(score)

    @staticmethod
    def test_stored_bands_not_coerced() -> None:
        """Stored bands are kept even when they disagree with the score."""
        review = NormalizedReview(
            show_id="s",
            outlet_id="NYT",
            outlet_name="NYT",
            assigned_score=90,
            bucket=Bucket.PAN,
            thumb=Thumb.UP,
            provenance=ScoreProvenance.EXPLICIT,
            score_method=ScoreMethod.NUMERIC,
        )
        assert review.bucket == Bucket.PAN

    @staticmethod
    def test_flags_sorted_and_unique() -> None:
        """Flags are deduplicated and sorted."""
        review = _make_review(flags=["unknown_outlet", "ensemble_flagged", "unknown_outlet"])
        assert review.flags == ["ensemble_flagged", "unknown_outlet"]

    @staticmethod
    def test_keys_and_weight() -> None:
        """Critic slug, review key and tier weight derive from fields."""
        review = _make_review(critic_name="Jesse  Green!")
        assert review.critic_slug == "jesse-green"
        assert review.review_key == "NYT::jesse-green"
        assert review.tier_weight == 1.0
        assert review.is_explicit is True

    @staticmethod
    def test_missing_critic_slug_is_empty() -> None:
        """A missing critic gives an empty slug."""
        assert _make_review(critic_name=None).review_key == "NYT::"


class TestHelpers:
    @staticmethod
    def test_slugify_critic() -> None:
        """Critic names slug to lowercase words joined by dashes."""
        assert slugify_critic("Sara Holdren") == "sara-holdren"
        assert slugify_critic("  O'Neil, Pat ") == "o-neil-pat"
        assert slugify_critic(None) == ""

    @staticmethod
    def test_tier_weights() -> None:
        """Tier weights are 1.0, 0.70 and 0.40."""
        assert dict(TIER_WEIGHTS) == {1: 1.0, 2: 0.70, 3: 0.40}
        assert OutletConfig(id="X", name="X", tier=2).tier_weight == 0.70

    @staticmethod
    def test_tier_weights_immutable() -> None:
        """The tier weight table is read-only."""
        with pytest.raises(TypeError):
            TIER_WEIGHTS[1] = 2.0  # type: ignore[index]
