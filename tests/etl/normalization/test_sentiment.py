"""Unit tests for keyword sentiment inference."""

import pytest

from src.etl.normalization.sentiment import SentimentInferencer


class TestInfer:
    @staticmethod
    def test_dominant_positive() -> None:
        """Mostly positive words give a positive score."""
        assert SentimentInferencer().infer("A brilliant, stunning, wonderful evening.") == 78

    @staticmethod
    def test_many_positive_hits_reach_outer_band() -> None:
        """Many positive hits reach the rave band."""
        text = "An extraordinary masterpiece: brilliant, stunning and superb."
        assert SentimentInferencer().infer(text) == 88

    @staticmethod
    def test_dominant_negative() -> None:
        """Mostly negative words give a negative score."""
        assert SentimentInferencer().infer("Tedious, dull and overlong.") == 45

    @staticmethod
    def test_many_negative_hits_reach_outer_band() -> None:
        """Many negative hits reach the pan band."""
        text = "Awful. Avoid this tedious, dull, lifeless, stale mess."
        assert SentimentInferencer().infer(text) == 35

    @staticmethod
    def test_mixed_indicators() -> None:
        """Mixed indicators give a mixed score."""
        assert SentimentInferencer().infer("Uneven, with some moments, however the cast tries.") == 60

    @staticmethod
    def test_balanced_polarity() -> None:
        """Balanced polarity lands in the middle."""
        assert SentimentInferencer().infer("brilliant but tedious") == 50

    @staticmethod
    @pytest.mark.parametrize("text", [None, "", "Great", "The show opened on Thursday night."])
    def test_no_score(text: str | None) -> None:
        """Too little signal gives no score."""
        assert SentimentInferencer().infer(text) is None


class TestTally:
    @staticmethod
    def test_strong_words_weigh_more() -> None:
        """Strong words weigh more than ordinary ones."""
        tally = SentimentInferencer.tally("a masterpiece")
        assert tally.positive == 3.0
        assert tally.positive_hits == 1

    @staticmethod
    def test_repeated_words_count_once() -> None:
        """A repeated word counts once."""
        tally = SentimentInferencer.tally("dull dull dull")
        assert tally.negative == 1.0
        assert tally.total == 1.0
