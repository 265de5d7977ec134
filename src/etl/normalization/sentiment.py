"""Keyword sentiment inferencer.

Fallback heuristic used when a review has no explicit rating. The score
is an approximation and is always persisted with inferred provenance.
"""

import logging
import re
from dataclasses import dataclass

from src.etl.scoring.buckets import round_half_up

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - KEYWORDS
# =============================================================================

POSITIVE_WORDS = frozenset(
    {
        "brilliant", "masterpiece", "stunning", "extraordinary", "magnificent",
        "wonderful", "excellent", "superb", "terrific", "delightful", "enchanting",
        "captivating", "riveting", "electrifying", "triumphant", "soaring",
        "dazzling", "star-making", "must-see", "unmissable", "essential",
    }
)

STRONG_POSITIVE_WORDS = frozenset({"masterpiece", "extraordinary", "triumphant", "must-see"})

NEGATIVE_WORDS = frozenset(
    {
        "disappointing", "tedious", "boring", "dull", "flat", "lifeless",
        "uninspired", "mediocre", "weak", "forgettable", "tired", "stale",
        "misguided", "problematic", "awkward", "clunky", "overlong",
    }
)

STRONG_NEGATIVE_WORDS = frozenset({"terrible", "awful", "disaster", "avoid", "skip"})

MIXED_WORDS = frozenset(
    {
        "uneven", "inconsistent", "mixed", "some", "however", "but", "despite",
        "although", "while", "moments", "occasionally",
    }
)


# =============================================================================
# CONSTANTS - WEIGHTS AND BANDS
# =============================================================================

MIN_TEXT_LENGTH = 10
"""Shorter excerpts are not scored."""

STRONG_WEIGHT = 2.0
"""Weight of a strong-positive or strong-negative keyword."""

PLAIN_WEIGHT = 1.0
"""Weight of a positive or negative keyword."""

MIXED_WEIGHT = 0.5
"""Weight of a mixed-indicator keyword."""

DOMINANT_RATIO = 0.6
"""Ratio a polarity needs to dominate."""

OPPOSING_MAX_RATIO = 0.2
"""Maximum ratio of the opposing polarity when one dominates."""

MANY_HITS = 3
"""Keyword hits above this push a dominant polarity to the outer band."""

HIGH_BAND = (78, 88)
"""Scores for dominant positive text (few hits, many hits)."""

LOW_BAND = (45, 35)
"""Scores for dominant negative text (few hits, many hits)."""

MIXED_SCORE = 60
"""Score when mixed indicators dominate."""

_WORD_PATTERN = re.compile(r"[a-z]+(?:-[a-z]+)*")


# =============================================================================
# SENTIMENT TALLY
# =============================================================================


@dataclass
class SentimentTally:
    """Weighted keyword hits in one text.

    Attributes:
        positive: Weighted positive score.
        negative: Weighted negative score.
        mixed: Weighted mixed-indicator score.
        positive_hits: Distinct positive keywords found.
        negative_hits: Distinct negative keywords found.
    """

    positive: float = 0.0
    negative: float = 0.0
    mixed: float = 0.0
    positive_hits: int = 0
    negative_hits: int = 0

    @property
    def total(self) -> float:
        """Total weighted hits."""
        return self.positive + self.negative + self.mixed


# =============================================================================
# INFERENCER
# =============================================================================


class SentimentInferencer:
    """Scores free text from weighted keyword sets."""

    def infer(self, text: str | None) -> int | None:
        """Infer a 0-100 score from review text.

        Args:
            text: Excerpt or full review text.

        Returns:
            Approximate score, or None if too short or no keyword hits.
        """
        if not text or len(text.strip()) < MIN_TEXT_LENGTH:
            return None

        tally = self.tally(text)
        if tally.total == 0:
            return None

        score = self._score_from_tally(tally)
        logger.debug(
            "Inferred %d (pos=%.1f neg=%.1f mixed=%.1f)",
            score,
            tally.positive,
            tally.negative,
            tally.mixed,
        )
        return score

    @staticmethod
    def tally(text: str) -> SentimentTally:
        """Count weighted keyword hits.

        Args:
            text: Text to scan.

        Returns:
            SentimentTally for the text.
        """
        words = set(_WORD_PATTERN.findall(text.lower()))
        tally = SentimentTally()

        for word in words:
            if word in POSITIVE_WORDS:
                tally.positive += PLAIN_WEIGHT
                tally.positive_hits += 1
            if word in STRONG_POSITIVE_WORDS:
                tally.positive += STRONG_WEIGHT
            if word in NEGATIVE_WORDS:
                tally.negative += PLAIN_WEIGHT
                tally.negative_hits += 1
            if word in STRONG_NEGATIVE_WORDS:
                tally.negative += STRONG_WEIGHT
                tally.negative_hits += 1
            if word in MIXED_WORDS:
                tally.mixed += MIXED_WEIGHT

        return tally

    @staticmethod
    def _score_from_tally(tally: SentimentTally) -> int:
        pos_ratio = tally.positive / tally.total
        neg_ratio = tally.negative / tally.total

        if pos_ratio > DOMINANT_RATIO and neg_ratio < OPPOSING_MAX_RATIO:
            return HIGH_BAND[1] if tally.positive_hits > MANY_HITS else HIGH_BAND[0]
        if neg_ratio > DOMINANT_RATIO and pos_ratio < OPPOSING_MAX_RATIO:
            return LOW_BAND[1] if tally.negative_hits > MANY_HITS else LOW_BAND[0]
        if tally.mixed > tally.positive and tally.mixed > tally.negative:
            return MIXED_SCORE
        return round_half_up(50 + 30 * (pos_ratio - neg_ratio))
