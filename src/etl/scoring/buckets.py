"""Score bands shared by every scoring stage.

Bucket and thumb are total functions of an integer score in [0, 100].
"""

import math
from enum import StrEnum

# =============================================================================
# CONSTANTS
# =============================================================================

MIN_SCORE = 0
"""Lowest valid review score."""

MAX_SCORE = 100
"""Highest valid review score."""

RAVE_MIN = 85
"""Lowest score in the Rave bucket."""

POSITIVE_MIN = 70
"""Lowest score in the Positive bucket (and Up thumb)."""

MIXED_MIN = 50
"""Lowest score in the Mixed bucket (and Flat thumb)."""


# =============================================================================
# ENUMS
# =============================================================================


class Bucket(StrEnum):
    """Coarse sentiment class derived from a score."""

    RAVE = "Rave"
    POSITIVE = "Positive"
    MIXED = "Mixed"
    PAN = "Pan"


class Thumb(StrEnum):
    """Ternary recommendation derived from a score."""

    UP = "Up"
    FLAT = "Flat"
    DOWN = "Down"


BUCKET_RANGES: dict[Bucket, tuple[int, int]] = {
    Bucket.PAN: (MIN_SCORE, MIXED_MIN),
    Bucket.MIXED: (MIXED_MIN, POSITIVE_MIN),
    Bucket.POSITIVE: (POSITIVE_MIN, RAVE_MIN),
    Bucket.RAVE: (RAVE_MIN, MAX_SCORE),
}
"""Half-open [low, high) score range per bucket, ordered low to high (Rave includes 100)."""


# =============================================================================
# FUNCTIONS
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up.

    Args:
        value: Number to round.

    Returns:
        Rounded integer (82.5 -> 83).
    """
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round and clamp a score into [0, 100]."""
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(value)))


def score_to_bucket(score: float) -> Bucket:
    """Map a score to its bucket.

    Args:
        score: Score in [0, 100].

    Returns:
        Rave >= 85, Positive >= 70, Mixed >= 50, else Pan.
    """
    if score >= RAVE_MIN:
        return Bucket.RAVE
    if score >= POSITIVE_MIN:
        return Bucket.POSITIVE
    if score >= MIXED_MIN:
        return Bucket.MIXED
    return Bucket.PAN


def score_to_thumb(score: float) -> Thumb:
    """Map a score to its thumb.

    Args:
        score: Score in [0, 100].

    Returns:
        Up >= 70, Flat >= 50, else Down.
    """
    if score >= POSITIVE_MIN:
        return Thumb.UP
    if score >= MIXED_MIN:
        return Thumb.FLAT
    return Thumb.DOWN


def bucket_midpoint(bucket: Bucket) -> float:
    """Return the midpoint of a bucket's score range."""
    low, high = BUCKET_RANGES[bucket]
    return (low + high) / 2
