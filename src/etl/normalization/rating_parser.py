"""Explicit rating parser.

Converts a printed rating string to a 0-100 score by trying an ordered
list of independent strategies; the first strategy that matches wins:

1. Star ratings ("4/5", "3 out of 4", "3.5 stars", "★★★½")
2. Letter grades ("B+", "B plus", "Grade: A-", "B+/A-")
3. Numeric scores ("85/100", "85%", "7.5", "85")
4. Text buckets ("rave", "mostly positive", "pan")
5. Thumbs ("thumbs up", "sideways", "skip")
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from src.etl.normalization.schemas import Designation, ScoreMethod
from src.etl.scoring.buckets import clamp_score, round_half_up

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - LOOKUP TABLES
# =============================================================================

LETTER_GRADE_SCORES = MappingProxyType(
    {
        "A+": 98,
        "A": 95,
        "A-": 92,
        "B+": 88,
        "B": 85,
        "B-": 82,
        "C+": 78,
        "C": 75,
        "C-": 72,
        "D+": 68,
        "D": 65,
        "D-": 62,
        "F": 50,
    }
)
"""Letter grade to score, ordered best to worst (monotonic)."""

TEXT_BUCKET_SCORES = MappingProxyType(
    {
        "masterpiece": 97,
        "ecstatic": 95,
        "rave": 92,
        "brilliant": 92,
        "excellent": 90,
        "outstanding": 90,
        "positive": 80,
        "favorable": 78,
        "recommended": 77,
        "good": 76,
        "enjoyable": 75,
        "solid": 74,
        "mostly positive": 70,
        "generally favorable": 69,
        "mixed-positive": 68,
        "mixed positive": 68,
        "mixed": 60,
        "middling": 58,
        "uneven": 55,
        "so-so": 55,
        "lukewarm": 52,
        "mixed-negative": 48,
        "mixed negative": 48,
        "mostly negative": 45,
        "disappointing": 40,
        "negative": 38,
        "unfavorable": 35,
        "poor": 35,
        "pan": 25,
        "terrible": 20,
        "awful": 18,
        "disastrous": 15,
    }
)
"""Text bucket vocabulary to midpoint score."""

THUMB_SCORES = MappingProxyType(
    {
        "up": 78,
        "thumbs up": 78,
        "thumb up": 78,
        "yes": 78,
        "recommend": 78,
        "flat": 58,
        "sideways": 58,
        "thumbs sideways": 58,
        "maybe": 58,
        "down": 35,
        "thumbs down": 35,
        "thumb down": 35,
        "no": 35,
        "skip": 35,
    }
)
"""Thumb keywords to score."""

DEFAULT_STAR_SCALE = 5
"""Scale assumed for "k stars" and glyph ratings."""

MAX_STAR_SCALE = 10
"""Largest denominator treated as a star scale; larger ones are numeric."""

MIN_DECIMAL_SCALE = 10
"""Bare numbers above this are read as out of 100, others as out of 10."""


# =============================================================================
# CONSTANTS - PATTERNS
# =============================================================================

_NUMBER = r"(\d+(?:\.\d+)?)"

_FRACTION_PATTERN = re.compile(rf"^{_NUMBER}\s*/\s*{_NUMBER}(?:\s*stars?)?$", re.IGNORECASE)
_OUT_OF_PATTERN = re.compile(rf"{_NUMBER}\s*(?:out\s+of|of)\s*{_NUMBER}", re.IGNORECASE)
_STARS_WORD_PATTERN = re.compile(rf"^{_NUMBER}\s*stars?$", re.IGNORECASE)
_HALF_AFTER_DIGIT_PATTERN = re.compile(r"(\d)\s*[½⯨]")

_FULL_GLYPHS = "★⭐*"
_HALF_GLYPHS = "½⯨"
_EMPTY_GLYPHS = "☆"
_GLYPHS = set(_FULL_GLYPHS + _HALF_GLYPHS + _EMPTY_GLYPHS)

_GRADE_WORD_PATTERN = re.compile(r"\bGRADE\b\s*:?\s*")
_LETTER_PATTERN = re.compile(r"^([A-DF])\s*(PLUS|MINUS|\+|-)?$")
_LETTER_RANGE_PATTERN = re.compile(r"^([A-DF][+-]?)\s*/\s*([A-DF][+-]?)$")

_NUMERIC_FRACTION_PATTERN = re.compile(rf"^{_NUMBER}\s*/\s*{_NUMBER}$")
_PERCENT_PATTERN = re.compile(rf"^{_NUMBER}\s*%$")
_BARE_NUMBER_PATTERN = re.compile(rf"^{_NUMBER}$")

_WHITESPACE = re.compile(r"\s+")
_EDGE_PUNCTUATION = " .,;:!?\"'()[]"

DESIGNATION_PATTERNS: tuple[tuple[re.Pattern[str], Designation], ...] = (
    (re.compile(r"critic'?s'?[\s_-]*pick", re.IGNORECASE), Designation.CRITICS_PICK),
    (re.compile(r"critic'?s'?[\s_-]*choice", re.IGNORECASE), Designation.CRITICS_CHOICE),
    (
        re.compile(r"recommended|editor'?s'?[\s_-]*pick|must[\s_-]*see|pick of the week", re.IGNORECASE),
        Designation.RECOMMENDED,
    ),
)
"""Designation detection patterns, checked in order."""


# =============================================================================
# PARSED RATING
# =============================================================================


@dataclass(frozen=True)
class ParsedRating:
    """Successful strategy result.

    Attributes:
        score: Score clamped to [0, 100].
        method: Strategy that matched.
    """

    score: int
    method: ScoreMethod


RatingStrategy = Callable[[str], ParsedRating | None]


# =============================================================================
# STRATEGIES
# =============================================================================


def normalize_star(stars: float, scale: float) -> int:
    """Convert a star rating to a 0-100 score.

    Args:
        stars: Stars awarded.
        scale: Maximum stars.

    Returns:
        round(stars / scale * 100), halves rounded up.

    Raises:
        ValueError: Scale not positive or stars outside [0, scale].
    """
    if scale <= 0:
        raise ValueError(f"Star scale must be positive, got {scale}")
    if not 0 <= stars <= scale:
        raise ValueError(f"Stars {stars} outside [0, {scale}]")
    return round_half_up(stars / scale * 100)


def parse_star_rating(text: str) -> ParsedRating | None:
    """Parse star ratings: "k/n" (n <= 10), "k out of n", "k stars", glyphs."""
    text = _HALF_AFTER_DIGIT_PATTERN.sub(r"\1.5", text.strip())

    match = _FRACTION_PATTERN.match(text)
    if match and float(match.group(2)) <= MAX_STAR_SCALE:
        return _star_result(float(match.group(1)), float(match.group(2)))

    match = _OUT_OF_PATTERN.search(text)
    if match:
        return _star_result(float(match.group(1)), float(match.group(2)))

    match = _STARS_WORD_PATTERN.match(text)
    if match:
        return _star_result(float(match.group(1)), DEFAULT_STAR_SCALE)

    return _parse_star_glyphs(text)


def parse_letter_grade(text: str) -> ParsedRating | None:
    """Parse letter grades, word forms ("B plus") and ranges ("B+/A-")."""
    cleaned = _GRADE_WORD_PATTERN.sub("", text.upper().replace("−", "-").replace("–", "-"))
    cleaned = cleaned.strip(_EDGE_PUNCTUATION)

    range_match = _LETTER_RANGE_PATTERN.match(cleaned)
    if range_match:
        low = LETTER_GRADE_SCORES[range_match.group(1)]
        high = LETTER_GRADE_SCORES[range_match.group(2)]
        return ParsedRating(clamp_score((low + high) / 2), ScoreMethod.LETTER)

    match = _LETTER_PATTERN.match(cleaned)
    if not match:
        return None

    modifier = {"PLUS": "+", "MINUS": "-"}.get(match.group(2) or "", match.group(2) or "")
    grade = match.group(1) + modifier
    if grade not in LETTER_GRADE_SCORES:
        grade = match.group(1)
    return ParsedRating(LETTER_GRADE_SCORES[grade], ScoreMethod.LETTER)


def parse_numeric_rating(text: str) -> ParsedRating | None:
    """Parse "k/n" (n > 10), percentages, and bare numbers.

    A bare number above 10 is read as out of 100, otherwise as out of 10.
    """
    text = text.strip()

    match = _NUMERIC_FRACTION_PATTERN.match(text)
    if match:
        value, scale = float(match.group(1)), float(match.group(2))
        if scale <= 0 or value > scale:
            return None
        return ParsedRating(clamp_score(value / scale * 100), ScoreMethod.NUMERIC)

    match = _PERCENT_PATTERN.match(text)
    if match:
        value = float(match.group(1))
        if value > 100:
            return None
        return ParsedRating(clamp_score(value), ScoreMethod.NUMERIC)

    match = _BARE_NUMBER_PATTERN.match(text)
    if match:
        value = float(match.group(1))
        if value > 100:
            return None
        scaled = value if value > MIN_DECIMAL_SCALE else value * 10
        return ParsedRating(clamp_score(scaled), ScoreMethod.NUMERIC)

    return None


def parse_text_bucket(text: str) -> ParsedRating | None:
    """Match the text bucket vocabulary, exact phrase first then longest phrase."""
    phrase = _normalize_phrase(text)
    if phrase in TEXT_BUCKET_SCORES:
        return ParsedRating(TEXT_BUCKET_SCORES[phrase], ScoreMethod.TEXT_BUCKET)

    for key in sorted(TEXT_BUCKET_SCORES, key=lambda k: (-len(k), k)):
        if _contains_phrase(phrase, key):
            return ParsedRating(TEXT_BUCKET_SCORES[key], ScoreMethod.TEXT_BUCKET)
    return None


def parse_thumb(text: str) -> ParsedRating | None:
    """Match thumb keywords; single words only on an exact match."""
    phrase = _normalize_phrase(text)
    if phrase in THUMB_SCORES:
        return ParsedRating(THUMB_SCORES[phrase], ScoreMethod.THUMB)

    for key in sorted(THUMB_SCORES, key=lambda k: (-len(k), k)):
        if " " in key and _contains_phrase(phrase, key):
            return ParsedRating(THUMB_SCORES[key], ScoreMethod.THUMB)
    return None


DEFAULT_STRATEGIES: tuple[RatingStrategy, ...] = (
    parse_star_rating,
    parse_letter_grade,
    parse_numeric_rating,
    parse_text_bucket,
    parse_thumb,
)
"""Strategy order; first match wins."""


# =============================================================================
# DESIGNATIONS
# =============================================================================


def detect_designation(text: str | None) -> Designation | None:
    """Find an editorial designation in free text.

    Args:
        text: Designation, rating, or excerpt text.

    Returns:
        First matching Designation or None.
    """
    if not text:
        return None
    for pattern, designation in DESIGNATION_PATTERNS:
        if pattern.search(text):
            return designation
    return None


def is_designation_only(rating: str) -> bool:
    """True when a rating string is only a designation, not a score."""
    phrase = _normalize_phrase(rating)
    return any(pattern.fullmatch(phrase) for pattern, _ in DESIGNATION_PATTERNS)


# =============================================================================
# PARSER
# =============================================================================


class RatingParser:
    """Runs rating strategies in a fixed order.

    Attributes:
        strategies: Ordered strategy functions.
    """

    def __init__(self, strategies: Sequence[RatingStrategy] | None = None) -> None:
        """Initialize parser.

        Args:
            strategies: Custom ordered strategies (default: DEFAULT_STRATEGIES).
        """
        self.strategies = tuple(strategies or DEFAULT_STRATEGIES)

    def parse(self, rating: str | None) -> ParsedRating | None:
        """Normalize a printed rating.

        Args:
            rating: Raw rating string.

        Returns:
            ParsedRating from the first matching strategy, or None.
        """
        if not rating or not rating.strip():
            return None
        if is_designation_only(rating):
            logger.debug("Designation-only rating skipped: %r", rating)
            return None

        for strategy in self.strategies:
            result = strategy(rating)
            if result is not None:
                return ParsedRating(clamp_score(result.score), result.method)

        logger.debug("No rating strategy matched %r", rating)
        return None


# =============================================================================
# HELPERS
# =============================================================================


def _star_result(stars: float, scale: float) -> ParsedRating | None:
    try:
        return ParsedRating(clamp_score(normalize_star(stars, scale)), ScoreMethod.STAR)
    except ValueError:
        return None


def _parse_star_glyphs(text: str) -> ParsedRating | None:
    compact = _WHITESPACE.sub("", text)
    if not compact or any(char not in _GLYPHS for char in compact):
        return None

    full = sum(compact.count(glyph) for glyph in _FULL_GLYPHS)
    half = sum(compact.count(glyph) for glyph in _HALF_GLYPHS)
    empty = compact.count(_EMPTY_GLYPHS)
    scale = max(DEFAULT_STAR_SCALE, full + half + empty)
    return _star_result(full + 0.5 * half, scale)


def _normalize_phrase(text: str) -> str:
    return _WHITESPACE.sub(" ", text.lower()).strip(_EDGE_PUNCTUATION)


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"(?<![\w-]){re.escape(phrase)}(?![\w-])", text) is not None
