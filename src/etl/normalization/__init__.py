"""Review normalization: outlet resolution, rating parsing, and scoring chain.

Example:
    >>> from src.etl.normalization import ReviewNormalizer, RawReview
    >>> normalizer = ReviewNormalizer()
    >>> review = await normalizer.normalize(RawReview(show_id="hamlet", outlet="NYT", original_rating="4/5"))
    >>> review.assigned_score
    80
"""

from src.etl.normalization.normalizer import (
    NormalizationBatch,
    NormalizationStats,
    Rejection,
    ReviewNormalizer,
)
from src.etl.normalization.outlets import (
    DEFAULT_OUTLETS,
    OutletResolver,
    ResolvedOutlet,
    load_outlets,
)
from src.etl.normalization.rating_parser import ParsedRating, RatingParser
from src.etl.normalization.schemas import (
    TIER_WEIGHTS,
    Designation,
    NormalizedReview,
    OutletConfig,
    RawReview,
    ScoreMethod,
    ScoreProvenance,
)
from src.etl.normalization.sentiment import SentimentInferencer

__all__ = [
    # Normalizer
    "ReviewNormalizer",
    "NormalizationBatch",
    "NormalizationStats",
    "Rejection",
    # Outlets
    "DEFAULT_OUTLETS",
    "OutletResolver",
    "ResolvedOutlet",
    "load_outlets",
    # Parsing
    "RatingParser",
    "ParsedRating",
    "SentimentInferencer",
    # Schemas
    "TIER_WEIGHTS",
    "Designation",
    "NormalizedReview",
    "OutletConfig",
    "RawReview",
    "ScoreMethod",
    "ScoreProvenance",
]
