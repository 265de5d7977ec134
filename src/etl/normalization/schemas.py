"""Pydantic schemas for review normalization.

Defines the raw review handed over by the retrieval collaborator,
the static outlet configuration, and the normalized review record.
"""

import re
from datetime import date
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.etl.scoring.buckets import Bucket, Thumb, score_to_bucket, score_to_thumb
from src.etl.scoring.schemas import EnsembleResult

# =============================================================================
# CONSTANTS
# =============================================================================

TIER_WEIGHTS = MappingProxyType({1: 1.0, 2: 0.70, 3: 0.40})
"""Aggregation weight per outlet tier (1 major, 2 regional/trade, 3 niche)."""

DEFAULT_TIER = 3
"""Tier assigned to outlets missing from the registry."""

OUTLET_ID_MAX_LENGTH = 20
"""Longest canonical outlet id."""

OUTLET_NAME_MAX_LENGTH = 200
"""Longest outlet display name."""

_CRITIC_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


# =============================================================================
# ENUMS
# =============================================================================


class ScoreProvenance(StrEnum):
    """Where an assigned score came from."""

    EXPLICIT = "explicit"
    ENSEMBLE = "ensemble"
    INFERRED = "inferred"


class ScoreMethod(StrEnum):
    """Which strategy produced an assigned score."""

    STAR = "star"
    LETTER = "letter"
    NUMERIC = "numeric"
    TEXT_BUCKET = "text_bucket"
    THUMB = "thumb"
    ENSEMBLE = "ensemble"
    SENTIMENT = "sentiment"


class Designation(StrEnum):
    """Editorial designations awarded by outlets."""

    CRITICS_PICK = "Critics_Pick"
    CRITICS_CHOICE = "Critics_Choice"
    RECOMMENDED = "Recommended"


class RatingFormat(StrEnum):
    """Rating format an outlet usually publishes."""

    STARS = "stars"
    LETTER = "letter"
    NUMERIC = "numeric"
    TEXT = "text"


# =============================================================================
# HELPERS
# =============================================================================


def slugify_critic(name: str | None) -> str:
    """Build a comparison key for a critic name.

    Args:
        name: Critic display name.

    Returns:
        Lowercase dash-separated slug, empty when no name.
    """
    if not name:
        return ""
    return _CRITIC_SLUG_PATTERN.sub("-", name.lower()).strip("-")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# =============================================================================
# RAW REVIEW
# =============================================================================


class RawReview(BaseModel):
    """Review as produced by the external retrieval collaborator.

    Attributes:
        show_id: Production identifier.
        source: Tag of the retrieval source.
        outlet: Outlet name, id, or URL.
        url: Review URL.
        critic_name: Critic display name.
        publish_date: Publication date.
        original_rating: Rating string as printed by the outlet.
        rating_type: Optional hint about the rating format.
        excerpt: Free review text or excerpt.
        pull_quote: Short quotable excerpt.
        designation: Editorial designation text.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, frozen=True)

    show_id: str = Field(min_length=1, max_length=200)
    source: str = Field(default="unknown", max_length=100)
    outlet: str = Field(min_length=1, max_length=300)
    url: str | None = Field(default=None, max_length=2000)
    critic_name: str | None = Field(default=None, max_length=200)
    publish_date: date | None = None
    original_rating: str | None = Field(default=None, max_length=200)
    rating_type: str | None = Field(default=None, max_length=50)
    excerpt: str | None = None
    pull_quote: str | None = None
    designation: str | None = Field(default=None, max_length=100)

    @field_validator(
        "url",
        "critic_name",
        "original_rating",
        "rating_type",
        "excerpt",
        "pull_quote",
        "designation",
        mode="before",
    )
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        """Treat blank strings as missing."""
        return _blank_to_none(v)

    @field_validator("publish_date", mode="before")
    @classmethod
    def parse_publish_date(cls, v: Any) -> Any:
        """Accept ISO datetimes by keeping their date part."""
        v = _blank_to_none(v)
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v


# =============================================================================
# OUTLET CONFIG
# =============================================================================


class OutletConfig(BaseModel):
    """Static outlet registry entry.

    Attributes:
        id: Canonical outlet id (e.g. NYT).
        name: Display name.
        tier: Importance tier (1-3).
        aliases: Alternative names.
        domain: Web domain used for URL matching.
        rating_format: Format the outlet usually publishes.
        max_scale: Star scale when rating_format is stars.
        enabled: Disabled outlets still resolve but are logged.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1, max_length=OUTLET_ID_MAX_LENGTH)
    name: str = Field(min_length=1, max_length=OUTLET_NAME_MAX_LENGTH)
    tier: int = Field(ge=1, le=3)
    aliases: tuple[str, ...] = ()
    domain: str | None = None
    rating_format: RatingFormat = RatingFormat.TEXT
    max_scale: int | None = Field(default=None, ge=1, le=100)
    enabled: bool = True

    @property
    def tier_weight(self) -> float:
        """Aggregation weight for this outlet's tier."""
        return TIER_WEIGHTS[self.tier]


# =============================================================================
# NORMALIZED REVIEW
# =============================================================================


class NormalizedReview(BaseModel):
    """Scored review ready for deduplication and aggregation.

    Bucket and thumb are stored as given. Use ``from_score`` to derive them;
    a stored mismatch is reported by the validator, never coerced here.

    Attributes:
        show_id: Production identifier.
        outlet_id: Canonical outlet id.
        outlet_name: Outlet display name.
        tier: Outlet tier (1-3).
        critic_name: Critic display name.
        url: Review URL.
        publish_date: Publication date.
        assigned_score: Score in [0, 100].
        original_rating: Rating string as printed.
        bucket: Coarse sentiment class.
        thumb: Ternary recommendation.
        designation: Editorial designation.
        pull_quote: Short quotable excerpt.
        excerpt: Review text used for scoring.
        provenance: explicit, ensemble, or inferred.
        score_method: Strategy that produced the score.
        source: Retrieval source tag.
        flags: Advisory flags (sorted, unique).
        ensemble: Oracle ensemble details when provenance is ensemble.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    show_id: str = Field(min_length=1)
    outlet_id: str = Field(min_length=1)
    outlet_name: str = Field(min_length=1)
    tier: int = Field(default=DEFAULT_TIER, ge=1, le=3)
    critic_name: str | None = None
    url: str | None = None
    publish_date: date | None = None
    assigned_score: int = Field(ge=0, le=100)
    original_rating: str | None = None
    bucket: Bucket
    thumb: Thumb
    designation: Designation | None = None
    pull_quote: str | None = None
    excerpt: str | None = None
    provenance: ScoreProvenance
    score_method: ScoreMethod
    source: str = "unknown"
    flags: list[str] = Field(default_factory=list)
    ensemble: EnsembleResult | None = None

    @field_validator("critic_name", "url", "original_rating", "pull_quote", "excerpt", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        """Treat blank strings as missing."""
        return _blank_to_none(v)

    @field_validator("flags")
    @classmethod
    def normalize_flags(cls, v: list[str]) -> list[str]:
        """Keep flags unique and sorted."""
        return sorted(set(v))

    @classmethod
    def from_score(cls, score: int, **fields: Any) -> Self:
        """Build a review with bucket and thumb derived from its score.

        Args:
            score: Assigned score in [0, 100].
            **fields: Remaining NormalizedReview fields.

        Returns:
            NormalizedReview instance.
        """
        return cls(
            assigned_score=score,
            bucket=score_to_bucket(score),
            thumb=score_to_thumb(score),
            **fields,
        )

    @property
    def critic_slug(self) -> str:
        """Comparison key for the critic name."""
        return slugify_critic(self.critic_name)

    @property
    def review_key(self) -> str:
        """Identity key within a show: outlet id and critic slug."""
        return f"{self.outlet_id}::{self.critic_slug}"

    @property
    def tier_weight(self) -> float:
        """Aggregation weight for this review's tier."""
        return TIER_WEIGHTS[self.tier]

    @property
    def is_explicit(self) -> bool:
        """True when the score was printed by the critic."""
        return self.provenance == ScoreProvenance.EXPLICIT
