"""Pydantic schemas for oracle ensemble scoring."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Confidence(StrEnum):
    """Agreement level between oracle judgments."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EnsembleResult(BaseModel):
    """Outcome of scoring one text with the oracle ensemble.

    Attributes:
        primary_score: Score from oracle A (or B when A was exhausted).
        secondary_score: Independent oracle B score, None if B failed.
        tiebreaker_score: Oracle C score, only set on high disagreement.
        final_score: Combined score.
        confidence: Agreement level.
        disagreement: |primary - secondary|, None without a secondary.
        flag_for_review: True when a human should check the score.
        primary_oracle: Name of the oracle that produced the primary score.
        used_fallback: True when oracle B replaced an exhausted oracle A.
    """

    model_config = ConfigDict(frozen=True)

    primary_score: int = Field(ge=0, le=100)
    secondary_score: int | None = Field(default=None, ge=0, le=100)
    tiebreaker_score: int | None = Field(default=None, ge=0, le=100)
    final_score: int = Field(ge=0, le=100)
    confidence: Confidence
    disagreement: int | None = Field(default=None, ge=0, le=100)
    flag_for_review: bool = False
    primary_oracle: str
    used_fallback: bool = False
