"""Batch input models.

A batch file groups raw reviews by show:

    {"shows": [{"show_id": "...", "opening_date": "2024-03-01",
                "reviews": [{"outlet": "...", "original_rating": "4/5"}]}]}

Reviews inherit the show id of their group when they omit it.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from src.etl.exceptions import BatchFormatError
from src.etl.normalization.schemas import RawReview

logger = logging.getLogger(__name__)


class ShowInput(BaseModel):
    """Raw reviews of one show.

    Attributes:
        show_id: Production identifier.
        opening_date: Official opening, enables the publish date check.
        reviews: Raw reviews of the show.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    show_id: str = Field(min_length=1, max_length=200)
    opening_date: date | None = None
    reviews: tuple[RawReview, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def inherit_show_id(cls, data: Any) -> Any:
        """Fill the show id of reviews that omit it."""
        if not isinstance(data, dict) or "show_id" not in data:
            return data
        reviews = data.get("reviews") or []
        data = dict(data)
        data["reviews"] = [
            {"show_id": data["show_id"], **review} if isinstance(review, dict) else review
            for review in reviews
        ]
        return data

    @model_validator(mode="after")
    def check_review_shows(self) -> "ShowInput":
        """Reject reviews filed under another show."""
        for review in self.reviews:
            if review.show_id != self.show_id:
                raise ValueError(f"Review for {review.show_id} listed under show {self.show_id}")
        return self


class ReviewBatch(BaseModel):
    """One pipeline input."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    shows: tuple[ShowInput, ...] = ()

    @model_validator(mode="after")
    def check_unique_shows(self) -> "ReviewBatch":
        """Each show may appear only once per batch."""
        show_ids = [show.show_id for show in self.shows]
        if len(show_ids) != len(set(show_ids)):
            raise ValueError("Duplicate show_id in batch")
        return self

    @property
    def review_count(self) -> int:
        """Raw reviews across all shows."""
        return sum(len(show.reviews) for show in self.shows)


def load_batch(path: Path) -> ReviewBatch:
    """Read and validate a batch file.

    Args:
        path: JSON batch file.

    Returns:
        Validated ReviewBatch.

    Raises:
        BatchFormatError: File missing, not JSON, or not a valid batch.
    """
    if not path.exists():
        raise BatchFormatError(f"Batch file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            batch = ReviewBatch.model_validate(json.load(f))
    except json.JSONDecodeError as e:
        raise BatchFormatError(f"Invalid JSON in {path}: {e}") from e
    except ValidationError as e:
        raise BatchFormatError(f"Invalid batch {path}: {e}") from e

    logger.info("Loaded batch %s: %d shows, %d reviews", path.name, len(batch.shows), batch.review_count)
    return batch
