"""Review deduplication.

Detects duplicates within one show using, in priority order:
1. Normalized URL
2. Same outlet id and case-insensitive critic name
3. Same outlet id where one side has no critic name
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from urllib.parse import urlsplit

from src.etl.aggregation.merger import ReviewMerger, precedence_key
from src.etl.normalization.schemas import NormalizedReview

logger = logging.getLogger(__name__)


# =============================================================================
# URL NORMALIZATION
# =============================================================================


def normalize_url(url: str | None, strip_query: bool = True) -> str | None:
    """Canonical comparison form of a review URL.

    Lowercases, drops the scheme, "www." and trailing slashes, and
    (by default) the query string and fragment.

    Args:
        url: Review URL.
        strip_query: Drop the query string.

    Returns:
        Normalized URL, None for empty input.
    """
    if not url or not url.strip():
        return None

    text = url.strip().lower()
    parsed = urlsplit(text if "://" in text else f"//{text}")
    host = (parsed.netloc or "").removeprefix("www.")
    path = parsed.path.rstrip("/")
    normalized = f"{host}{path}"
    if parsed.query and not strip_query:
        normalized = f"{normalized}?{parsed.query}"
    return normalized or None


# =============================================================================
# MATCH TYPES AND RESULTS
# =============================================================================


class MatchType(StrEnum):
    """Rule that identified two reviews as duplicates."""

    URL = "url"
    OUTLET_CRITIC = "outlet_critic"
    OUTLET_MISSING_CRITIC = "outlet_missing_critic"


@dataclass(frozen=True)
class DuplicateMatch:
    """Position of a matching candidate and the rule used.

    Attributes:
        index: Index of the candidate in the searched sequence.
        match_type: Rule that matched.
    """

    index: int
    match_type: MatchType


@dataclass
class DeduplicationResult:
    """Deduplicated reviews of one batch.

    Attributes:
        reviews: Unique reviews sorted by outlet id then critic.
        duplicates_removed: Input records merged into another record.
    """

    reviews: list[NormalizedReview] = field(default_factory=list)
    duplicates_removed: int = 0


@dataclass
class MergeOutcome:
    """Result of merging incoming reviews into an existing set.

    Attributes:
        reviews: Combined unique reviews sorted by outlet id then critic.
        added: Incoming reviews with no existing duplicate.
        updated: Incoming duplicates whose merge changed the stored record.
        unchanged: Incoming duplicates that added nothing.
    """

    reviews: list[NormalizedReview] = field(default_factory=list)
    added: int = 0
    updated: int = 0
    unchanged: int = 0


# =============================================================================
# DEDUPLICATION STATISTICS
# =============================================================================


@dataclass
class DeduplicationStats:
    """Statistics for deduplication operations.

    Attributes:
        total_input: Reviews before deduplication.
        duplicates_url: Duplicates found by URL.
        duplicates_outlet_critic: Duplicates found by outlet and critic.
        duplicates_missing_critic: Duplicates found by outlet with a missing critic.
        total_output: Reviews after deduplication.
    """

    total_input: int = 0
    duplicates_url: int = 0
    duplicates_outlet_critic: int = 0
    duplicates_missing_critic: int = 0
    total_output: int = 0

    @property
    def total_duplicates(self) -> int:
        """Calculate total duplicates found."""
        return self.duplicates_url + self.duplicates_outlet_critic + self.duplicates_missing_critic

    def record(self, match_type: MatchType) -> None:
        """Count one duplicate by rule."""
        match match_type:
            case MatchType.URL:
                self.duplicates_url += 1
            case MatchType.OUTLET_CRITIC:
                self.duplicates_outlet_critic += 1
            case MatchType.OUTLET_MISSING_CRITIC:
                self.duplicates_missing_critic += 1

    def log_summary(self) -> None:
        """Log deduplication statistics summary."""
        logger.info(
            "Deduplication: %d -> %d reviews (-%d duplicates: url=%d, outlet+critic=%d, missing critic=%d)",
            self.total_input,
            self.total_output,
            self.total_duplicates,
            self.duplicates_url,
            self.duplicates_outlet_critic,
            self.duplicates_missing_critic,
        )


# =============================================================================
# DEDUPLICATOR
# =============================================================================


class Deduplicator:
    """Removes duplicate reviews and merges them deterministically.

    Attributes:
        stats: Deduplication statistics.
        merger: Merger used for duplicates (holds conflict log).
    """

    def __init__(self, merger: ReviewMerger | None = None) -> None:
        self.stats = DeduplicationStats()
        self.merger = merger or ReviewMerger()

    # =========================================================================
    # Public API
    # =========================================================================

    @staticmethod
    def find_match(
        review: NormalizedReview,
        candidates: Sequence[NormalizedReview],
    ) -> DuplicateMatch | None:
        """Find a duplicate of a review among candidates of the same show.

        Rules are tried in priority order across all candidates, so a URL
        match anywhere beats an outlet/critic match earlier in the list.

        Args:
            review: Review to look up.
            candidates: Already accepted reviews.

        Returns:
            DuplicateMatch or None.
        """
        same_show = [(i, c) for i, c in enumerate(candidates) if c.show_id == review.show_id]

        url = normalize_url(review.url)
        if url:
            for i, candidate in same_show:
                if normalize_url(candidate.url) == url:
                    return DuplicateMatch(i, MatchType.URL)

        same_outlet = [(i, c) for i, c in same_show if c.outlet_id == review.outlet_id]

        if review.critic_slug:
            for i, candidate in same_outlet:
                if candidate.critic_slug == review.critic_slug:
                    return DuplicateMatch(i, MatchType.OUTLET_CRITIC)

        for i, candidate in same_outlet:
            if not candidate.critic_slug or not review.critic_slug:
                return DuplicateMatch(i, MatchType.OUTLET_MISSING_CRITIC)

        return None

    def deduplicate(self, reviews: Iterable[NormalizedReview]) -> DeduplicationResult:
        """Collapse duplicates within a batch.

        Args:
            reviews: Reviews, possibly of several shows.

        Returns:
            DeduplicationResult with unique reviews and removed count.
        """
        ordered = sorted(reviews, key=precedence_key)
        self.stats.total_input += len(ordered)

        unique: list[NormalizedReview] = []
        removed = 0
        for review in ordered:
            match = self.find_match(review, unique)
            if match is None:
                unique.append(review)
                continue
            unique[match.index] = self.merger.merge(unique[match.index], review)
            self.stats.record(match.match_type)
            removed += 1

        result = sorted_reviews(unique)
        self.stats.total_output += len(result)
        return DeduplicationResult(reviews=result, duplicates_removed=removed)

    def merge_with_existing(
        self,
        existing: Iterable[NormalizedReview],
        incoming: Iterable[NormalizedReview],
    ) -> MergeOutcome:
        """Merge incoming reviews into the reviews already stored.

        Args:
            existing: Stored reviews of the show(s).
            incoming: Newly normalized reviews.

        Returns:
            MergeOutcome with combined reviews and added/updated/unchanged counts.
        """
        current = list(existing)
        outcome = MergeOutcome()

        for review in sorted(incoming, key=precedence_key):
            match = self.find_match(review, current)
            if match is None:
                current.append(review)
                outcome.added += 1
                continue

            merged = self.merger.merge(current[match.index], review)
            if merged == current[match.index]:
                outcome.unchanged += 1
            else:
                current[match.index] = merged
                outcome.updated += 1
            self.stats.record(match.match_type)

        outcome.reviews = sorted_reviews(current)
        logger.debug(
            "Merged with existing: added=%d, updated=%d, unchanged=%d",
            outcome.added,
            outcome.updated,
            outcome.unchanged,
        )
        return outcome

    def reset_stats(self) -> None:
        """Reset statistics for a new batch."""
        self.stats = DeduplicationStats()
        self.merger.reset_stats()


def sorted_reviews(reviews: Iterable[NormalizedReview]) -> list[NormalizedReview]:
    """Sort reviews by outlet id, then critic."""
    return sorted(reviews, key=lambda r: (r.show_id, r.outlet_id, r.critic_slug, precedence_key(r)))
