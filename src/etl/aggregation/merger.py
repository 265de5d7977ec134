"""Deterministic merge of duplicate reviews.

The winner of a merge is chosen by an explicit precedence key, so
merge(a, b) == merge(b, a) and merge(a, a) == a:

1. has URL
2. has critic name
3. has pull quote
4. has publish date
5. earlier publish date
6. outlet id (lexical)
7. canonical record fingerprint
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.etl.normalization.schemas import NormalizedReview

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

FILLABLE_FIELDS = (
    "critic_name",
    "url",
    "publish_date",
    "pull_quote",
    "excerpt",
    "designation",
)
"""Optional fields the winner takes from the loser when it lacks them."""


# =============================================================================
# PRECEDENCE
# =============================================================================


def precedence_key(review: NormalizedReview) -> tuple[Any, ...]:
    """Sort key of a review; the smaller key wins a merge.

    Args:
        review: Candidate review.

    Returns:
        Tuple implementing the precedence order (total).
    """
    return (
        review.url is None,
        review.critic_name is None,
        review.pull_quote is None,
        review.publish_date is None,
        review.publish_date or date.max,
        review.outlet_id,
        review.model_dump_json(),
    )


# =============================================================================
# CONFLICTS AND STATISTICS
# =============================================================================


@dataclass(frozen=True)
class DuplicateConflict:
    """Two duplicates that carried different scores.

    Attributes:
        show_id: Production identifier.
        outlet_id: Outlet of the kept record.
        critic_name: Critic of the merged record.
        kept_score: Score of the winner.
        dropped_score: Score of the loser.
        kept_provenance: Provenance of the winner.
        dropped_provenance: Provenance of the loser.
    """

    show_id: str
    outlet_id: str
    critic_name: str | None
    kept_score: int
    dropped_score: int
    kept_provenance: str
    dropped_provenance: str

    def to_dict(self) -> dict[str, Any]:
        """Convert conflict to dictionary for JSON export."""
        return {
            "show_id": self.show_id,
            "outlet_id": self.outlet_id,
            "critic_name": self.critic_name,
            "kept_score": self.kept_score,
            "dropped_score": self.dropped_score,
            "kept_provenance": self.kept_provenance,
            "dropped_provenance": self.dropped_provenance,
        }


@dataclass
class MergeStats:
    """Statistics for merge operations.

    Attributes:
        merges: Pairs merged.
        fields_filled: Optional fields taken from losers.
        conflicts: Score conflicts logged.
    """

    merges: int = 0
    fields_filled: int = 0
    conflicts: list[DuplicateConflict] = field(default_factory=list)

    def log_summary(self) -> None:
        """Log merge statistics summary."""
        logger.info(
            "Merge: %d pairs merged, %d fields filled, %d score conflicts",
            self.merges,
            self.fields_filled,
            len(self.conflicts),
        )


# =============================================================================
# MERGER
# =============================================================================


class ReviewMerger:
    """Merges duplicate reviews of the same show.

    Attributes:
        stats: Merge statistics, including logged conflicts.
    """

    def __init__(self) -> None:
        self.stats = MergeStats()

    def merge(self, first: NormalizedReview, second: NormalizedReview) -> NormalizedReview:
        """Merge two duplicates into one record.

        The winner keeps score, bucket, thumb, provenance and method; its
        missing optional fields are filled from the loser; flags are unioned.

        Args:
            first: One duplicate.
            second: The other duplicate.

        Returns:
            Merged review (independent of argument order).
        """
        winner, loser = sorted((first, second), key=precedence_key)
        if winner == loser:
            return winner

        updates: dict[str, Any] = {}
        for name in FILLABLE_FIELDS:
            if getattr(winner, name) is None and getattr(loser, name) is not None:
                updates[name] = getattr(loser, name)

        flags = sorted(set(winner.flags) | set(loser.flags))
        if flags != winner.flags:
            updates["flags"] = flags

        if winner.assigned_score != loser.assigned_score:
            self._record_conflict(winner, loser)

        self.stats.merges += 1
        self.stats.fields_filled += len(updates) - ("flags" in updates)
        return winner.model_copy(update=updates)

    def reset_stats(self) -> None:
        """Reset statistics for a new batch."""
        self.stats = MergeStats()

    def _record_conflict(self, winner: NormalizedReview, loser: NormalizedReview) -> None:
        conflict = DuplicateConflict(
            show_id=winner.show_id,
            outlet_id=winner.outlet_id,
            critic_name=winner.critic_name or loser.critic_name,
            kept_score=winner.assigned_score,
            dropped_score=loser.assigned_score,
            kept_provenance=winner.provenance,
            dropped_provenance=loser.provenance,
        )
        self.stats.conflicts.append(conflict)
        logger.info(
            "DuplicateConflict %s/%s (%s): kept %d (%s), dropped %d (%s)",
            conflict.show_id,
            conflict.outlet_id,
            conflict.critic_name or "-",
            conflict.kept_score,
            conflict.kept_provenance,
            conflict.dropped_score,
            conflict.dropped_provenance,
        )
