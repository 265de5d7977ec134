"""Audit report for the human-review workflow.

Tags scored reviews with a fixed flag taxonomy and sorts them into
review priorities:

- A: no flags, skip manual review
- B: at most one minor flag, spot-check a sample
- C: several flags or high oracle disagreement, full review
"""

import json
import logging
import statistics
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from src.etl.normalization.outlets import UNKNOWN_OUTLET_FLAG
from src.etl.normalization.schemas import NormalizedReview, ScoreProvenance

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

CONVERSION_EDGE_PATTERNS = ("B+", "B-", "A-", "C+", "3.5", "2.5", "½", "⯨")
"""Rating fragments whose conversion is known to be borderline."""

AMBIGUOUS_PATTERNS = ("mixed", "recommended", "fresh", "rotten")
"""Rating words that do not pin down a score."""

STAR_GLYPHS = ("★", "⭐", "☆", "½", "⯨")
"""Unicode star glyphs; extracted glyph ratings are error-prone."""

SIGMA_FACTOR = 2.0
"""Disagreements above mean + SIGMA_FACTOR * stdev are outliers."""

JSON_INDENT = 2
"""JSON indentation for readable output."""


# =============================================================================
# TAXONOMY
# =============================================================================


class AuditFlag(StrEnum):
    """Fixed audit flag taxonomy."""

    PROBLEMATIC_SOURCE = "problematic_source"
    HIGH_LLM_DISAGREEMENT = "high_llm_disagreement"
    CONVERSION_EDGE_CASE = "conversion_edge_case"
    AMBIGUOUS_SCORE = "ambiguous_score"
    MISSING_CONTEXT = "missing_context"


class ReviewPriority(StrEnum):
    """How much manual review a flagged record needs."""

    SKIP = "A"
    SPOT_CHECK = "B"
    FULL_REVIEW = "C"


@dataclass(frozen=True)
class AuditEntry:
    """One review with its audit flags.

    Attributes:
        show_id: Production identifier.
        outlet_id: Canonical outlet id.
        critic_name: Critic display name.
        assigned_score: Score in [0, 100].
        original_rating: Printed rating.
        provenance: Score provenance.
        flags: Audit flags (sorted).
        priority: Review priority.
    """

    show_id: str
    outlet_id: str
    critic_name: str | None
    assigned_score: int
    original_rating: str | None
    provenance: str
    flags: tuple[AuditFlag, ...]
    priority: ReviewPriority

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to dictionary for JSON export."""
        return {
            "show_id": self.show_id,
            "outlet_id": self.outlet_id,
            "critic_name": self.critic_name,
            "assigned_score": self.assigned_score,
            "original_rating": self.original_rating,
            "provenance": self.provenance,
            "flags": [flag.value for flag in self.flags],
            "priority": self.priority.value,
        }


@dataclass
class AuditReport:
    """Audit entries of one batch.

    Attributes:
        entries: Entries for every audited review.
        disagreement_threshold: Outlier threshold used for oracle disagreement.
    """

    entries: list[AuditEntry] = field(default_factory=list)
    disagreement_threshold: float | None = None

    @property
    def flagged(self) -> list[AuditEntry]:
        """Entries with at least one flag."""
        return [entry for entry in self.entries if entry.flags]

    @property
    def flag_counts(self) -> dict[str, int]:
        """Number of entries per flag."""
        return dict(Counter(flag.value for entry in self.entries for flag in entry.flags))

    @property
    def priority_counts(self) -> dict[str, int]:
        """Number of entries per priority."""
        return dict(Counter(entry.priority.value for entry in self.entries))

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON export."""
        return {
            "generated_at": datetime.now(UTC).isoformat(),
            "count": len(self.entries),
            "flagged": len(self.flagged),
            "disagreement_threshold": self.disagreement_threshold,
            "flags": self.flag_counts,
            "priorities": self.priority_counts,
            "entries": [entry.to_dict() for entry in self.flagged],
        }

    def export_json(self, output_path: Path) -> Path:
        """Write flagged entries and counts to JSON.

        Args:
            output_path: Target file.

        Returns:
            Path written.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=JSON_INDENT, ensure_ascii=False)
        logger.info("Exported %d flagged reviews to %s", len(self.flagged), output_path)
        return output_path

    def log_summary(self) -> None:
        """Log audit summary."""
        logger.info(
            "Audit: %d/%d reviews flagged %s, priorities %s",
            len(self.flagged),
            len(self.entries),
            self.flag_counts,
            self.priority_counts,
        )


# =============================================================================
# AUDITOR
# =============================================================================


def disagreement_threshold(reviews: Sequence[NormalizedReview]) -> float | None:
    """Outlier threshold of oracle disagreement over a batch.

    Args:
        reviews: Reviews of the batch.

    Returns:
        mean + 2 * stdev of ensemble disagreements, None with fewer than two.
    """
    values = [
        review.ensemble.disagreement
        for review in reviews
        if review.ensemble is not None and review.ensemble.disagreement is not None
    ]
    if len(values) < 2:
        return None
    return statistics.fmean(values) + SIGMA_FACTOR * statistics.pstdev(values)


def audit_flags(review: NormalizedReview, threshold: float | None = None) -> tuple[AuditFlag, ...]:
    """Compute the audit flags of one review.

    Args:
        review: Review to audit.
        threshold: Batch disagreement threshold (see ``disagreement_threshold``).

    Returns:
        Sorted tuple of flags.
    """
    flags: set[AuditFlag] = set()
    rating = review.original_rating or ""

    if (
        review.provenance == ScoreProvenance.INFERRED
        or UNKNOWN_OUTLET_FLAG in review.flags
        or any(glyph in rating for glyph in STAR_GLYPHS)
    ):
        flags.add(AuditFlag.PROBLEMATIC_SOURCE)

    ensemble = review.ensemble
    if ensemble is not None and (
        ensemble.flag_for_review
        or (
            threshold is not None
            and ensemble.disagreement is not None
            and ensemble.disagreement > threshold
        )
    ):
        flags.add(AuditFlag.HIGH_LLM_DISAGREEMENT)

    if any(pattern in rating for pattern in CONVERSION_EDGE_PATTERNS):
        flags.add(AuditFlag.CONVERSION_EDGE_CASE)

    if any(pattern in rating.lower() for pattern in AMBIGUOUS_PATTERNS):
        flags.add(AuditFlag.AMBIGUOUS_SCORE)

    if not rating and not review.excerpt and not review.pull_quote:
        flags.add(AuditFlag.MISSING_CONTEXT)

    return tuple(sorted(flags))


def review_priority(flags: Sequence[AuditFlag]) -> ReviewPriority:
    """Map audit flags to a review priority."""
    if not flags:
        return ReviewPriority.SKIP
    if len(flags) == 1 and AuditFlag.HIGH_LLM_DISAGREEMENT not in flags:
        return ReviewPriority.SPOT_CHECK
    return ReviewPriority.FULL_REVIEW


def build_audit_report(reviews: Sequence[NormalizedReview]) -> AuditReport:
    """Audit a batch of reviews.

    Args:
        reviews: Normalized reviews.

    Returns:
        AuditReport with one entry per review.
    """
    threshold = disagreement_threshold(reviews)
    report = AuditReport(
        disagreement_threshold=round(threshold, 2) if threshold is not None else None
    )
    for review in reviews:
        flags = audit_flags(review, threshold)
        report.entries.append(
            AuditEntry(
                show_id=review.show_id,
                outlet_id=review.outlet_id,
                critic_name=review.critic_name,
                assigned_score=review.assigned_score,
                original_rating=review.original_rating,
                provenance=review.provenance.value,
                flags=flags,
                priority=review_priority(flags),
            )
        )
    return report
