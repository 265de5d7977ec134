"""Side-channel validation and audit of scored reviews."""

from src.etl.validation.audit import (
    AuditEntry,
    AuditFlag,
    AuditReport,
    ReviewPriority,
    audit_flags,
    build_audit_report,
    disagreement_threshold,
)
from src.etl.validation.validator import (
    IssueKind,
    ReviewValidator,
    ValidationIssue,
    ValidationReport,
)

__all__ = [
    "AuditEntry",
    "AuditFlag",
    "AuditReport",
    "ReviewPriority",
    "audit_flags",
    "build_audit_report",
    "disagreement_threshold",
    "IssueKind",
    "ReviewValidator",
    "ValidationIssue",
    "ValidationReport",
]
