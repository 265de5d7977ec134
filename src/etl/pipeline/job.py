"""Batch job handle with cooperative cancellation.

Cancelling a job never interrupts an oracle call already in flight.
Each show checks the job right before writing to the store, so a
cancelled batch leaves every show either fully written or untouched.
"""

import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum

from src.etl.exceptions import JobCancelledError

logger = logging.getLogger(__name__)


class JobStatus(StrEnum):
    """Lifecycle states of a batch job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class BatchJob:
    """Handle on one pipeline run.

    Attributes:
        job_id: Unique job identifier.
        status: Current lifecycle state.
        started_at: Time the run started.
        finished_at: Time the run ended.
    """

    def __init__(self, job_id: str | None = None) -> None:
        self.job_id = job_id or uuid.uuid4().hex[:12]
        self.status = JobStatus.PENDING
        self.started_at: datetime | None = None
        self.finished_at: datetime | None = None
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Shows not yet written are skipped."""
        if self.status in (JobStatus.COMPLETED, JobStatus.FAILED):
            logger.debug("Job %s already finished, cancel ignored", self.job_id)
            return
        self._cancelled = True
        logger.warning("Job %s cancellation requested", self.job_id)

    def ensure_active(self) -> None:
        """Raise if the job was cancelled.

        Raises:
            JobCancelledError: Cancellation was requested.
        """
        if self._cancelled:
            raise JobCancelledError(f"Job {self.job_id} was cancelled")

    def start(self) -> None:
        """Mark the job as running."""
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now(UTC)

    def finish(self, failed: bool = False) -> None:
        """Mark the job as ended.

        Args:
            failed: True when a systemic error aborted the run.
        """
        if failed:
            self.status = JobStatus.FAILED
        elif self._cancelled:
            self.status = JobStatus.CANCELLED
        else:
            self.status = JobStatus.COMPLETED
        self.finished_at = datetime.now(UTC)
