"""Unit tests for the batch job handle."""

import pytest

from src.etl.exceptions import JobCancelledError
from src.etl.pipeline.job import BatchJob, JobStatus


class TestBatchJob:
    @staticmethod
    def test_defaults() -> None:
        """A new job is pending with a generated id."""
        job = BatchJob()
        assert job.status == JobStatus.PENDING
        assert len(job.job_id) == 12
        assert job.is_cancelled is False

    @staticmethod
    def test_explicit_id() -> None:
        """An explicit job id is kept."""
        assert BatchJob("nightly").job_id == "nightly"

    @staticmethod
    def test_completed_lifecycle() -> None:
        """Start then finish moves a job to completed."""
        job = BatchJob()
        job.start()
        assert job.status == JobStatus.RUNNING
        job.ensure_active()
        job.finish()
        assert job.status == JobStatus.COMPLETED
        assert job.finished_at >= job.started_at

    @staticmethod
    def test_cancel_raises_on_check() -> None:
        """A cancelled job fails its activity check."""
        job = BatchJob()
        job.start()
        job.cancel()
        with pytest.raises(JobCancelledError):
            job.ensure_active()
        job.finish()
        assert job.status == JobStatus.CANCELLED

    @staticmethod
    def test_failed_wins_over_cancelled() -> None:
        """Failure outranks cancellation."""
        job = BatchJob()
        job.cancel()
        job.finish(failed=True)
        assert job.status == JobStatus.FAILED

    @staticmethod
    def test_cancel_after_finish_ignored() -> None:
        """Cancelling a finished job has no effect."""
        job = BatchJob()
        job.start()
        job.finish()
        job.cancel()
        assert job.is_cancelled is False
        assert job.status == JobStatus.COMPLETED
