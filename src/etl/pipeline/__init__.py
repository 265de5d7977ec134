"""Review pipeline package.

Runs review batches through normalization, merge, aggregation,
validation, and persistence.

Public API:
    - ReviewPipeline: Batch orchestration
    - BatchJob: Cancellable job handle
    - load_batch: Batch file reader
    - main: CLI entry point
"""

from src.etl.pipeline.batch import ReviewBatch, ShowInput, load_batch
from src.etl.pipeline.cli import main
from src.etl.pipeline.job import BatchJob, JobStatus
from src.etl.pipeline.orchestrator import (
    PipelineResult,
    PipelineStats,
    ReviewPipeline,
    ShowOutcome,
    ShowStatus,
)

__all__ = [
    # Orchestration
    "ReviewPipeline",
    "PipelineResult",
    "PipelineStats",
    "ShowOutcome",
    "ShowStatus",
    # Jobs
    "BatchJob",
    "JobStatus",
    # Input
    "ReviewBatch",
    "ShowInput",
    "load_batch",
    # CLI
    "main",
]
