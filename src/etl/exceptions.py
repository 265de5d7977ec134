"""Exception hierarchy for the review scoring pipeline.

Per-review errors (rating parse, oracle) are caught by the pipeline and
counted as rejections. Configuration errors are systemic and abort the run.
"""


class ReviewPipelineError(Exception):
    """Base exception for review pipeline errors."""

    pass


class ReviewRejectedError(ReviewPipelineError):
    """Raised when a review cannot be scored and must not be persisted."""

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class RatingParseError(ReviewRejectedError):
    """Raised when no rating strategy or excerpt yields a score."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="parse_failure")


class OutletResolutionError(ReviewRejectedError):
    """Raised when a review's outlet cannot be turned into an outlet config."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="invalid_outlet")


class OracleError(ReviewPipelineError):
    """Raised by a scoring oracle when a single call fails."""

    pass


class OracleResponseError(OracleError):
    """Raised when an oracle answers with an unusable payload."""

    pass


class OracleUnavailableError(ReviewRejectedError):
    """Raised when the primary oracle and its fallback are both exhausted."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="oracle_failure")


class OutletConfigurationError(ReviewPipelineError):
    """Raised when outlet configuration is missing or invalid (systemic)."""

    pass


class CalibrationDataError(ReviewPipelineError):
    """Raised when a calibration table or sample file cannot be used."""

    pass


class JobCancelledError(ReviewPipelineError):
    """Raised when work is attempted on a cancelled batch job."""

    pass


class BatchFormatError(ReviewPipelineError):
    """Raised when a batch input file cannot be read or validated."""

    pass
