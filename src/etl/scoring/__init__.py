"""Score bands, oracle ensemble, and calibration."""

from src.etl.scoring.buckets import (
    Bucket,
    Thumb,
    clamp_score,
    round_half_up,
    score_to_bucket,
    score_to_thumb,
)
from src.etl.scoring.calibration import (
    CalibratedScore,
    CalibrationCorrector,
    CalibrationOffsetTable,
)
from src.etl.scoring.calibration_job import (
    CalibrationJob,
    CalibrationReport,
    CalibrationSample,
    build_report,
    derive_offsets,
)
from src.etl.scoring.ensemble import EnsembleScorer, EnsembleStats
from src.etl.scoring.oracles import HttpScoringOracle, ScoringOracle, build_http_oracles
from src.etl.scoring.schemas import Confidence, EnsembleResult

__all__ = [
    "Bucket",
    "Thumb",
    "clamp_score",
    "round_half_up",
    "score_to_bucket",
    "score_to_thumb",
    "CalibratedScore",
    "CalibrationCorrector",
    "CalibrationOffsetTable",
    "CalibrationJob",
    "CalibrationReport",
    "CalibrationSample",
    "build_report",
    "derive_offsets",
    "EnsembleScorer",
    "EnsembleStats",
    "HttpScoringOracle",
    "ScoringOracle",
    "build_http_oracles",
    "Confidence",
    "EnsembleResult",
]
