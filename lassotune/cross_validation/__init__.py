"""
Stratified resampling and penalty tuning.
"""
from lassotune.config.penalty_grid import regular_penalty_grid, validate_penalty_grid
from lassotune.cross_validation.resampling import Resample, Resampler, ResamplingSet
from lassotune.cross_validation.tuning import (
    CandidateEvaluation,
    MetricRecord,
    TuningEngine,
    TuningResult,
    TuningState,
    aggregate_metrics,
    collect_failures,
    evaluate_resample,
    select_best,
)

__all__ = [
    "Resample",
    "Resampler",
    "ResamplingSet",
    "CandidateEvaluation",
    "MetricRecord",
    "TuningEngine",
    "TuningResult",
    "TuningState",
    "aggregate_metrics",
    "collect_failures",
    "evaluate_resample",
    "select_best",
    "regular_penalty_grid",
    "validate_penalty_grid",
]
