"""
Leakage-safe preprocessing.

Transform steps are learned on training data only and replayed on any
other dataset with the learned parameters.
"""
from lassotune.preprocessing.pipeline import LearnedPipeline, PreprocessingPipeline
from lassotune.preprocessing.steps import (
    StepKind,
    TransformStep,
    apply_step,
    dummy,
    invert_outcome,
    learn_step,
    normalize,
    outcome_sqrt,
    zero_variance,
)

__all__ = [
    "PreprocessingPipeline",
    "LearnedPipeline",
    "StepKind",
    "TransformStep",
    "learn_step",
    "apply_step",
    "invert_outcome",
    "outcome_sqrt",
    "dummy",
    "zero_variance",
    "normalize",
]
