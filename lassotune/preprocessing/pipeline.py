"""
Preprocessing pipeline with learn-once / apply-many semantics.

``PreprocessingPipeline`` is an unlearned recipe: an ordered list of
transform steps. ``learn`` threads the training dataset through each
step's learn and apply in order and returns a ``LearnedPipeline``,
which only exposes ``apply``. Test or assessment data therefore has no
path into learned parameters.

Example:
    >>> recipe = PreprocessingPipeline.default(outcome_transform="sqrt")
    >>> learned = recipe.learn(train)
    >>> train_t = learned.apply(train)
    >>> test_t = learned.apply(test)   # uses training statistics only
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from lassotune.data.dataset import Dataset
from lassotune.exceptions import ConfigurationError

from .steps import (
    DEFAULT_ZV_TOLERANCE,
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

logger = logging.getLogger(__name__)


class PreprocessingPipeline:
    """
    Ordered, unlearned sequence of transform steps.

    Order rules:
        - DUMMY must precede ZERO_VARIANCE and NORMALIZE so indicator
          columns are filtered and scaled like any other predictor
    """

    def __init__(self, steps: Sequence[TransformStep]) -> None:
        steps = tuple(steps)
        if any(step.is_learned for step in steps):
            raise ConfigurationError("PreprocessingPipeline takes unlearned steps only")
        _validate_order(steps)
        self._steps = steps

    @classmethod
    def default(
        cls,
        outcome_transform: str = "identity",
        zv_tolerance: float = DEFAULT_ZV_TOLERANCE,
    ) -> "PreprocessingPipeline":
        """Outcome transform, dummy encoding, zero-variance filter, normalization."""
        steps: List[TransformStep] = []
        if outcome_transform == "sqrt":
            steps.append(outcome_sqrt())
        elif outcome_transform != "identity":
            raise ConfigurationError(
                f"outcome_transform must be 'identity' or 'sqrt', got {outcome_transform!r}"
            )
        steps.extend([dummy(), zero_variance(tolerance=zv_tolerance), normalize()])
        return cls(steps)

    @property
    def steps(self) -> Tuple[TransformStep, ...]:
        return self._steps

    def learn(self, train: Dataset) -> "LearnedPipeline":
        """
        Learn every step on the training dataset.

        Each step is learned on the output of the previous step's apply
        on the same training data.

        Raises:
            ConfigurationError: If the training dataset is empty or a step
                cannot be learned
        """
        if train.n_rows == 0:
            raise ConfigurationError("Cannot learn a pipeline from an empty dataset")

        learned: List[TransformStep] = []
        current = train
        for step in self._steps:
            fitted = learn_step(step, current)
            current = apply_step(fitted, current)
            learned.append(fitted)

        logger.debug(
            f"Learned pipeline on {train.n_rows} rows: "
            f"{len(train.predictors)} -> {len(current.predictors)} predictors"
        )
        return LearnedPipeline(tuple(learned), input_predictors=train.predictors,
                               feature_names=current.predictors)

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"PreprocessingPipeline(steps={[s.name for s in self._steps]})"


class LearnedPipeline:
    """
    Pipeline whose parameters were learned from one training dataset.

    Only ``apply`` is exposed; parameters are read-only.
    """

    def __init__(
        self,
        steps: Tuple[TransformStep, ...],
        input_predictors: Sequence[str],
        feature_names: Sequence[str],
    ) -> None:
        self._steps = steps
        self._input_predictors = tuple(input_predictors)
        self._feature_names = tuple(feature_names)

    @property
    def steps(self) -> Tuple[TransformStep, ...]:
        return self._steps

    @property
    def feature_names(self) -> List[str]:
        """Predictor names produced by ``apply`` (solver column order)."""
        return list(self._feature_names)

    @property
    def input_predictors(self) -> List[str]:
        return list(self._input_predictors)

    @property
    def transforms_outcome(self) -> bool:
        return any(s.kind is StepKind.OUTCOME_SQRT for s in self._steps)

    def apply(self, dataset: Dataset) -> Dataset:
        """
        Replay the learned steps on any schema-compatible dataset.

        Raises:
            SchemaMismatch: If the dataset is incompatible; learned
                parameters are unaffected
        """
        current = dataset
        for step in self._steps:
            current = apply_step(step, current)
        return current

    def design_matrix(self, dataset: Dataset) -> Tuple[np.ndarray, np.ndarray | None]:
        """Apply and return (X, y) in feature order; y is None without an outcome."""
        transformed = self.apply(dataset)
        X = transformed.frame[list(self._feature_names)].to_numpy(dtype=np.float64)
        y = transformed.y.to_numpy(dtype=np.float64) if transformed.has_outcome else None
        return X, y

    def invert_outcome(self, values: np.ndarray) -> np.ndarray:
        """Map outcome-scale predictions back to the original scale."""
        return invert_outcome(self._steps, values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self._steps],
            "input_predictors": list(self._input_predictors),
            "feature_names": list(self._feature_names),
        }

    def __repr__(self) -> str:
        return (
            f"LearnedPipeline(steps={[s.name for s in self._steps]}, "
            f"n_features={len(self._feature_names)})"
        )


def _validate_order(steps: Tuple[TransformStep, ...]) -> None:
    kinds = [s.kind for s in steps]
    errors = []
    if kinds.count(StepKind.OUTCOME_SQRT) > 1:
        errors.append("Only one outcome transform step is allowed")
    if StepKind.DUMMY in kinds:
        first_dummy = kinds.index(StepKind.DUMMY)
        for kind in (StepKind.ZERO_VARIANCE, StepKind.NORMALIZE):
            if kind in kinds and kinds.index(kind) < first_dummy:
                errors.append(f"{StepKind.DUMMY.value} must precede {kind.value}")
    if errors:
        raise ConfigurationError(errors)


__all__ = [
    "PreprocessingPipeline",
    "LearnedPipeline",
]
