"""
Transform steps with separate learn and apply operations.

A step is a tagged variant: a kind plus a parameter mapping that stays
empty until the step is learned from training data. ``learn_step``
returns a new, parameterized step; ``apply_step`` only reads those
parameters and never derives statistics from the dataset it transforms.

Kinds:
    OUTCOME_SQRT   square-root transform of the outcome (inverted for reporting)
    DUMMY          indicator encoding of categorical predictors
    ZERO_VARIANCE  removal of predictors that are constant in training data
    NORMALIZE      centering and scaling of numeric predictors
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from lassotune.data.dataset import ColumnType, Dataset
from lassotune.exceptions import ConfigurationError, SchemaMismatch

logger = logging.getLogger(__name__)

DEFAULT_ZV_TOLERANCE = 1e-8


class StepKind(Enum):
    """Supported transform kinds."""

    OUTCOME_SQRT = "outcome_sqrt"
    DUMMY = "dummy"
    ZERO_VARIANCE = "zero_variance"
    NORMALIZE = "normalize"


@dataclass(frozen=True)
class TransformStep:
    """
    One named, stateful data transformation.

    Attributes:
        kind: Transform kind
        columns: Predictor columns to operate on (None selects by kind)
        options: Fixed settings (e.g. zero-variance tolerance)
        params: Learned parameters, empty until learned
    """
    kind: StepKind
    columns: Optional[Tuple[str, ...]] = None
    options: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_learned(self) -> bool:
        return bool(self.params)

    @property
    def name(self) -> str:
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "columns": list(self.columns) if self.columns is not None else None,
            "options": dict(self.options),
            "params": dict(self.params),
        }


# =============================================================================
# STEP CONSTRUCTORS
# =============================================================================

def outcome_sqrt() -> TransformStep:
    return TransformStep(StepKind.OUTCOME_SQRT)


def dummy(columns: Optional[Sequence[str]] = None) -> TransformStep:
    return TransformStep(StepKind.DUMMY, _as_columns(columns))


def zero_variance(
    columns: Optional[Sequence[str]] = None,
    tolerance: float = DEFAULT_ZV_TOLERANCE,
) -> TransformStep:
    return TransformStep(StepKind.ZERO_VARIANCE, _as_columns(columns), {"tolerance": tolerance})


def normalize(columns: Optional[Sequence[str]] = None) -> TransformStep:
    return TransformStep(StepKind.NORMALIZE, _as_columns(columns))


def _as_columns(columns: Optional[Sequence[str]]) -> Optional[Tuple[str, ...]]:
    return tuple(columns) if columns is not None else None


# =============================================================================
# LEARN
# =============================================================================

def learn_step(step: TransformStep, dataset: Dataset) -> TransformStep:
    """
    Learn a step's parameters from training data.

    Args:
        step: Unlearned step
        dataset: Training dataset (the only data parameters are derived from)

    Returns:
        A new TransformStep with ``params`` populated

    Raises:
        ConfigurationError: If the dataset is empty or required inputs are absent
    """
    if step.is_learned:
        raise ConfigurationError(f"Step '{step.name}' is already learned")
    if dataset.n_rows == 0:
        raise ConfigurationError(f"Cannot learn step '{step.name}' from an empty dataset")

    schema = dataset.schema
    params: Dict[str, Any] = {
        "outcome": dataset.outcome,
        "input_schema": {c: t.value for c, t in schema.items()},
    }

    if step.kind is StepKind.OUTCOME_SQRT:
        y = dataset.y.to_numpy(dtype=np.float64)
        if (y < 0).any():
            raise ConfigurationError(
                f"sqrt outcome transform needs non-negative outcome values; "
                f"'{dataset.outcome}' has {int((y < 0).sum())} negative values"
            )

    elif step.kind is StepKind.DUMMY:
        columns = _select_columns(step, schema, ColumnType.CATEGORICAL)
        levels: Dict[str, List[str]] = {}
        for col in columns:
            observed = sorted(set(dataset.frame[col].astype(str)))
            levels[col] = observed
            for level in observed[1:]:
                indicator = _indicator_name(col, level)
                if indicator in schema:
                    raise ConfigurationError(
                        f"Indicator column '{indicator}' collides with an existing column"
                    )
        params["levels"] = levels

    elif step.kind is StepKind.ZERO_VARIANCE:
        tolerance = float(step.options.get("tolerance", DEFAULT_ZV_TOLERANCE))
        columns = _select_columns(step, schema, None)
        removed: List[str] = []
        for col in columns:
            values = dataset.frame[col]
            if schema[col] is ColumnType.NUMERIC:
                variance = float(np.var(values.to_numpy(dtype=np.float64), ddof=0))
                if variance <= tolerance:
                    removed.append(col)
            elif values.astype(str).nunique() <= 1:
                removed.append(col)
        if removed:
            logger.debug(f"Zero-variance filter removes {removed}")
        params["removed"] = removed

    elif step.kind is StepKind.NORMALIZE:
        columns = _select_columns(step, schema, ColumnType.NUMERIC)
        means: Dict[str, float] = {}
        sds: Dict[str, float] = {}
        for col in columns:
            values = dataset.frame[col].to_numpy(dtype=np.float64)
            sd = float(np.std(values, ddof=1)) if len(values) > 1 else 0.0
            if not np.isfinite(sd) or sd == 0.0:
                raise ConfigurationError(
                    f"Cannot normalize constant column '{col}'; "
                    f"apply a zero-variance filter first"
                )
            means[col] = float(np.mean(values))
            sds[col] = sd
        params["means"] = means
        params["sds"] = sds

    return replace(step, params=params)


def _select_columns(
    step: TransformStep,
    schema: Mapping[str, ColumnType],
    required_type: Optional[ColumnType],
) -> List[str]:
    """Resolve the step's columns against a schema, validating types."""
    if step.columns is None:
        if required_type is None:
            return list(schema)
        return [c for c, t in schema.items() if t is required_type]

    missing = [c for c in step.columns if c not in schema]
    if missing:
        raise ConfigurationError(f"Step '{step.name}' columns not found: {missing}")
    if required_type is not None:
        wrong = [c for c in step.columns if schema[c] is not required_type]
        if wrong:
            raise ConfigurationError(
                f"Step '{step.name}' requires {required_type.value} columns, got {wrong}"
            )
    return list(step.columns)


def _indicator_name(column: str, level: str) -> str:
    return f"{column}_{level}"


# =============================================================================
# APPLY
# =============================================================================

def apply_step(step: TransformStep, dataset: Dataset) -> Dataset:
    """
    Apply a learned step using only its learned parameters.

    Args:
        step: Learned step
        dataset: Dataset with the schema seen at learn time (outcome optional)

    Returns:
        Transformed dataset (a new object; the input is not modified)

    Raises:
        ConfigurationError: If the step has not been learned
        SchemaMismatch: If the dataset schema differs from the learned schema
    """
    if not step.is_learned:
        raise ConfigurationError(f"Step '{step.name}' must be learned before apply")
    _check_schema(step, dataset)

    frame = dataset.frame
    params = step.params

    if step.kind is StepKind.OUTCOME_SQRT:
        if not dataset.has_outcome:
            return dataset
        y = frame[dataset.outcome].to_numpy(dtype=np.float64)
        if (y < 0).any():
            raise SchemaMismatch(
                f"Outcome '{dataset.outcome}' has negative values; "
                f"sqrt transform is undefined",
                [dataset.outcome],
            )
        frame = frame.copy()
        frame[dataset.outcome] = np.sqrt(y)

    elif step.kind is StepKind.DUMMY:
        # Built column by column: bootstrap draws carry duplicate ids
        encoded: Dict[str, np.ndarray] = {}
        for col in frame.columns:
            if col not in params["levels"]:
                encoded[col] = frame[col].to_numpy()
                continue
            values = frame[col].astype(str).to_numpy()
            # Unseen levels match no indicator and encode as all zeros
            for level in params["levels"][col][1:]:
                encoded[_indicator_name(col, level)] = (values == level).astype(np.float64)
        frame = pd.DataFrame(encoded, index=frame.index)

    elif step.kind is StepKind.ZERO_VARIANCE:
        frame = frame.drop(columns=params["removed"])

    elif step.kind is StepKind.NORMALIZE:
        frame = frame.copy()
        for col, mean in params["means"].items():
            values = frame[col].to_numpy(dtype=np.float64)
            frame[col] = (values - mean) / params["sds"][col]

    return dataset.with_frame(frame)


def _check_schema(step: TransformStep, dataset: Dataset) -> None:
    """Reject datasets whose predictors differ from the learned schema."""
    expected = step.params["input_schema"]
    if dataset.outcome != step.params["outcome"]:
        raise SchemaMismatch(
            f"Outcome '{dataset.outcome}' differs from learned outcome "
            f"'{step.params['outcome']}'"
        )

    actual = {c: t.value for c, t in dataset.schema.items()}
    unknown = [c for c in actual if c not in expected]
    missing = [c for c in expected if c not in actual]
    if unknown or missing:
        raise SchemaMismatch(
            f"Step '{step.name}': unknown columns {unknown}, missing columns {missing}",
            unknown + missing,
        )

    changed = [c for c in expected if actual[c] != expected[c]]
    if changed:
        raise SchemaMismatch(
            f"Step '{step.name}': column types changed for {changed}",
            changed,
        )


def invert_outcome(steps: Sequence[TransformStep], values: np.ndarray) -> np.ndarray:
    """
    Map outcome-scale values back to the original outcome scale.

    Negative predictions on the sqrt scale are clipped to zero before squaring.
    """
    result = np.asarray(values, dtype=np.float64)
    for step in reversed(list(steps)):
        if step.kind is StepKind.OUTCOME_SQRT:
            result = np.square(np.clip(result, 0.0, None))
    return result


__all__ = [
    "DEFAULT_ZV_TOLERANCE",
    "StepKind",
    "TransformStep",
    "outcome_sqrt",
    "dummy",
    "zero_variance",
    "normalize",
    "learn_step",
    "apply_step",
    "invert_outcome",
]
