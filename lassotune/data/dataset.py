"""
Dataset container.

A Dataset is a pandas DataFrame holding predictor columns plus one
continuous outcome column. The frame index carries observation ids,
which survive subsetting, preprocessing and prediction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
from pandas.api import types as ptypes

from lassotune.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ColumnType(Enum):
    """Predictor column types."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


def column_type(series: pd.Series) -> ColumnType:
    """Classify a column as numeric or categorical from its dtype."""
    if ptypes.is_bool_dtype(series) or not ptypes.is_numeric_dtype(series):
        return ColumnType.CATEGORICAL
    return ColumnType.NUMERIC


@dataclass(frozen=True)
class Dataset:
    """
    Predictors plus one continuous outcome.

    Attributes:
        frame: DataFrame with predictor columns and the outcome column
        outcome: Name of the outcome column

    The outcome column may be absent only for datasets used purely for
    prediction (see ``require_outcome``).

    Example:
        >>> ds = Dataset(df, outcome="price")
        >>> ds.schema
        {'x1': <ColumnType.NUMERIC: 'numeric'>, 'region': <ColumnType.CATEGORICAL: ...>}
    """
    frame: pd.DataFrame
    outcome: str
    require_outcome: bool = True

    def __post_init__(self) -> None:
        errors = []
        if not isinstance(self.frame, pd.DataFrame):
            raise ConfigurationError(
                f"Dataset frame must be a DataFrame, got {type(self.frame).__name__}"
            )
        if self.frame.columns.duplicated().any():
            dupes = list(self.frame.columns[self.frame.columns.duplicated()])
            errors.append(f"Duplicate column names: {dupes}")
        if self.outcome in self.frame.columns:
            y = self.frame[self.outcome]
            if not ptypes.is_numeric_dtype(y) or ptypes.is_bool_dtype(y):
                errors.append(f"Outcome '{self.outcome}' must be numeric, got {y.dtype}")
            elif not np.isfinite(y.to_numpy(dtype=np.float64)).all():
                n_bad = int((~np.isfinite(y.to_numpy(dtype=np.float64))).sum())
                errors.append(f"Outcome '{self.outcome}' has {n_bad} non-finite values")
        elif self.require_outcome:
            errors.append(
                f"Outcome column '{self.outcome}' not found. "
                f"Available columns: {list(self.frame.columns)[:10]}"
            )
        if len(self.predictors) == 0:
            errors.append("Dataset must have at least one predictor column")
        if errors:
            raise ConfigurationError(errors)

    @property
    def has_outcome(self) -> bool:
        return self.outcome in self.frame.columns

    @property
    def predictors(self) -> List[str]:
        """Predictor column names in frame order."""
        return [c for c in self.frame.columns if c != self.outcome]

    @property
    def schema(self) -> Dict[str, ColumnType]:
        """Mapping of predictor name to column type."""
        return {c: column_type(self.frame[c]) for c in self.predictors}

    @property
    def X(self) -> pd.DataFrame:
        return self.frame[self.predictors]

    @property
    def y(self) -> pd.Series:
        if not self.has_outcome:
            raise ConfigurationError(f"Dataset has no outcome column '{self.outcome}'")
        return self.frame[self.outcome]

    @property
    def ids(self) -> pd.Index:
        return self.frame.index

    @property
    def n_rows(self) -> int:
        return len(self.frame)

    def __len__(self) -> int:
        return len(self.frame)

    def subset(self, positions: Sequence[int] | np.ndarray) -> "Dataset":
        """Rows at integer positions (duplicates allowed, ids are kept)."""
        return self.with_frame(self.frame.iloc[np.asarray(positions, dtype=np.int64)])

    def drop_ids(self, ids: Sequence) -> "Dataset":
        """Rows whose observation id is not in ``ids``."""
        return self.with_frame(self.frame.loc[~self.frame.index.isin(ids)])

    def with_frame(self, frame: pd.DataFrame) -> "Dataset":
        """New Dataset with the same outcome name and a different frame."""
        return Dataset(frame=frame, outcome=self.outcome, require_outcome=self.require_outcome)

    @classmethod
    def for_prediction(cls, frame: pd.DataFrame, outcome: str) -> "Dataset":
        """Dataset whose outcome column is optional (new data to score)."""
        return cls(frame=frame, outcome=outcome, require_outcome=False)


__all__ = [
    "ColumnType",
    "Dataset",
    "column_type",
]
