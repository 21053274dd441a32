"""
Influence-based outlier screening.

Fits one ordinary least-squares model on the full dataset, computes
Cook's distance per observation and removes, in a single pass, every
observation whose distance exceeds ``multiplier * mean(distance)``
(the conventional 4x-mean cutoff by default).

The screen uses its own OLS design (treatment-coded categoricals plus an
intercept), not the preprocessing pipeline.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import OLSInfluence

from lassotune.data.dataset import ColumnType, Dataset
from lassotune.exceptions import ConfigurationError, NumericalFailure

logger = logging.getLogger(__name__)

DEFAULT_INFLUENCE_MULTIPLIER = 4.0


@dataclass
class ScreeningResult:
    """
    Outcome of one screening pass.

    Attributes:
        dataset: Dataset with influential rows removed
        influence: Cook's distance per observation id (source dataset)
        threshold: Cutoff applied to the influence statistic
        removed_ids: Observation ids that were removed
    """
    dataset: Dataset
    influence: pd.Series
    threshold: float
    removed_ids: List[Any] = field(default_factory=list)

    @property
    def n_removed(self) -> int:
        return len(self.removed_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "n_removed": self.n_removed,
            "removed_ids": [str(i) for i in self.removed_ids],
            "n_remaining": self.dataset.n_rows,
            "max_influence": float(np.nanmax(self.influence.to_numpy()))
            if len(self.influence) else None,
        }


def ols_design(
    dataset: Dataset,
    outcome_transform: str = "identity",
) -> Tuple[pd.DataFrame, np.ndarray]:
    """
    Build the OLS design matrix (with intercept) and outcome vector.

    Categorical predictors are treatment coded (first level dropped).
    """
    categorical = [c for c, t in dataset.schema.items() if t is ColumnType.CATEGORICAL]
    X = pd.get_dummies(dataset.X, columns=categorical, drop_first=True, dtype=np.float64)
    X = sm.add_constant(X.astype(np.float64), has_constant="add")

    y = dataset.y.to_numpy(dtype=np.float64)
    if outcome_transform == "sqrt":
        if (y < 0).any():
            raise ConfigurationError(
                f"sqrt outcome transform needs non-negative values in '{dataset.outcome}'"
            )
        y = np.sqrt(y)
    elif outcome_transform != "identity":
        raise ConfigurationError(
            f"outcome_transform must be 'identity' or 'sqrt', got {outcome_transform!r}"
        )
    return X, y


def compute_influence(
    dataset: Dataset,
    outcome_transform: str = "identity",
) -> pd.Series:
    """
    Cook's distance for every observation from one OLS fit.

    Raises:
        NumericalFailure: If the design matrix is rank deficient or has no
            residual degrees of freedom
    """
    X, y = ols_design(dataset, outcome_transform)
    n, p = X.shape

    if n <= p:
        raise NumericalFailure(
            f"Cannot compute influence: {n} observations for {p} design columns"
        )
    rank = int(np.linalg.matrix_rank(X.to_numpy()))
    if rank < p:
        raise NumericalFailure(
            f"Design matrix is rank deficient (rank {rank} < {p} columns); "
            f"leverage cannot be computed"
        )

    results = sm.OLS(y, X).fit()
    cooks = OLSInfluence(results).cooks_distance[0]
    return pd.Series(np.asarray(cooks, dtype=np.float64), index=dataset.ids,
                     name="cooks_distance")


def influence_threshold(
    statistic: np.ndarray | pd.Series,
    multiplier: float = DEFAULT_INFLUENCE_MULTIPLIER,
) -> float:
    """``multiplier * mean(statistic)`` over finite values."""
    values = np.asarray(statistic, dtype=np.float64)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        raise NumericalFailure("Influence statistic has no finite values")
    return float(multiplier * finite.mean())


class InfluenceScreener:
    """
    Single-pass removal of high-influence observations.

    Example:
        >>> screener = InfluenceScreener(multiplier=4.0)
        >>> result = screener.screen(dataset)
        >>> result.n_removed
        3
    """

    def __init__(
        self,
        multiplier: float = DEFAULT_INFLUENCE_MULTIPLIER,
        outcome_transform: str = "identity",
    ) -> None:
        if multiplier <= 0:
            raise ConfigurationError(f"multiplier must be positive, got {multiplier}")
        self.multiplier = multiplier
        self.outcome_transform = outcome_transform

    def screen(self, dataset: Dataset) -> ScreeningResult:
        """
        Remove every observation whose influence exceeds the threshold.

        The dataset is returned unchanged when nothing exceeds the threshold.
        """
        influence = compute_influence(dataset, self.outcome_transform)
        threshold = influence_threshold(influence, self.multiplier)

        with np.errstate(invalid="ignore"):
            flagged = influence.to_numpy() > threshold

        if not flagged.any():
            logger.info(f"Influence screen: no observations above threshold {threshold:.4g}")
            return ScreeningResult(dataset=dataset, influence=influence, threshold=threshold)

        removed_ids = list(dataset.ids[flagged])
        reduced = dataset.with_frame(dataset.frame.loc[~flagged])

        logger.info(
            f"Influence screen: removed {len(removed_ids)} of {dataset.n_rows} observations "
            f"(Cook's distance > {threshold:.4g})"
        )
        return ScreeningResult(
            dataset=reduced,
            influence=influence,
            threshold=threshold,
            removed_ids=removed_ids,
        )

    def __repr__(self) -> str:
        return (
            f"InfluenceScreener(multiplier={self.multiplier}, "
            f"outcome_transform={self.outcome_transform!r})"
        )


__all__ = [
    "DEFAULT_INFLUENCE_MULTIPLIER",
    "InfluenceScreener",
    "ScreeningResult",
    "compute_influence",
    "influence_threshold",
    "ols_design",
]
