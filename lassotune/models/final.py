"""
Final model assembly.

Refits the preprocessing recipe and the solver on the full training
partition at the selected penalty, then evaluates once on the untouched
test partition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from lassotune.config.lasso_config import LassoConfig
from lassotune.data.dataset import Dataset
from lassotune.exceptions import ConfigurationError
from lassotune.preprocessing.pipeline import LearnedPipeline, PreprocessingPipeline

from .lasso import CoordinateDescentSolver, LassoFit
from .metrics import compute_regression_metrics

logger = logging.getLogger(__name__)

INTERCEPT_TERM = "(Intercept)"
TEST_METRICS = ("rmse", "rsq", "rsq_trad", "mae")


@dataclass
class FinalModel:
    """
    Model refitted on the full training partition.

    Attributes:
        penalty: Selected lambda
        pipeline: Preprocessing learned on the full training partition
        fit: Solver result at ``penalty``
        test_metrics: Metrics on the test partition, original outcome scale
        predictions: Test prediction records (id, predicted, observed)
    """
    penalty: float
    pipeline: LearnedPipeline
    fit: LassoFit
    test_metrics: Dict[str, float]
    predictions: pd.DataFrame

    @property
    def coefficients(self) -> pd.DataFrame:
        """All terms, intercept first, on the preprocessed predictor scale."""
        return pd.DataFrame({
            "term": [INTERCEPT_TERM] + list(self.fit.feature_names),
            "estimate": np.concatenate([[self.fit.intercept], self.fit.coef]),
        })

    @property
    def nonzero_coefficients(self) -> pd.DataFrame:
        coefs = self.coefficients
        keep = (coefs["term"] == INTERCEPT_TERM) | (coefs["estimate"] != 0.0)
        return coefs.loc[keep].reset_index(drop=True)

    @property
    def importance(self) -> pd.DataFrame:
        """Non-zero slopes ranked by absolute magnitude."""
        return variable_importance(self.fit)

    def predict(self, dataset: Dataset) -> pd.Series:
        """Predict on the original outcome scale; the outcome column is optional."""
        X, _ = self.pipeline.design_matrix(dataset)
        predicted = self.pipeline.invert_outcome(self.fit.predict(X))
        return pd.Series(predicted, index=dataset.ids, name="predicted")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "penalty": self.penalty,
            "intercept": self.fit.intercept,
            "n_nonzero": self.fit.n_nonzero,
            "converged": self.fit.converged,
            "coefficients": self.fit.nonzero(),
            "test_metrics": dict(self.test_metrics),
            "pipeline": self.pipeline.to_dict(),
        }


def variable_importance(fit: LassoFit) -> pd.DataFrame:
    """
    Importance table of the non-zero slopes.

    Returns:
        DataFrame with columns variable, importance (|estimate|) and sign,
        ordered by descending importance
    """
    rows = [
        {
            "variable": name,
            "importance": abs(float(value)),
            "sign": "positive" if value > 0 else "negative",
        }
        for name, value in zip(fit.feature_names, fit.coef)
        if value != 0.0
    ]
    frame = pd.DataFrame(rows, columns=["variable", "importance", "sign"])
    return frame.sort_values("importance", ascending=False, kind="mergesort").reset_index(drop=True)


class FinalAssembler:
    """Refit at the selected penalty and evaluate on the test partition."""

    def __init__(self, config: LassoConfig) -> None:
        self.config = config

    def assemble(
        self,
        train: Dataset,
        test: Dataset,
        penalty: float,
        recipe: Optional[PreprocessingPipeline] = None,
        grid: Optional[Sequence[float]] = None,
    ) -> FinalModel:
        """
        Learn the recipe on ``train``, fit at ``penalty`` and score ``test``.

        The fit is warm-started down the grid values at or above ``penalty``.

        Raises:
            ConfigurationError: If the test partition has no outcome
            SchemaMismatch: If test is incompatible with the learned pipeline
        """
        if not test.has_outcome:
            raise ConfigurationError("Test dataset must contain the outcome column")
        if recipe is None:
            recipe = PreprocessingPipeline.default(
                self.config.outcome_transform, self.config.zv_tolerance
            )
        grid = self.config.penalty_grid if grid is None else grid

        learned = recipe.learn(train)
        X_train, y_train = learned.design_matrix(train)

        solver = CoordinateDescentSolver(**self.config.solver_params())
        path_penalties = [p for p in grid if p >= penalty] + [penalty]
        path = solver.fit_path(X_train, y_train, path_penalties,
                               feature_names=learned.feature_names)
        fit = path[float(penalty)]

        X_test, _ = learned.design_matrix(test)
        predicted = learned.invert_outcome(fit.predict(X_test))
        observed = test.y.to_numpy(dtype=np.float64)
        test_metrics = compute_regression_metrics(observed, predicted, TEST_METRICS)

        predictions = pd.DataFrame({
            "id": test.ids,
            "predicted": predicted,
            "observed": observed,
        })

        logger.info(
            f"Final fit at penalty {penalty:g}: {fit.n_nonzero}/{len(fit.coef)} non-zero, "
            f"test rmse={test_metrics['rmse']:.4f} rsq={test_metrics['rsq']:.4f}"
        )
        return FinalModel(
            penalty=float(penalty),
            pipeline=learned,
            fit=fit,
            test_metrics=test_metrics,
            predictions=predictions,
        )


__all__ = [
    "FinalAssembler",
    "FinalModel",
    "INTERCEPT_TERM",
    "TEST_METRICS",
    "variable_importance",
]
