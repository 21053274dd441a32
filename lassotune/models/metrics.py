"""
Regression metrics for tuning and final evaluation.

``rsq`` is the squared Pearson correlation between observed and
predicted values (the usual tuning R^2); ``rsq_trad`` is the
traditional ``1 - SSE / SST``. All metrics are computed on the original
outcome scale by the callers.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

METRIC_DIRECTIONS: dict[str, str] = {
    "rmse": "minimize",
    "rsq": "maximize",
    "rsq_trad": "maximize",
    "mae": "minimize",
}

# Configuration names mapped to metric keys
METRIC_ALIASES: dict[str, str] = {
    "rmse": "rmse",
    "r_squared": "rsq",
    "rsq": "rsq",
    "r2": "rsq",
    "rsq_trad": "rsq_trad",
    "mae": "mae",
}

DEFAULT_METRICS = ("rmse", "rsq", "mae")


def resolve_metric(name: str) -> str:
    """Map a configured metric name to its metric key."""
    try:
        return METRIC_ALIASES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown metric {name!r}. Available: {sorted(METRIC_ALIASES)}"
        ) from None


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    return float(mean_absolute_error(y_true, y_pred))


def rsq(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Squared correlation; NaN when either side is constant."""
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    if len(y_true) < 2 or np.std(y_true) == 0 or np.std(y_pred) == 0:
        return float("nan")
    return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


def rsq_trad(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    if len(y_true) < 2:
        return float("nan")
    return float(r2_score(y_true, y_pred))


_METRIC_FUNCTIONS = {
    "rmse": rmse,
    "rsq": rsq,
    "rsq_trad": rsq_trad,
    "mae": mae,
}


def compute_regression_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    metrics: Sequence[str] = DEFAULT_METRICS,
) -> dict[str, Any]:
    """
    Compute regression metrics.

    Args:
        y_true: Observed outcome
        y_pred: Predicted outcome (same scale as y_true)
        metrics: Metric names (aliases accepted)

    Returns:
        Dict of metric key -> value
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    if len(y_true) == 0:
        raise ValueError("Cannot compute metrics on zero observations")

    return {key: _METRIC_FUNCTIONS[key](y_true, y_pred) for key in map(resolve_metric, metrics)}


__all__ = [
    "DEFAULT_METRICS",
    "METRIC_ALIASES",
    "METRIC_DIRECTIONS",
    "compute_regression_metrics",
    "mae",
    "resolve_metric",
    "rmse",
    "rsq",
    "rsq_trad",
]
