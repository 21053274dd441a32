"""
Penalized linear solver, regression metrics and final model assembly.
"""
from lassotune.models.final import FinalAssembler, FinalModel, variable_importance
from lassotune.models.lasso import CoordinateDescentSolver, LassoFit, LassoPath, lambda_max
from lassotune.models.metrics import (
    METRIC_DIRECTIONS,
    compute_regression_metrics,
    mae,
    resolve_metric,
    rmse,
    rsq,
    rsq_trad,
)

__all__ = [
    "CoordinateDescentSolver",
    "LassoFit",
    "LassoPath",
    "lambda_max",
    "FinalAssembler",
    "FinalModel",
    "variable_importance",
    "METRIC_DIRECTIONS",
    "compute_regression_metrics",
    "resolve_metric",
    "rmse",
    "rsq",
    "rsq_trad",
    "mae",
]
