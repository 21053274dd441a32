"""
Penalized linear solver (lasso / elastic net) by cyclic coordinate descent.

Objective:

    (1 / 2n) * ||y - b0 - X b||^2 + lambda * (mixture * ||b||_1
                                              + (1 - mixture) / 2 * ||b||_2^2)

The intercept is not penalized: outcome and predictors are centred with
the fitting data's means before the descent and ``b0`` is recovered as
``mean(y) - mean(X) . b``. Each coordinate is updated by soft-thresholding
its partial residual; a pass stops the descent when the largest absolute
coefficient change is below ``tol``.

Example:
    >>> solver = CoordinateDescentSolver(mixture=1.0, tol=1e-7)
    >>> path = solver.fit_path(X, y, [1.0, 0.1, 0.01], feature_names=names)
    >>> path[0.1].nonzero()
    {'x1': 1.93, 'x3': -2.88}
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from numba import jit
from sklearn.exceptions import ConvergenceWarning

from lassotune.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# NUMBA KERNEL
# =============================================================================

@jit(nopython=True, nogil=True)
def coordinate_descent_numba(
    X: np.ndarray,
    y: np.ndarray,
    colsq: np.ndarray,
    beta: np.ndarray,
    l1: float,
    l2: float,
    tol: float,
    max_iter: int,
) -> Tuple[np.ndarray, int, bool]:
    """
    Cyclic coordinate descent on centred data.

    Parameters
    ----------
    X : np.ndarray
        Centred design matrix (n, p)
    y : np.ndarray
        Centred outcome (n,)
    colsq : np.ndarray
        Mean squared value of each centred column
    beta : np.ndarray
        Starting coefficients, updated in place
    l1, l2 : float
        lambda * mixture and lambda * (1 - mixture)
    tol : float
        Stop when the largest coefficient change in a pass is below tol
    max_iter : int
        Maximum number of full passes

    Returns
    -------
    tuple
        (beta, passes, converged)
    """
    n, p = X.shape
    residual = y.copy()
    for j in range(p):
        if beta[j] != 0.0:
            for i in range(n):
                residual[i] -= X[i, j] * beta[j]

    n_iter = 0
    converged = False
    while n_iter < max_iter:
        n_iter += 1
        max_delta = 0.0
        for j in range(p):
            if colsq[j] == 0.0:
                continue
            old = beta[j]
            rho = 0.0
            for i in range(n):
                rho += X[i, j] * residual[i]
            rho = rho / n + colsq[j] * old

            if rho > l1:
                new = (rho - l1) / (colsq[j] + l2)
            elif rho < -l1:
                new = (rho + l1) / (colsq[j] + l2)
            else:
                new = 0.0

            delta = new - old
            if delta != 0.0:
                for i in range(n):
                    residual[i] -= X[i, j] * delta
                beta[j] = new
                if abs(delta) > max_delta:
                    max_delta = abs(delta)

        if max_delta < tol:
            converged = True
            break

    return beta, n_iter, converged


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class LassoFit:
    """
    Coefficients for one penalty value.

    Attributes:
        coef: Slopes in feature order
        intercept: Unpenalized intercept
        penalty: Lambda the fit was computed at
        n_iter: Coordinate descent passes used
        converged: False when max_iter was reached first
        feature_names: Column names matching ``coef``
        mixture: L1 share of the penalty
    """
    coef: np.ndarray
    intercept: float
    penalty: float
    n_iter: int
    converged: bool
    feature_names: List[str] = field(default_factory=list)
    mixture: float = 1.0

    def predict(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != len(self.coef):
            raise ConfigurationError(
                f"Expected a design matrix with {len(self.coef)} columns, got shape {X.shape}"
            )
        return X @ self.coef + self.intercept

    def nonzero(self) -> Dict[str, float]:
        """Exactly non-zero coefficients keyed by feature name."""
        return {
            name: float(value)
            for name, value in zip(self.feature_names, self.coef)
            if value != 0.0
        }

    @property
    def n_nonzero(self) -> int:
        return int(np.count_nonzero(self.coef))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "penalty": self.penalty,
            "mixture": self.mixture,
            "intercept": self.intercept,
            "coefficients": dict(zip(self.feature_names, map(float, self.coef))),
            "n_iter": self.n_iter,
            "converged": self.converged,
        }


@dataclass
class LassoPath:
    """Fits along a decreasing penalty sequence."""
    penalties: List[float]
    fits: Dict[float, LassoFit]
    feature_names: List[str]

    def __getitem__(self, penalty: float) -> LassoFit:
        return self.fits[penalty]

    def __len__(self) -> int:
        return len(self.penalties)

    @property
    def coef_matrix(self) -> pd.DataFrame:
        """Coefficients with one row per penalty (decreasing) and one column per feature."""
        return pd.DataFrame(
            [self.fits[p].coef for p in self.penalties],
            index=pd.Index(self.penalties, name="penalty"),
            columns=self.feature_names,
        )

    @property
    def n_nonzero(self) -> pd.Series:
        return pd.Series(
            [self.fits[p].n_nonzero for p in self.penalties],
            index=pd.Index(self.penalties, name="penalty"),
            name="n_nonzero",
        )

    @property
    def all_converged(self) -> bool:
        return all(f.converged for f in self.fits.values())


# =============================================================================
# SOLVER
# =============================================================================

class CoordinateDescentSolver:
    """
    Elastic-net solver; ``mixture=1.0`` is the pure lasso.

    Args:
        mixture: L1 share of the penalty, in [0, 1]
        tol: Convergence tolerance on the largest coefficient change per pass
        max_iter: Maximum number of full passes per penalty
    """

    def __init__(self, mixture: float = 1.0, tol: float = 1e-7, max_iter: int = 100_000) -> None:
        errors = []
        if not 0.0 <= mixture <= 1.0:
            errors.append(f"mixture must be in [0, 1], got {mixture}")
        if tol <= 0:
            errors.append(f"tol must be positive, got {tol}")
        if max_iter < 1:
            errors.append(f"max_iter must be >= 1, got {max_iter}")
        if errors:
            raise ConfigurationError(errors)
        self.mixture = float(mixture)
        self.tol = float(tol)
        self.max_iter = int(max_iter)

    def fit(
        self,
        X: np.ndarray,
        y: np.ndarray,
        penalty: float,
        feature_names: Optional[Sequence[str]] = None,
        warm_start: Optional[np.ndarray] = None,
    ) -> LassoFit:
        """Fit at a single penalty value."""
        path = self.fit_path(X, y, [penalty], feature_names=feature_names,
                             warm_start=warm_start)
        return path.fits[path.penalties[0]]

    def fit_path(
        self,
        X: np.ndarray,
        y: np.ndarray,
        penalties: Sequence[float],
        feature_names: Optional[Sequence[str]] = None,
        warm_start: Optional[np.ndarray] = None,
    ) -> LassoPath:
        """
        Fit a sequence of penalties from largest to smallest.

        Each fit starts from the previous solution.

        Args:
            X: Design matrix (n, p)
            y: Outcome (n,)
            penalties: Lambda values (any order, duplicates ignored)
            feature_names: Column names (default ``x0..x{p-1}``)
            warm_start: Starting coefficients for the largest penalty

        Returns:
            LassoPath keyed by penalty

        Raises:
            ConfigurationError: On invalid inputs or penalties
        """
        X, y = _check_inputs(X, y)
        n, p = X.shape
        ordered = _check_penalties(penalties)
        names = _feature_names(feature_names, p)

        x_mean = X.mean(axis=0)
        y_mean = float(y.mean())
        Xc = np.asfortranarray(X - x_mean)
        yc = y - y_mean
        colsq = (Xc ** 2).sum(axis=0) / n

        if warm_start is None:
            beta = np.zeros(p, dtype=np.float64)
        else:
            beta = np.array(warm_start, dtype=np.float64)
            if beta.shape != (p,):
                raise ConfigurationError(
                    f"warm_start must have shape ({p},), got {beta.shape}"
                )

        fits: Dict[float, LassoFit] = {}
        for penalty in ordered:
            beta, n_iter, converged = coordinate_descent_numba(
                Xc, yc, colsq, beta.copy(),
                penalty * self.mixture, penalty * (1.0 - self.mixture),
                self.tol, self.max_iter,
            )
            if not converged:
                message = (
                    f"Coordinate descent did not converge at penalty {penalty:g} "
                    f"after {n_iter} passes (tol={self.tol:g})"
                )
                logger.warning(message)
                warnings.warn(message, ConvergenceWarning, stacklevel=2)

            coef = beta.copy()
            fits[penalty] = LassoFit(
                coef=coef,
                intercept=float(y_mean - x_mean @ coef),
                penalty=penalty,
                n_iter=int(n_iter),
                converged=bool(converged),
                feature_names=list(names),
                mixture=self.mixture,
            )

        logger.debug(
            f"Fitted path of {len(ordered)} penalties on {n} rows x {p} features"
        )
        return LassoPath(penalties=ordered, fits=fits, feature_names=list(names))

    def lambda_max(self, X: np.ndarray, y: np.ndarray) -> float:
        return lambda_max(X, y, self.mixture)

    def __repr__(self) -> str:
        return (
            f"CoordinateDescentSolver(mixture={self.mixture}, tol={self.tol:g}, "
            f"max_iter={self.max_iter})"
        )


def lambda_max(X: np.ndarray, y: np.ndarray, mixture: float = 1.0) -> float:
    """
    Smallest penalty at which every slope is exactly zero.

    Infinite when the penalty has no L1 part (``mixture == 0``).
    """
    X, y = _check_inputs(X, y)
    if mixture <= 0:
        return float("inf")
    n = X.shape[0]
    gradient = np.abs((X - X.mean(axis=0)).T @ (y - y.mean())) / n
    return float(gradient.max() / mixture) if gradient.size else 0.0


def _check_inputs(X: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    errors = []
    if X.ndim != 2:
        errors.append(f"X must be 2-dimensional, got shape {X.shape}")
    if y.ndim != 1:
        errors.append(f"y must be 1-dimensional, got shape {y.shape}")
    if not errors and X.shape[0] != y.shape[0]:
        errors.append(f"X has {X.shape[0]} rows but y has {y.shape[0]}")
    if not errors and X.shape[0] == 0:
        errors.append("Cannot fit on zero rows")
    if not errors and not (np.isfinite(X).all() and np.isfinite(y).all()):
        errors.append("X and y must be finite")
    if errors:
        raise ConfigurationError(errors)
    return X, y


def _check_penalties(penalties: Sequence[float]) -> List[float]:
    values = [float(p) for p in penalties]
    if not values:
        raise ConfigurationError("At least one penalty is required")
    bad = [p for p in values if not np.isfinite(p) or p < 0]
    if bad:
        raise ConfigurationError(f"Penalties must be finite and non-negative, got {bad}")
    return sorted(set(values), reverse=True)


def _feature_names(names: Optional[Sequence[str]], p: int) -> List[str]:
    if names is None:
        return [f"x{j}" for j in range(p)]
    names = list(names)
    if len(names) != p:
        raise ConfigurationError(f"Expected {p} feature names, got {len(names)}")
    return names


__all__ = [
    "CoordinateDescentSolver",
    "LassoFit",
    "LassoPath",
    "coordinate_descent_numba",
    "lambda_max",
]
