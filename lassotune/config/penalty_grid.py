"""
Penalty grids for tuning.

Penalties are searched on a log10-regular grid, the same shape the
regularization path is solved on (largest penalty first).
"""
from __future__ import annotations

from typing import Iterable, List

import numpy as np

from lassotune.exceptions import ConfigurationError

DEFAULT_GRID_LEVELS = 20
DEFAULT_LOG10_RANGE = (-10.0, 0.0)


def regular_penalty_grid(
    levels: int = DEFAULT_GRID_LEVELS,
    low: float = DEFAULT_LOG10_RANGE[0],
    high: float = DEFAULT_LOG10_RANGE[1],
) -> List[float]:
    """
    Build a penalty grid regular on the log10 scale.

    Args:
        levels: Number of grid points
        low: log10 of the smallest penalty
        high: log10 of the largest penalty

    Returns:
        Increasing list of penalties
    """
    if levels < 1:
        raise ConfigurationError(f"levels must be >= 1, got {levels}")
    if low > high:
        raise ConfigurationError(f"low ({low}) must not exceed high ({high})")
    return [float(v) for v in 10.0 ** np.linspace(low, high, levels)]


def validate_penalty_grid(values: Iterable[float]) -> List[float]:
    """Return the grid as sorted unique floats, rejecting empty or negative grids."""
    try:
        grid = sorted({float(v) for v in values})
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"penalty_grid must contain numbers: {e}") from e

    errors = []
    if not grid:
        errors.append("penalty_grid must not be empty")
    if any(not np.isfinite(v) for v in grid):
        errors.append("penalty_grid values must be finite")
    if any(v < 0 for v in grid):
        errors.append(f"penalty_grid values must be >= 0, got {[v for v in grid if v < 0]}")
    if errors:
        raise ConfigurationError(errors)
    return grid


__all__ = [
    "DEFAULT_GRID_LEVELS",
    "regular_penalty_grid",
    "validate_penalty_grid",
]
