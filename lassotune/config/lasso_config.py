"""LassoConfig dataclass for the screening, tuning and final-fit workflow."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List

from lassotune.exceptions import ConfigurationError

from .penalty_grid import regular_penalty_grid, validate_penalty_grid

OUTCOME_TRANSFORMS = ("identity", "sqrt")
RESAMPLE_STRATEGIES = ("bootstrap", "kfold")
SELECTION_METRICS = ("rmse", "r_squared", "mae")
SELECTION_RULES = ("best", "one_se")

# Accepted spellings mapped to canonical names
_ALIASES = {
    "resample_strategy": {"k-fold": "kfold", "vfold": "kfold", "k_fold": "kfold"},
    "selection_metric": {"rsq": "r_squared", "r2": "r_squared"},
}


@dataclass
class LassoConfig:
    """Configuration for screening, resampling, tuning and the final fit."""
    outcome_transform: str = "identity"
    penalty_grid: List[float] = field(default_factory=regular_penalty_grid)
    resample_count: int = 25
    resample_strategy: str = "bootstrap"
    stratify_bins: int = 4
    strata_pool: float = 0.1
    convergence_tolerance: float = 1e-7
    max_iterations: int = 100_000
    selection_metric: str = "rmse"
    selection_rule: str = "best"
    split_fraction: float = 0.75
    seed: int = 42
    mixture: float = 1.0
    screen_outliers: bool = True
    influence_multiplier: float = 4.0
    zv_tolerance: float = 1e-8
    n_jobs: int = -1

    def __post_init__(self) -> None:
        """Normalize aliases and validate every field, reporting all problems at once."""
        for name, aliases in _ALIASES.items():
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, aliases.get(value.lower(), value.lower()))

        errors: List[str] = []

        if self.outcome_transform not in OUTCOME_TRANSFORMS:
            errors.append(
                f"outcome_transform must be one of {OUTCOME_TRANSFORMS}, "
                f"got {self.outcome_transform!r}"
            )
        try:
            self.penalty_grid = validate_penalty_grid(self.penalty_grid)
        except ConfigurationError as e:
            errors.extend(e.errors)
        if self.resample_count < 1:
            errors.append(f"resample_count must be >= 1, got {self.resample_count}")
        if self.resample_strategy not in RESAMPLE_STRATEGIES:
            errors.append(
                f"resample_strategy must be one of {RESAMPLE_STRATEGIES}, "
                f"got {self.resample_strategy!r}"
            )
        elif self.resample_strategy == "kfold" and self.resample_count < 2:
            errors.append(f"kfold needs resample_count >= 2, got {self.resample_count}")
        if self.stratify_bins < 1:
            errors.append(f"stratify_bins must be >= 1, got {self.stratify_bins}")
        if not 0 <= self.strata_pool < 1:
            errors.append(f"strata_pool must be in [0, 1), got {self.strata_pool}")
        if self.convergence_tolerance <= 0:
            errors.append(
                f"convergence_tolerance must be positive, got {self.convergence_tolerance}"
            )
        if self.max_iterations < 1:
            errors.append(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.selection_metric not in SELECTION_METRICS:
            errors.append(
                f"selection_metric must be one of {SELECTION_METRICS}, "
                f"got {self.selection_metric!r}"
            )
        if self.selection_rule not in SELECTION_RULES:
            errors.append(
                f"selection_rule must be one of {SELECTION_RULES}, got {self.selection_rule!r}"
            )
        if not 0 < self.split_fraction < 1:
            errors.append(f"split_fraction must be in (0, 1), got {self.split_fraction}")
        if not 0 <= self.mixture <= 1:
            errors.append(f"mixture must be in [0, 1], got {self.mixture}")
        if self.influence_multiplier <= 0:
            errors.append(
                f"influence_multiplier must be positive, got {self.influence_multiplier}"
            )
        if self.zv_tolerance < 0:
            errors.append(f"zv_tolerance must be >= 0, got {self.zv_tolerance}")
        if self.n_jobs == 0:
            errors.append("n_jobs must be non-zero (use -1 for all cores)")

        if errors:
            raise ConfigurationError(errors)

    def solver_params(self) -> Dict[str, Any]:
        """Keyword arguments for CoordinateDescentSolver."""
        return {
            "mixture": self.mixture,
            "tol": self.convergence_tolerance,
            "max_iter": self.max_iterations,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LassoConfig":
        """Create LassoConfig from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError([f"Unknown configuration option: {k}" for k in unknown])
        return cls(**data)
