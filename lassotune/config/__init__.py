"""
Workflow configuration - dataclass, YAML loading and CLI arg merging.

Precedence: CLI args > YAML file > defaults
"""
from .lasso_config import (
    OUTCOME_TRANSFORMS,
    RESAMPLE_STRATEGIES,
    SELECTION_METRICS,
    SELECTION_RULES,
    LassoConfig,
)
from .loaders import flatten_config, load_yaml_config
from .merging import build_config, merge_configs
from .penalty_grid import regular_penalty_grid, validate_penalty_grid
from .serialization import save_config, save_config_json

__all__ = [
    "LassoConfig",
    "OUTCOME_TRANSFORMS", "RESAMPLE_STRATEGIES", "SELECTION_METRICS", "SELECTION_RULES",
    "load_yaml_config", "flatten_config",
    "merge_configs", "build_config",
    "regular_penalty_grid", "validate_penalty_grid",
    "save_config", "save_config_json",
]
