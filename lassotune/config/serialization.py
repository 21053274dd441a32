"""Configuration serialization functions."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml

from .lasso_config import LassoConfig

logger = logging.getLogger(__name__)


def save_config(config: LassoConfig, path: str | Path) -> Path:
    """Save configuration to YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    logger.info(f"Saved config to {path}")
    return path


def save_config_json(config: LassoConfig, path: str | Path) -> Path:
    """Save configuration to JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2, default=str)
    logger.info(f"Saved config to {path}")
    return path
