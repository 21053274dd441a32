"""YAML configuration loading functions."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from lassotune.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Files may nest options under this section or keep them at top level
CONFIG_SECTION = "lasso"


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Dictionary with configuration values

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, or
            does not hold a mapping
    """
    path = Path(path)

    if not path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path.absolute()}. "
            f"Check that the file exists and the path is correct."
        )

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration from {path.absolute()}: {e}"
        ) from e

    if config is None:
        logger.warning(f"Empty config file: {path}")
        return {}

    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping, got {type(config).__name__}"
        )

    logger.debug(f"Loaded config from {path}: {len(config)} keys")
    return flatten_config(config)


def flatten_config(config: dict[str, Any]) -> dict[str, Any]:
    """Lift options nested under the 'lasso' section to the top level."""
    if CONFIG_SECTION not in config:
        return dict(config)

    section = config[CONFIG_SECTION] or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{CONFIG_SECTION}' section must be a mapping")

    result = {k: v for k, v in config.items() if k != CONFIG_SECTION}
    result.update(section)
    return result
