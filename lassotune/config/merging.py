"""Configuration merging and building functions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from lassotune.exceptions import ConfigurationError

from .lasso_config import LassoConfig
from .loaders import load_yaml_config

logger = logging.getLogger(__name__)


def merge_configs(
    base: dict[str, Any],
    override: dict[str, Any],
    deep: bool = True,
) -> dict[str, Any]:
    """Merge configs (override takes precedence, supports deep merge)."""
    result = base.copy()

    for key, value in override.items():
        if deep and key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value, deep=True)
        else:
            result[key] = value

    return result


def build_config(
    cli_args: dict[str, Any] | None = None,
    config_file: str | Path | None = None,
    defaults: dict[str, Any] | None = None,
) -> LassoConfig:
    """
    Build a validated LassoConfig from multiple sources.

    Configuration precedence (highest to lowest):
    1. CLI arguments (None values are ignored)
    2. Config file (if provided, FAIL HARD on errors)
    3. Provided defaults
    4. LassoConfig field defaults

    Raises:
        ConfigurationError: If the file cannot be loaded or the merged values are invalid
    """
    config = defaults.copy() if defaults else {}

    if config_file:
        try:
            file_config = load_yaml_config(config_file)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load configuration from {Path(config_file).absolute()}: {e}"
            ) from e
        config = merge_configs(config, file_config)
        logger.debug(f"Merged config from {config_file}")

    if cli_args:
        cli_config = {k: v for k, v in cli_args.items() if v is not None}
        config = merge_configs(config, cli_config)
        logger.debug(f"Applied {len(cli_config)} CLI overrides")

    return LassoConfig.from_dict(config)
