"""
Configuration loading for the biomass correction workflow.

Configuration is YAML. A user file is merged over the packaged defaults
(``config.yaml`` next to this module), so a run only has to name the values
it changes.

Search order for the user file:
1. Explicit config_path if provided
2. Environment variable BIOMASS_CORRECTION_CONFIG
3. No user file: packaged defaults only
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .logging_utils import get_logger

DEFAULT_CONFIG_PATH = Path(__file__).with_name('config.yaml')
CONFIG_ENV_VAR = 'BIOMASS_CORRECTION_CONFIG'
REQUIRED_SECTIONS = ['data', 'recruitment', 'decomposition', 'groups', 'spatial', 'output']
END_OF_SERIES_POLICIES = ('exclude', 'clamp', 'raise')

logger = get_logger('config')


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML in {path}: {e}")
    if not isinstance(config, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")
    return config


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration, merged over the packaged defaults.

    Args:
        config_path: Explicit path to a YAML configuration file

    Returns:
        Dict[str, Any]: Validated configuration dictionary

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
        ValueError: If the merged configuration is invalid
    """
    config = _read_yaml(DEFAULT_CONFIG_PATH)

    user_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if user_path:
        user_path = Path(user_path)
        if not user_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {user_path}")
        config = merge_config(config, _read_yaml(user_path))
        logger.info(f"Loaded configuration from: {user_path}")
    else:
        logger.info("No configuration file given, using packaged defaults")

    config['_meta'] = {'config_file': str(user_path) if user_path else None}
    validate_config(config)
    return config


def validate_config(config: Dict[str, Any], required_sections: list = None) -> bool:
    """
    Validate configuration structure and the enumerated options.

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValueError("Configuration must be a dictionary")

    required_sections = REQUIRED_SECTIONS if required_sections is None else required_sections
    missing_sections = [s for s in required_sections if s not in config]
    if missing_sections:
        raise ValueError(f"Missing required configuration sections: {missing_sections}")

    policy = config.get('decomposition', {}).get('end_of_series', 'exclude')
    if policy not in END_OF_SERIES_POLICIES:
        raise ValueError(
            f"decomposition.end_of_series must be one of {END_OF_SERIES_POLICIES}, got '{policy}'"
        )

    age_days = config.get('recruitment', {}).get('age_days')
    if age_days is None or float(age_days) < 0:
        raise ValueError("recruitment.age_days must be a non-negative number of days")

    for key_path in ('spatial.bc_first_cell', 'output.reference_year'):
        value = get_config_value(config, key_path)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key_path} must be an integer, got {value!r}")

    logger.debug("Configuration validation passed")
    return True


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Examples:
        >>> get_config_value(config, 'spatial.bc_first_cell', 92)
    """
    value = config
    try:
        for key in key_path.split('.'):
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default
