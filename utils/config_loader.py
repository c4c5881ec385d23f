"""Configuration management utilities."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "default.yaml"

# Fallback values for every key the application reads
DEFAULT_CONFIG: Dict[str, Any] = {
    'server': {
        'host': '0.0.0.0',
        'port': 8000,
        'cors_origins': ['*'],
    },
    'gemini': {
        'model': 'gemini-1.5-pro',
        'api_key_env': 'GEMINI_API_KEY',
        'timeout_sec': 30.0,
    },
    'recording': {
        'max_attempts': 3,
        'retry_delay_sec': 1.0,
    },
    'storage': {
        'backend': 'memory',
        'sqlite_path': 'data/stroke_screen.db',
        'recent_limit': 10,
    },
    'logging': {
        'level': 'INFO',
        'file': 'stroke_screen.log',
    },
}


def load_config(config_path) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Values missing from the file are filled in from DEFAULT_CONFIG.

    Args:
        config_path: Path to YAML configuration file (str or Path)

    Returns:
        Dictionary containing configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    logger.debug(f"Loaded config keys: {list(config.keys())}")

    return merge_config(DEFAULT_CONFIG, config)


def load_default_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the bundled configuration, or the built-in defaults if it is absent.
    """
    config_path = Path(config_path or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}; using built-in defaults")
        return copy.deepcopy(DEFAULT_CONFIG)
    return load_config(config_path)


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_nested_config(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get nested configuration value using dot notation.

    Example:
        get_nested_config(config, 'recording.max_attempts', default=3)

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path to value
        default: Default value if path not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
