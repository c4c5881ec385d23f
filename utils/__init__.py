"""Shared utilities for the stroke screening service."""

from .config_loader import (
    DEFAULT_CONFIG,
    get_nested_config,
    load_config,
    load_default_config,
)

__all__ = [
    'DEFAULT_CONFIG',
    'get_nested_config',
    'load_config',
    'load_default_config',
]
