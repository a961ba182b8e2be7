"""Configuration module for hygeia.

This module loads the optional ``config.yaml`` from the hygeia home directory.
"""

from hygeia.config.settings import (
    Settings,
    load_settings,
    DEFAULT_CATALOG_URL,
    DEFAULT_CACHE_MAX_AGE_DAYS,
)
from hygeia.core.exceptions import ConfigError

__all__ = [
    "Settings",
    "load_settings",
    "ConfigError",
    "DEFAULT_CATALOG_URL",
    "DEFAULT_CACHE_MAX_AGE_DAYS",
]
