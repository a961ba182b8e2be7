"""
User settings loaded from ``<home>/config.yaml``.

The file is optional; a missing or empty file yields the defaults below.
Example::

    catalog_url: https://www.python.org/ftp/python/
    cache_max_age_days: 10
    release_build: false
    make_jobs: 4
    progress: true
    discover_system_toolchains: true
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from hygeia.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "https://www.python.org/ftp/python/"
DEFAULT_CACHE_MAX_AGE_DAYS = 10


@dataclass
class Settings:
    """hygeia user settings."""

    catalog_url: str = DEFAULT_CATALOG_URL
    cache_max_age_days: int = DEFAULT_CACHE_MAX_AGE_DAYS
    release_build: bool = False
    make_jobs: Optional[int] = None
    progress: bool = True
    discover_system_toolchains: bool = True


_EXPECTED_TYPES = {
    "catalog_url": (str,),
    "cache_max_age_days": (int,),
    "release_build": (bool,),
    "make_jobs": (int, type(None)),
    "progress": (bool,),
    "discover_system_toolchains": (bool,),
}


def load_settings(config_path: Path) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        config_path: Path to config.yaml (need not exist)

    Returns:
        Parsed settings, defaults for anything not given

    Raises:
        ConfigError: If the file is not valid YAML or a value has the wrong type
    """
    config_path = Path(config_path)
    if not config_path.exists():
        logger.debug(f"Config file not found (optional): {config_path}")
        return Settings()

    logger.debug(f"Loading configuration from {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}")

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a mapping at top level")

    return _parse_settings(data, config_path)


def _parse_settings(data: dict, source: Path) -> Settings:
    known = {f.name for f in fields(Settings)}
    values = {}

    for key, value in data.items():
        if key not in known:
            logger.warning(f"{source}: ignoring unknown setting '{key}'")
            continue

        expected = _EXPECTED_TYPES[key]
        # bool is an int subclass; reject it where a number is wanted
        if (isinstance(value, bool) and bool not in expected) or not isinstance(value, expected):
            names = " or ".join("null" if t is type(None) else t.__name__ for t in expected)
            raise ConfigError(f"{source}: '{key}' must be {names}, got {value!r}")
        values[key] = value

    settings = Settings(**values)

    if settings.cache_max_age_days < 0:
        raise ConfigError(f"{source}: 'cache_max_age_days' must not be negative")
    if settings.make_jobs is not None and settings.make_jobs < 1:
        raise ConfigError(f"{source}: 'make_jobs' must be at least 1")
    if not settings.catalog_url.endswith("/"):
        settings.catalog_url += "/"

    return settings
