"""
Unit tests for user settings (config.yaml).
"""

import logging

import pytest

from hygeia.config import (
    DEFAULT_CACHE_MAX_AGE_DAYS,
    DEFAULT_CATALOG_URL,
    ConfigError,
    Settings,
    load_settings,
)


class TestLoadSettings:
    """Test loading config.yaml."""

    def test_missing_file(self, tmp_path):
        """Test defaults when the file does not exist."""
        settings = load_settings(tmp_path / "config.yaml")
        assert settings == Settings()
        assert settings.catalog_url == DEFAULT_CATALOG_URL
        assert settings.cache_max_age_days == DEFAULT_CACHE_MAX_AGE_DAYS

    def test_empty_file(self, tmp_path):
        """Test an empty file gives defaults."""
        config = tmp_path / "config.yaml"
        config.write_text("")
        assert load_settings(config) == Settings()

    def test_values(self, tmp_path):
        """Test every setting is read."""
        config = tmp_path / "config.yaml"
        config.write_text(
            "catalog_url: https://mirror.example.com/python/\n"
            "cache_max_age_days: 3\n"
            "release_build: true\n"
            "make_jobs: 8\n"
            "progress: false\n"
            "discover_system_toolchains: false\n"
        )

        settings = load_settings(config)

        assert settings == Settings(
            catalog_url="https://mirror.example.com/python/",
            cache_max_age_days=3,
            release_build=True,
            make_jobs=8,
            progress=False,
            discover_system_toolchains=False,
        )

    def test_catalog_url_trailing_slash(self, tmp_path):
        """Test a trailing slash is added to the catalog URL."""
        config = tmp_path / "config.yaml"
        config.write_text("catalog_url: https://mirror.example.com/python\n")
        assert load_settings(config).catalog_url == "https://mirror.example.com/python/"

    def test_unknown_key_warns(self, tmp_path, caplog):
        """Test unknown keys are ignored with a warning."""
        config = tmp_path / "config.yaml"
        config.write_text("colour: blue\nmake_jobs: 2\n")

        with caplog.at_level(logging.WARNING):
            settings = load_settings(config)

        assert settings.make_jobs == 2
        assert "colour" in caplog.text

    def test_invalid_yaml(self, tmp_path):
        """Test broken YAML is a ConfigError."""
        config = tmp_path / "config.yaml"
        config.write_text("catalog_url: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config)

    def test_not_a_mapping(self, tmp_path):
        """Test a top-level list is rejected."""
        config = tmp_path / "config.yaml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config)

    @pytest.mark.parametrize(
        "content,match",
        [
            ("cache_max_age_days: soon\n", "cache_max_age_days"),
            ("cache_max_age_days: true\n", "cache_max_age_days"),
            ("release_build: 1\n", "release_build"),
            ("make_jobs: 0\n", "at least 1"),
            ("cache_max_age_days: -1\n", "negative"),
        ],
    )
    def test_invalid_values(self, tmp_path, content, match):
        """Test wrong types and out-of-range values."""
        config = tmp_path / "config.yaml"
        config.write_text(content)
        with pytest.raises(ConfigError, match=match):
            load_settings(config)

    def test_null_make_jobs(self, tmp_path):
        """Test make_jobs may be null."""
        config = tmp_path / "config.yaml"
        config.write_text("make_jobs: null\n")
        assert load_settings(config).make_jobs is None
