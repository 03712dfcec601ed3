"""
Tests for toolkit configuration.
"""

import json
from datetime import timedelta

import pytest
from pydantic import ValidationError

from softdelete_toolkit.config import SoftDeleteConfig, configure, get_config, set_config


class TestSoftDeleteConfig:
    """Test configuration values."""

    def test_defaults(self):
        """Test default configuration values."""
        config = SoftDeleteConfig()
        assert config.timezone == "UTC"
        assert config.naive_timestamps is False
        assert config.allow_global_update is False
        assert config.log_statements is False

    def test_now_is_timezone_aware(self):
        """Test deletion timestamps carry the configured zone."""
        now = SoftDeleteConfig().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_now_in_configured_zone(self):
        now = SoftDeleteConfig(timezone="Europe/Berlin").now()
        assert now.tzinfo.zone == "Europe/Berlin"

    def test_naive_timestamps(self):
        """Test tzinfo is stripped when naive timestamps are requested."""
        assert SoftDeleteConfig(naive_timestamps=True).now().tzinfo is None

    def test_invalid_timezone(self):
        """Test unknown zones are rejected."""
        with pytest.raises(ValidationError):
            SoftDeleteConfig(timezone="Mars/Olympus_Mons")

    def test_to_dict(self):
        config = SoftDeleteConfig(log_statements=True)
        assert config.to_dict() == {
            "timezone": "UTC",
            "naive_timestamps": False,
            "allow_global_update": False,
            "log_statements": True,
        }


class TestConfigSources:
    """Test loading configuration from the environment and files."""

    def test_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("SOFTDELETE_TIMEZONE", "Asia/Tokyo")
        monkeypatch.setenv("SOFTDELETE_ALLOW_GLOBAL_UPDATE", "yes")
        monkeypatch.setenv("SOFTDELETE_LOG_STATEMENTS", "off")

        config = SoftDeleteConfig.from_env()

        assert config.timezone == "Asia/Tokyo"
        assert config.allow_global_update is True
        assert config.log_statements is False

    def test_from_env_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("APP_NAIVE_TIMESTAMPS", "1")
        assert SoftDeleteConfig.from_env(prefix="APP_").naive_timestamps is True

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "softdelete.json"
        path.write_text(json.dumps({"timezone": "Europe/Paris"}))
        assert SoftDeleteConfig.from_file(path).timezone == "Europe/Paris"

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "softdelete.yaml"
        path.write_text("allow_global_update: true\nnaive_timestamps: true\n")
        config = SoftDeleteConfig.from_file(str(path))
        assert config.allow_global_update is True
        assert config.naive_timestamps is True

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "softdelete.yml"
        path.write_text("")
        assert SoftDeleteConfig.from_file(path) == SoftDeleteConfig()


class TestGlobalConfig:
    """Test the global configuration instance."""

    def test_get_config_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SOFTDELETE_LOG_STATEMENTS", "true")
        assert get_config().log_statements is True

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_config(self):
        config = SoftDeleteConfig(timezone="Asia/Tokyo")
        set_config(config)
        assert get_config() is config

    def test_configure_merges(self):
        configure(timezone="Asia/Tokyo")
        config = configure(log_statements=True)
        assert config.timezone == "Asia/Tokyo"
        assert config.log_statements is True
        assert get_config() is config
