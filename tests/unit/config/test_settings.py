"""
Tests for settings loading from defaults, environment and config file.
"""

import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from logimporter.config import LokiSettings, Settings, get_settings, load_config_file, reload_settings


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[pytest.MonkeyPatch, None, None]:
    """Drop any importer-related variables and clear the settings cache."""
    for var in ("LOKI_URL", "PORT", "LOGIMPORTER_PORT", "LOGIMPORTER_LOKI_BASE_URL",
                "LOGIMPORTER_LOKI_TIMEOUT_SECONDS", "LOGIMPORTER_SAMPLE_ENABLED"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    # config-file values are written straight into os.environ
    with patch.dict(os.environ):
        yield monkeypatch
    get_settings.cache_clear()


class TestSettings:
    """Test configuration sources and precedence."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        with patch("logimporter.config.load_config_file", return_value={}):
            settings = reload_settings()

        assert settings.port == 8080
        assert settings.loki.base_url == "http://localhost:3100"
        assert settings.loki.push_url == "http://localhost:3100/loki/api/v1/push"
        assert settings.loki.timeout_seconds == 30
        assert settings.sample_import.enabled is True
        assert settings.sample_import.delay_seconds == 5.0
        assert (settings.static_dir / "index.html").exists()

    def test_prefixed_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("LOGIMPORTER_PORT", "9000")
        clean_env.setenv("LOGIMPORTER_LOKI_BASE_URL", "http://loki:3100")

        with patch("logimporter.config.load_config_file", return_value={}):
            settings = reload_settings()

        assert settings.port == 9000
        assert settings.loki.base_url == "http://loki:3100"

    def test_legacy_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("LOKI_URL", "http://legacy-loki:3100")
        clean_env.setenv("PORT", "8181")

        with patch("logimporter.config.load_config_file", return_value={}):
            settings = reload_settings()

        assert settings.port == 8181
        assert settings.loki.base_url == "http://legacy-loki:3100"

    def test_config_file_below_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("LOGIMPORTER_PORT", "7000")
        config = {
            "server": {"port": 6000},
            "loki": {"base_url": "http://from-file:3100", "timeout_seconds": 5},
            "sample_import": {"enabled": False},
        }

        with patch("logimporter.config.load_config_file", return_value=config):
            settings = reload_settings()

        assert settings.port == 7000
        assert settings.loki.base_url == "http://from-file:3100"
        assert settings.loki.timeout_seconds == 5
        assert settings.sample_import.enabled is False

    def test_load_config_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("loki:\n  base_url: http://yaml:3100\n")

        assert load_config_file(str(path)) == {"loki": {"base_url": "http://yaml:3100"}}
        assert load_config_file(str(tmp_path / "missing.yaml")) == {}

    def test_explicit_settings(self) -> None:
        settings = Settings(loki=LokiSettings(base_url="http://x:1/", ready_endpoint="/ready"))

        assert settings.loki.ready_url == "http://x:1/ready"
