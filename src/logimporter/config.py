"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation,
with an optional config.yaml supplying defaults below the environment.
"""

import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

PACKAGE_STATIC_DIR = Path(__file__).parent / "static"


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/logimporter
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class LokiSettings(BaseSettings):
    """Grafana Loki configuration."""

    base_url: str = Field(default="http://localhost:3100", description="Loki base URL")
    push_endpoint: str = Field(default="/loki/api/v1/push", description="Loki push endpoint")
    ready_endpoint: str = Field(default="/ready", description="Loki readiness endpoint")
    source_label: str = Field(default="ui-import", description="Value of the 'source' stream label")
    timeout_seconds: float = Field(default=30, gt=0, description="Total timeout for one push request")

    @property
    def push_url(self) -> str:
        """Full Loki push URL."""
        return f"{self.base_url.rstrip('/')}{self.push_endpoint}"

    @property
    def ready_url(self) -> str:
        """Full Loki readiness URL."""
        return f"{self.base_url.rstrip('/')}{self.ready_endpoint}"

    class Config:
        env_prefix = "LOGIMPORTER_LOKI_"


class SampleImportSettings(BaseSettings):
    """Startup sample import (smoke test) configuration."""

    enabled: bool = Field(default=True, description="Push a sample batch after startup")
    delay_seconds: float = Field(default=5.0, ge=0, description="Delay before the sample push")
    service_name: str = Field(default="sample-app", min_length=1, description="Service name for sample logs")

    class Config:
        env_prefix = "LOGIMPORTER_SAMPLE_"


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    static_dir: Path = Field(default=PACKAGE_STATIC_DIR, description="Directory holding the UI assets")

    # Component settings
    loki: LokiSettings = Field(default_factory=LokiSettings)
    sample_import: SampleImportSettings = Field(default_factory=SampleImportSettings)

    class Config:
        env_prefix = "LOGIMPORTER_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    # Plain LOKI_URL / PORT are still honored when the prefixed vars are unset
    _set_env_from_legacy()

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "LOGIMPORTER_HOST",
        ("server", "port"): "LOGIMPORTER_PORT",
        ("server", "debug"): "LOGIMPORTER_DEBUG",
        ("server", "log_level"): "LOGIMPORTER_LOG_LEVEL",
        ("server", "static_dir"): "LOGIMPORTER_STATIC_DIR",
        ("loki", "base_url"): "LOGIMPORTER_LOKI_BASE_URL",
        ("loki", "timeout_seconds"): "LOGIMPORTER_LOKI_TIMEOUT_SECONDS",
        ("loki", "source_label"): "LOGIMPORTER_LOKI_SOURCE_LABEL",
        ("sample_import", "enabled"): "LOGIMPORTER_SAMPLE_ENABLED",
        ("sample_import", "delay_seconds"): "LOGIMPORTER_SAMPLE_DELAY_SECONDS",
        ("sample_import", "service_name"): "LOGIMPORTER_SAMPLE_SERVICE_NAME",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)


def _set_env_from_legacy() -> None:
    """Map the unprefixed LOKI_URL and PORT variables onto settings."""
    legacy = {
        "LOKI_URL": "LOGIMPORTER_LOKI_BASE_URL",
        "PORT": "LOGIMPORTER_PORT",
    }
    for legacy_var, env_var in legacy.items():
        value = os.environ.get(legacy_var)
        if value and env_var not in os.environ:
            os.environ[env_var] = value


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
