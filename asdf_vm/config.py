"""
Configuration management for asdf.

Precedence: explicit arguments > env vars > config.yaml > defaults

Config file: <data_dir>/config.yaml
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Known config keys that can be written to config.yaml
CONFIG_KEYS = {"data_dir", "log_level", "log_format"}

DEFAULT_DATA_DIR = Path("~/.asdf")


def _resolve_data_dir(explicit: Any = None) -> Path:
    """Resolve the data directory before Settings init."""
    if explicit:
        return Path(explicit).expanduser().resolve()
    raw = os.environ.get("ASDF_DATA_DIR", "")
    if raw:
        return Path(raw).expanduser().resolve()
    return DEFAULT_DATA_DIR.expanduser()


def _load_yaml_config(data_dir: Path) -> dict[str, Any]:
    """Load config.yaml from the data directory."""
    config_file = get_config_path(data_dir)
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"config.yaml is not a mapping, ignoring: {config_file}")
            return {}
        return data
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Error loading config.yaml: {e}")
        return {}


def save_yaml_config(data_dir: Path, data: dict[str, Any]) -> Path:
    """Write config values to <data_dir>/config.yaml."""
    config_file = get_config_path(data_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return config_file


def get_config_path(data_dir: Path) -> Path:
    """Get the config.yaml path for a data directory."""
    return data_dir / "config.yaml"


class Settings(BaseSettings):
    """asdf configuration. Precedence: arguments > env vars > config.yaml > defaults."""

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Root directory for plugins, installs, downloads and shims",
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")
    log_format: str = Field(
        default="%(levelname)s: %(message)s",
        description="Log format string",
    )

    model_config = {
        "env_prefix": "ASDF_",
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject config.yaml values as fallbacks below env vars and arguments."""
        if not isinstance(data, dict):
            data = {}

        data_dir = _resolve_data_dir(data.get("data_dir"))
        yaml_config = _load_yaml_config(data_dir)

        for key, value in yaml_config.items():
            if key not in CONFIG_KEYS:
                logger.warning(f"Unknown key in config.yaml: {key}")
                continue
            if key not in data or data[key] is None:
                env_val = os.environ.get(f"ASDF_{key.upper()}")
                if env_val is None:
                    data[key] = value

        return data

    @model_validator(mode="after")
    def _expand_data_dir(self) -> "Settings":
        self.data_dir = self.data_dir.expanduser()
        return self


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from the environment and config.yaml."""
    global _settings
    _settings = Settings()
    return _settings
