"""
Configuration management using Pydantic Settings.

Sources, lowest to highest priority:
1. Defaults below
2. settings.yaml (./config/settings.yaml, then the user config directory)
3. WORKTIMER_* environment variables
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

from pydantic_settings import BaseSettings, SettingsConfigDict
from worktimer.domain.models import TrackerPreferences

APP_DIR_NAME = "worktimer"


def _user_dir(kind: str) -> Path:
    """Per-user config or data directory for this OS"""
    if os.name == 'nt':
        return Path(os.getenv('APPDATA')) / APP_DIR_NAME
    if kind == "config":
        return Path.home() / '.config' / APP_DIR_NAME
    return Path.home() / '.local' / 'share' / APP_DIR_NAME


def _read_yaml(config_file: Optional[Path]) -> Dict[str, Any]:
    if config_file is None:
        for candidate in (Path("config/settings.yaml"), _user_dir("config") / "settings.yaml"):
            if candidate.exists():
                config_file = candidate
                break
        else:
            return {}
    with open(config_file, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """
    Service and widget settings.

    The YAML file uses the field names below as top-level keys, with the
    tracking behaviour nested under ``preferences``.
    """
    model_config = SettingsConfigDict(
        env_prefix='WORKTIMER_',
        env_file='.env',
        env_file_encoding='utf-8',
        env_nested_delimiter='__',
        extra='ignore'
    )

    data_dir: Optional[Path] = None

    # Database
    database_url: Optional[str] = None

    # REST API
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_base_url: Optional[str] = None

    # Widget identity (auth is handled outside this service)
    user_id: str = "local"

    log_level: str = "INFO"

    preferences: TrackerPreferences = TrackerPreferences()

    @classmethod
    def load(cls, config_file: Optional[Path] = None, **overrides) -> "Settings":
        """
        Build settings with the YAML file underneath env vars.

        Init kwargs outrank env vars in pydantic-settings, so YAML values that
        an env var also sets are dropped before they are passed in.
        """
        data = _read_yaml(config_file)
        prefix = cls.model_config['env_prefix']
        for key in list(data):
            if os.getenv(f"{prefix}{key}".upper()) is not None:
                del data[key]
        data.update(overrides)
        return cls(**data)

    def get_data_dir(self) -> Path:
        data_dir = self.data_dir or _user_dir("data")
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_db_url(self) -> str:
        """Get database URL, defaulting to a SQLite file in the data directory"""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.get_data_dir() / 'worktimer.db'}"

    def get_api_base_url(self) -> str:
        """URL the widget talks to"""
        return self.api_base_url or f"http://{self.api_host}:{self.api_port}"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_file: Optional[Path] = None) -> Settings:
    """Reload settings from file"""
    global _settings
    _settings = Settings.load(config_file)
    return _settings
