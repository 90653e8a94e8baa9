"""
TunnelKey Configuration using Pydantic Settings.

Provides strongly typed configuration with environment variable support,
validation, and sensible defaults.

Environment variables use TUNNELKEY_ prefix:
- TUNNELKEY_APP_VERSION (version reported to key servers)
- TUNNELKEY_FETCH_TIMEOUT, TUNNELKEY_FETCH_PROXY_URL (fetch settings)
- TUNNELKEY_LOG_LEVEL, TUNNELKEY_LOG_FORMAT (log settings)
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_project_root() -> Path:
    """Get the project root directory."""
    if env_home := os.getenv("TUNNELKEY_HOME"):
        return Path(env_home)

    return Path.cwd()


class FetchSettings(BaseSettings):
    """Dynamic access key fetch settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUNNELKEY_FETCH_",
        extra="ignore",
    )

    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Total request timeout in seconds"
    )
    proxy_url: Optional[str] = Field(
        default=None,
        description="Upstream proxy for fetches (socks5://, socks4:// or http://)"
    )
    user_agent_product: str = Field(
        default="TunnelKey",
        min_length=1,
        description="Product token used in the macOS User-Agent header"
    )


class LogSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUNNELKEY_LOG_",
        extra="ignore",
    )

    level: str = Field(
        default="WARNING",
        description="Log level"
    )
    format: str = Field(
        default="console",
        description="Log format (json, console)"
    )
    file: Optional[str] = Field(
        default=None,
        description="Log file path"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        v_lower = v.lower()
        if v_lower not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'console'")
        return v_lower


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from:
    1. Environment variables (TUNNELKEY_* prefix)
    2. YAML config file (config/config.yaml)
    3. Default values

    Environment variables take precedence for nested sections.
    """

    model_config = SettingsConfigDict(
        env_prefix="TUNNELKEY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    app_version: Optional[str] = Field(
        default=None,
        description="Application version reported to key servers (defaults to package version)"
    )

    @classmethod
    def load_from_yaml(cls, config_file: Path) -> "Settings":
        """Load settings from YAML file with environment overrides."""
        data = {}

        if config_file.exists():
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}

        settings_dict = {}

        if 'fetch' in data:
            settings_dict['fetch'] = FetchSettings(**data['fetch'])
        if 'log' in data:
            settings_dict['log'] = LogSettings(**data['log'])
        if 'app_version' in data:
            settings_dict['app_version'] = data['app_version']

        return cls(**settings_dict)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached singleton).

    First attempts to load from config/config.yaml, then applies
    environment variable overrides.
    """
    config_file = get_project_root() / "config" / "config.yaml"

    if config_file.exists():
        return Settings.load_from_yaml(config_file)

    return Settings()
