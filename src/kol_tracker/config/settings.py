"""Configuration management for the KOL tracker."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, cast

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE = Path("config/app.toml")
CONFIG_FILE_ENV_VAR = "APP_CONFIG_FILE"
PROFILE_ENV_VAR = "KOL_TRACKER_PROFILE"
DEFAULT_PROFILE = "default"


def _resolve_config_path() -> Path:
    env_value = os.getenv(CONFIG_FILE_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(cast(Dict[str, Any], result[key]), value)
        else:
            result[key] = value
    return result


def _select_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    if not data:
        return {}
    base_section = data.get(DEFAULT_PROFILE)
    if not isinstance(base_section, dict):
        # Flat files without profile tables are used as-is.
        return data
    requested = (os.getenv(PROFILE_ENV_VAR) or DEFAULT_PROFILE).lower()
    override = data.get(requested)
    if requested != DEFAULT_PROFILE and isinstance(override, dict):
        return _deep_merge(base_section, override)
    return base_section


def _load_toml_config() -> Tuple[Dict[str, Any], Optional[Path]]:
    path = _resolve_config_path()
    if not path.exists():
        return {}, None
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        return {}, path
    return _select_profile(payload), path


class DataSourceConfig(BaseModel):
    """Upstream token feed settings."""

    feed_base_url: AnyHttpUrl = Field(default="https://frontend-api.pump.fun")
    feed_tokens_endpoint: str = Field(default="/coins/king-of-the-hill")
    feed_api_key: Optional[str] = None
    http_timeout: float = Field(default=10.0, ge=1.0, le=45.0)
    cache_ttl_seconds: int = Field(default=30, ge=0)
    retry_attempts: int = Field(default=3, ge=1, le=10)

    @field_validator("feed_tokens_endpoint", mode="before")
    @classmethod
    def _leading_slash(cls, value: Any) -> Any:
        if isinstance(value, str) and value and not value.startswith("/"):
            return f"/{value}"
        return value


class LedgerConfig(BaseModel):
    """Knobs for the derived trader views."""

    recent_activity_limit: int = Field(default=2, ge=0)
    match_tolerance_ms: int = Field(default=1_000, ge=0)


class ServiceConfig(BaseModel):
    """Host-side processing settings."""

    max_workers: int = Field(default=4, ge=1, le=64)


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class AppConfig(BaseSettings):
    """Aggregated application configuration."""

    data_sources: DataSourceConfig = Field(default_factory=DataSourceConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    config_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def file_settings(_: Optional[BaseSettings] = None) -> Dict[str, Any]:
            payload, path = _load_toml_config()
            if path is not None:
                payload = {**payload, "config_file": path}
            return payload

        # Runtime environment variables win over the static config file.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_settings,
            file_secret_settings,
        )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Create a cached application configuration object."""

    return AppConfig()


__all__ = [
    "AppConfig",
    "DataSourceConfig",
    "LedgerConfig",
    "MonitoringConfig",
    "ServiceConfig",
    "get_app_config",
]
