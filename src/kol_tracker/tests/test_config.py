from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from kol_tracker.config import settings


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    # Keep a developer's .env and exported overrides out of the assertions.
    monkeypatch.chdir(tmp_path)
    for name in (
        "KOL_TRACKER_PROFILE",
        "LEDGER__RECENT_ACTIVITY_LIMIT",
        "LEDGER__MATCH_TOLERANCE_MS",
        "DATA_SOURCES__FEED_BASE_URL",
        "DATA_SOURCES__RETRY_ATTEMPTS",
        "MONITORING__LOG_LEVEL",
        "SERVICE__MAX_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    settings.get_app_config.cache_clear()
    yield
    settings.get_app_config.cache_clear()


def test_defaults_without_config_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("APP_CONFIG_FILE", str(tmp_path / "missing.toml"))

    cfg = settings.get_app_config()

    assert cfg.config_file is None
    assert str(cfg.data_sources.feed_base_url).startswith("https://frontend-api.pump.fun")
    assert cfg.data_sources.feed_tokens_endpoint == "/coins/king-of-the-hill"
    assert cfg.ledger.recent_activity_limit == 2
    assert cfg.ledger.match_tolerance_ms == 1000
    assert cfg.service.max_workers == 4
    assert cfg.monitoring.log_level == "INFO"


def test_app_config_loads_profiles_and_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "app.toml"
    config_path.write_text(
        """
[default.data_sources]
feed_base_url = "https://feed.default"
feed_tokens_endpoint = "tokens/trending"
retry_attempts = 2

[default.ledger]
recent_activity_limit = 3

[staging.data_sources]
feed_base_url = "https://feed.staging"

[staging.monitoring]
log_level = "debug"
"""
    )
    monkeypatch.setenv("APP_CONFIG_FILE", str(config_path))
    monkeypatch.setenv("KOL_TRACKER_PROFILE", "staging")
    monkeypatch.setenv("LEDGER__RECENT_ACTIVITY_LIMIT", "5")

    cfg = settings.get_app_config()

    assert cfg.config_file == config_path
    assert "feed.staging" in str(cfg.data_sources.feed_base_url)
    assert cfg.data_sources.feed_tokens_endpoint == "/tokens/trending"
    assert cfg.data_sources.retry_attempts == 2
    assert cfg.monitoring.log_level == "DEBUG"
    assert cfg.ledger.recent_activity_limit == 5


def test_flat_config_file_is_used_as_is(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "app.toml"
    config_path.write_text(
        """
[service]
max_workers = 8
"""
    )
    monkeypatch.setenv("APP_CONFIG_FILE", str(config_path))

    assert settings.get_app_config().service.max_workers == 8


def test_unknown_profile_falls_back_to_default(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "app.toml"
    config_path.write_text(
        """
[default.ledger]
match_tolerance_ms = 250
"""
    )
    monkeypatch.setenv("APP_CONFIG_FILE", str(config_path))
    monkeypatch.setenv("KOL_TRACKER_PROFILE", "production")

    assert settings.get_app_config().ledger.match_tolerance_ms == 250


def test_out_of_range_values_are_rejected() -> None:
    with pytest.raises(ValidationError):
        settings.DataSourceConfig(retry_attempts=0)
    with pytest.raises(ValidationError):
        settings.ServiceConfig(max_workers=0)
