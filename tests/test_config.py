"""Unit tests for centralized configuration parsing and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from infra.config import CheckSettings, Settings, ValidationError, clear_settings_cache, get_settings


def test_defaults_match_reference_behavior() -> None:
    settings = Settings.from_env(env={}, env_file=".missing.env")

    assert settings.checks.lookback_days == 14
    assert settings.checks.idle_threshold_days == 7
    assert settings.checks.period_seconds == 3600
    assert settings.checks.max_concurrency == 4
    assert settings.checks.on_metric_error == "abort"
    assert settings.checks.deadline_seconds is None
    assert settings.logging.level == "INFO"
    assert settings.logging.json_logs is False


def test_settings_reads_legacy_env_keys() -> None:
    """Legacy flat env keys should map to nested settings models."""
    env = {
        "AWS_REGIONS": "us-east-1,eu-west-1",
        "AWS_MAX_RETRIES": "7",
        "IDLECHECK_LOG_LEVEL": "debug",
        "IDLECHECK_LOG_JSON": "1",
        "IDLECHECK_LOOKBACK_DAYS": "30",
        "IDLECHECK_IDLE_THRESHOLD_DAYS": "10",
        "IDLECHECK_ON_METRIC_ERROR": "SKIP",
        "IDLECHECK_DEADLINE_SECONDS": "120.5",
    }
    settings = Settings.from_env(env=env, env_file=".missing.env")

    assert settings.aws.regions == ["us-east-1", "eu-west-1"]
    assert settings.aws.max_retries == 7
    assert settings.logging.level == "DEBUG"
    assert settings.logging.json_logs is True
    assert settings.checks.lookback_days == 30
    assert settings.checks.idle_threshold_days == 10
    assert settings.checks.on_metric_error == "skip"
    assert settings.checks.deadline_seconds == 120.5


def test_settings_reads_nested_env_keys() -> None:
    """Nested env keys should be supported with `__` delimiter and win over flat keys."""
    env = {
        "AWS__REGIONS": "us-east-2,us-east-2,eu-central-1",
        "CHECKS__MAX_CONCURRENCY": "8",
        "IDLECHECK_MAX_CONCURRENCY": "2",
        "LOGGING__OVERRIDE_ROOT_HANDLERS": "true",
    }
    settings = Settings.from_env(env=env, env_file=".missing.env")

    assert settings.aws.regions == ["us-east-2", "eu-central-1"]
    assert settings.checks.max_concurrency == 8
    assert settings.logging.override_root_handlers is True


def test_dotenv_is_read_and_process_env_wins(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nCHECKS__LOOKBACK_DAYS=21\nCHECKS__PERIOD_SECONDS='1800'\nnot-a-pair\n",
        encoding="utf-8",
    )
    settings = Settings.from_env(env={"CHECKS__LOOKBACK_DAYS": "28"}, env_file=str(env_file))

    assert settings.checks.lookback_days == 28
    assert settings.checks.period_seconds == 1800


@pytest.mark.parametrize(
    "env",
    [
        {"CHECKS__MAX_CONCURRENCY": "0"},
        {"CHECKS__LOOKBACK_DAYS": "0"},
        {"CHECKS__ON_METRIC_ERROR": "retry"},
        {"CHECKS__DEADLINE_SECONDS": "-1"},
        {"CHECKS__LOOKBACK_DAYS": "5", "CHECKS__IDLE_THRESHOLD_DAYS": "7"},
        {"CHECKS__LOOKBACK_DAYS": "61"},
        {"CHECKS__LOOKBACK_DAYS": "14", "CHECKS__PERIOD_SECONDS": "60"},
        {"AWS__MAX_RETRIES": "0"},
    ],
)
def test_invalid_values_raise_validation_error(env: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        Settings.from_env(env=env, env_file=".missing.env")


@pytest.mark.parametrize(
    ("lookback_days", "period_seconds", "accepted"),
    [
        (60, 3600, True),
        (61, 3600, False),
        (1, 60, True),
        (2, 60, False),
        (455, 86400, True),
        (30, 1800, True),
        (30, 1799, False),
    ],
)
def test_window_must_fit_one_metric_query(lookback_days: int, period_seconds: int, accepted: bool) -> None:
    kwargs = {"lookback_days": lookback_days, "period_seconds": period_seconds, "idle_threshold_days": 1}
    if accepted:
        assert CheckSettings(**kwargs).lookback_days == lookback_days
        return
    with pytest.raises(ValidationError, match="datapoints per metric query"):
        CheckSettings(**kwargs)


def test_aws_section_only_carries_sdk_and_region_settings() -> None:
    settings = Settings.from_env(env={"AWS_DEFAULT_REGION": "eu-west-1"}, env_file=".missing.env")

    assert set(settings.aws.model_dump()) == {"regions", "max_retries", "timeout", "connect_timeout"}


def test_blank_deadline_means_no_deadline() -> None:
    assert CheckSettings(deadline_seconds="  ").deadline_seconds is None  # type: ignore[arg-type]


def test_invalid_log_level_falls_back_to_info() -> None:
    settings = Settings.from_env(env={"IDLECHECK_LOG_LEVEL": "loud"}, env_file=".missing.env")
    assert settings.logging.level == "INFO"


def test_settings_are_frozen() -> None:
    settings = CheckSettings()
    with pytest.raises(ValidationError):
        settings.max_concurrency = 2  # type: ignore[misc]


def test_get_settings_reload_rebuilds_cache(monkeypatch: Any) -> None:
    """Reload should rebuild cached settings from current process env."""
    clear_settings_cache()
    monkeypatch.setenv("CHECKS__MAX_CONCURRENCY", "3")
    first = get_settings(reload=True)
    cached = get_settings()

    monkeypatch.setenv("CHECKS__MAX_CONCURRENCY", "5")
    second = get_settings(reload=True)

    assert first is cached
    assert first.checks.max_concurrency == 3
    assert second.checks.max_concurrency == 5
    clear_settings_cache()
