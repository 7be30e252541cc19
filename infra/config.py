"""Centralized application configuration with schema validation.

This module is intentionally compatibility-first:
- Supports flat environment names (for example ``AWS_REGIONS``).
- Supports nested names (for example ``CHECKS__LOOKBACK_DAYS``) for consistency.
- Optionally reads a local ``.env`` file before process env values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

_DEFAULT_AWS_REGIONS = [
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "eu-central-1",
]

_METRIC_ERROR_POLICIES = ("abort", "skip")

# CloudWatch GetMetricStatistics rejects requests spanning more datapoints.
_MAX_DATAPOINTS_PER_QUERY = 1440


class AWSConfig(BaseModel):
    """AWS client defaults used by service factories."""

    model_config = ConfigDict(frozen=True)

    regions: list[str] = Field(default_factory=lambda: list(_DEFAULT_AWS_REGIONS))
    max_retries: int = Field(default=10, ge=1, le=25)
    timeout: int = Field(default=60, ge=1, le=300)
    connect_timeout: int = Field(default=5, ge=1, le=60)

    @field_validator("regions", mode="before")
    @classmethod
    def _normalize_regions(cls, value: object) -> list[str]:
        """Accept list or comma-separated string and normalize to unique ordered list."""
        if value is None:
            return list(_DEFAULT_AWS_REGIONS)

        items: list[str]
        if isinstance(value, str):
            items = [part.strip() for part in value.split(",") if part.strip()]
        elif isinstance(value, list):
            items = [str(part).strip() for part in value if str(part).strip()]
        else:
            raise TypeError("aws.regions must be a list[str] or comma-separated string")

        if not items:
            raise ValueError("aws.regions must contain at least one region")

        seen: set[str] = set()
        ordered: list[str] = []
        for region in items:
            if region not in seen:
                seen.add(region)
                ordered.append(region)
        return ordered


class LoggingSettings(BaseModel):
    """Repository-wide logging settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    override_root_handlers: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        text = str(value or "").strip().upper()
        if text in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return text
        return "INFO"


class CheckSettings(BaseModel):
    """Tuning knobs shared by idle-resource checks.

    ``on_metric_error`` selects what happens when one resource's metric query fails:
      - ``abort``: the whole check fails (no partial report)
      - ``skip``: the resource is reported as a warning and the check continues
    """

    model_config = ConfigDict(frozen=True)

    lookback_days: int = Field(default=14, ge=1, le=455)
    idle_threshold_days: int = Field(default=7, ge=0)
    period_seconds: int = Field(default=3600, ge=60)
    max_concurrency: int = Field(default=4, ge=1, le=64)
    on_metric_error: str = Field(default="abort")
    deadline_seconds: float | None = Field(default=None, gt=0.0)

    @field_validator("on_metric_error", mode="before")
    @classmethod
    def _normalize_policy(cls, value: object) -> str:
        text = str(value or "").strip().lower()
        if not text:
            return "abort"
        if text not in _METRIC_ERROR_POLICIES:
            raise ValueError(f"checks.on_metric_error must be one of {list(_METRIC_ERROR_POLICIES)}")
        return text

    @field_validator("deadline_seconds", mode="before")
    @classmethod
    def _normalize_deadline(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _validate_window(self) -> CheckSettings:
        if self.idle_threshold_days > self.lookback_days:
            raise ValueError("checks.idle_threshold_days must not exceed checks.lookback_days")
        window_seconds = self.lookback_days * 86400
        if window_seconds > _MAX_DATAPOINTS_PER_QUERY * self.period_seconds:
            raise ValueError(
                f"checks.lookback_days={self.lookback_days} at checks.period_seconds={self.period_seconds} "
                f"exceeds {_MAX_DATAPOINTS_PER_QUERY} datapoints per metric query"
            )
        return self


class Settings(BaseModel):
    """Top-level settings model."""

    model_config = ConfigDict(frozen=True)

    aws: AWSConfig = Field(default_factory=AWSConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    checks: CheckSettings = Field(default_factory=CheckSettings)

    @classmethod
    def from_env(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        env_file: str = ".env",
    ) -> Settings:
        """Build settings from `.env` then environment variables."""
        runtime_env = os.environ if env is None else env
        merged_env = _merge_env(_load_dotenv(Path(env_file)), runtime_env)
        payload = _build_payload(merged_env)
        return cls.model_validate(payload)


def _load_dotenv(path: Path) -> dict[str, str]:
    """Parse a minimal `.env` file format."""
    if not path.exists() or not path.is_file():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        key_clean = key.strip()
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key_clean:
            values[key_clean] = value
    return values


def _merge_env(dotenv_values: Mapping[str, str], runtime_env: Mapping[str, str]) -> dict[str, str]:
    """Return env map where process env overrides `.env` values."""
    merged = {str(k): str(v) for k, v in dotenv_values.items()}
    for key, value in runtime_env.items():
        merged[str(key)] = str(value)
    return merged


def _first_non_empty(env: Mapping[str, str], *keys: str) -> str | None:
    """Return the first non-empty value for the provided keys."""
    for key in keys:
        value = str(env.get(key, "")).strip()
        if value:
            return value
    return None


def _build_payload(env: Mapping[str, str]) -> dict[str, object]:
    """Build nested settings payload from env values."""
    aws = {
        "regions": _first_non_empty(env, "AWS__REGIONS", "AWS_REGIONS"),
        "max_retries": _first_non_empty(env, "AWS__MAX_RETRIES", "AWS_MAX_RETRIES"),
        "timeout": _first_non_empty(env, "AWS__TIMEOUT", "AWS_TIMEOUT"),
        "connect_timeout": _first_non_empty(env, "AWS__CONNECT_TIMEOUT", "AWS_CONNECT_TIMEOUT"),
    }
    logging_settings = {
        "level": _first_non_empty(env, "LOGGING__LEVEL", "IDLECHECK_LOG_LEVEL"),
        "json_logs": _first_non_empty(env, "LOGGING__JSON_LOGS", "IDLECHECK_LOG_JSON"),
        "override_root_handlers": _first_non_empty(
            env, "LOGGING__OVERRIDE_ROOT_HANDLERS", "IDLECHECK_LOG_OVERRIDE"
        ),
    }
    checks = {
        "lookback_days": _first_non_empty(env, "CHECKS__LOOKBACK_DAYS", "IDLECHECK_LOOKBACK_DAYS"),
        "idle_threshold_days": _first_non_empty(
            env, "CHECKS__IDLE_THRESHOLD_DAYS", "IDLECHECK_IDLE_THRESHOLD_DAYS"
        ),
        "period_seconds": _first_non_empty(env, "CHECKS__PERIOD_SECONDS", "IDLECHECK_PERIOD_SECONDS"),
        "max_concurrency": _first_non_empty(env, "CHECKS__MAX_CONCURRENCY", "IDLECHECK_MAX_CONCURRENCY"),
        "on_metric_error": _first_non_empty(env, "CHECKS__ON_METRIC_ERROR", "IDLECHECK_ON_METRIC_ERROR"),
        "deadline_seconds": _first_non_empty(
            env, "CHECKS__DEADLINE_SECONDS", "IDLECHECK_DEADLINE_SECONDS"
        ),
    }
    return {
        "aws": {k: v for k, v in aws.items() if v is not None},
        "logging": {k: v for k, v in logging_settings.items() if v is not None},
        "checks": {k: v for k, v in checks.items() if v is not None},
    }


_SETTINGS_LOCK = Lock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, reload: bool = False) -> Settings:
    """Return cached settings, optionally forcing reload from env."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if reload or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings.from_env()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear in-process settings cache."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "AWSConfig",
    "CheckSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ValidationError",
]
