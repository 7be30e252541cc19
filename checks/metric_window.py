"""
checks/metric_window.py

Metric window analyzer
======================

Classifies a resource as idle or active from the samples of one activity metric
over a lookback window. Pure: no I/O, no clock reads (``now`` is passed in).

Rules:
- Only non-zero samples count as evidence of activity.
- ``days_since_last_activity`` is the age of the most recent non-zero sample,
  truncated to whole days at the end; ``lookback_days`` when none is found.
- Idle iff that age is strictly greater than ``idle_threshold_days``
  (a sample exactly at the threshold still counts as active).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from checks.aws.defaults import IDLE_LOOKBACK_DAYS, IDLE_THRESHOLD_DAYS
from contracts.check_contracts import parse_utc_datetime
from contracts.check_pattern import MetricSample

_SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class Classification:
    days_since_last_activity: int
    is_idle: bool


def _sample_value(sample: MetricSample) -> float | None:
    value: Any = sample.value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def age_in_days(timestamp: Any, now: datetime) -> float:
    """Fractional age of ``timestamp`` relative to ``now``; future timestamps are age 0."""
    ts = parse_utc_datetime(timestamp)
    ref = parse_utc_datetime(now)
    if ts is None or ref is None:
        raise ValueError("timestamp and now are required")
    return max(0.0, (ref - ts).total_seconds() / _SECONDS_PER_DAY)


def classify(
    samples: Iterable[MetricSample],
    now: datetime,
    lookback_days: int = IDLE_LOOKBACK_DAYS,
    idle_threshold_days: int = IDLE_THRESHOLD_DAYS,
) -> Classification:
    """Return days since last activity and whether the resource is idle.

    Samples may arrive in any order. Samples with a missing timestamp or a
    non-numeric value are ignored.
    """
    days = float(lookback_days)
    for sample in samples:
        value = _sample_value(sample)
        if not value:
            continue
        if sample.timestamp is None:
            continue
        age = age_in_days(sample.timestamp, now)
        if age < days:
            days = age

    return Classification(
        days_since_last_activity=int(days),
        is_idle=days > idle_threshold_days,
    )
