"""Centralized default values for AWS checks.

This module contains non-environment-specific defaults used by checks.
Keep these values deterministic and stable across runs; operators tune the
environment-specific knobs through ``infra.config.CheckSettings``.
"""

from __future__ import annotations

from typing import Final

# Shared idle-detection defaults
IDLE_LOOKBACK_DAYS: Final[int] = 14
IDLE_THRESHOLD_DAYS: Final[int] = 7
IDLE_METRIC_PERIOD_SECONDS: Final[int] = 3600
IDLE_METRIC_STATISTIC: Final[str] = "Average"

# RDS idle DB instances check
RDS_NAMESPACE: Final[str] = "AWS/RDS"
RDS_IDLE_METRIC_NAME: Final[str] = "DatabaseConnections"
RDS_INSTANCE_DIMENSION: Final[str] = "DBInstanceIdentifier"
RDS_DESCRIBE_INSTANCES_OPERATION: Final[str] = "describe_db_instances"
