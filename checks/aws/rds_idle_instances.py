"""
checks/aws/rds_idle_instances.py

RDS Idle DB Instances
=====================

Flags Amazon RDS DB instances that have not had a database connection for more
than ``idle_threshold_days`` (default 7) within a ``lookback_days`` (default 14)
window.

Signal
------
CloudWatch ``AWS/RDS`` ``DatabaseConnections``, Average statistic, hourly
period, one query per instance (dimension ``DBInstanceIdentifier``).

Any non-zero hourly average counts as a connection. An instance with no
non-zero datapoint in the window is reported with ``daysSinceLastConnection``
equal to the lookback.

Savings
-------
Pricing lookup is not integrated: ``estimatedMonthlySavings`` is always 0.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from checks.aws._common import safe_region_from_client
from checks.aws.cloudwatch_metrics import CloudWatchMetricFetcher
from checks.aws.defaults import (
    IDLE_METRIC_PERIOD_SECONDS,
    RDS_IDLE_METRIC_NAME,
    RDS_INSTANCE_DIMENSION,
    RDS_NAMESPACE,
)
from checks.aws.rds_enumerator import RdsInstanceEnumerator
from checks.idle_engine import IdleResourceEngine, MetricQuery
from checks.registry import register_checker
from contracts.check_pattern import CheckMetadata, CheckResult, RunContext
from infra.config import CheckSettings, get_settings

SPEC = "checks.aws.rds_idle_instances:IdleDBInstancesCheck"

IDLE_DB_INSTANCES_METADATA = CheckMetadata(
    check_id="ckia:aws:cost:IdleDBInstances",
    name="RDS Idle DB Instances",
    description=(
        "Checks the configuration of your Amazon Relational Database Service (Amazon RDS) "
        "for any DB instances that appear to be idle. If a DB instance has not had a "
        "connection for a prolonged period of time, you can delete the instance to reduce "
        "costs. If persistent storage is needed for data on the instance, you can use "
        "lower-cost options such as taking and retaining a DB snapshot. Manually created "
        "DB snapshots are retained until you delete them."
    ),
    criteria="Any RDS DB instance that has not had a connection in the last 7 days is considered idle.",
    recommended_action=(
        "Consider taking a snapshot of the idle DB instance and then either stopping it or "
        "deleting it. Stopping the DB instance removes some of the costs for it, but does "
        "not remove storage costs. A stopped instance keeps all automated backups based upon "
        "the configured retention period. Stopping a DB instance usually incurs additional "
        "costs when compared to deleting the instance and then retaining only the final snapshot."
    ),
    additional_resources=(
        "See comparable AWS Trusted advisor check: "
        "https://docs.aws.amazon.com/awssupport/latest/user/cost-optimization-checks.html"
        "#amazon-rds-idle-dbs-instances"
    ),
    findings_key="idleDBInstances",
    resource_name_field="dbInstanceName",
)


class IdleDBInstancesCheck:
    """Idle RDS DB instances (no connections in the last N days)."""

    checker_id = IDLE_DB_INSTANCES_METADATA.check_id

    def __init__(self, *, settings: Optional[CheckSettings] = None) -> None:
        self._settings = settings or CheckSettings()

    def list(self) -> CheckMetadata:
        return IDLE_DB_INSTANCES_METADATA

    def _engine(self, conn: Any) -> tuple[IdleResourceEngine, str]:
        rds = getattr(conn, "rds", None)
        cw = getattr(conn, "cloudwatch", None)
        if rds is None or cw is None:
            raise ValueError("IdleDBInstancesCheck requires conn.rds and conn.cloudwatch")

        region = str(getattr(conn, "region", "") or "") or safe_region_from_client(rds)
        period = self._settings.period_seconds or IDLE_METRIC_PERIOD_SECONDS
        engine = IdleResourceEngine(
            enumerator=RdsInstanceEnumerator(rds),
            fetcher=CloudWatchMetricFetcher(cw, dimension_name=RDS_INSTANCE_DIMENSION),
            query=MetricQuery(metric_name=RDS_IDLE_METRIC_NAME, namespace=RDS_NAMESPACE, period=period),
            settings=self._settings,
        )
        return engine, region

    def run(self, ctx: RunContext, conn: Any) -> CheckResult:
        engine, region = self._engine(conn)
        return engine.run(ctx, IDLE_DB_INSTANCES_METADATA, region)

    async def run_async(self, ctx: RunContext, conn: Any) -> CheckResult:
        engine, region = self._engine(conn)
        return await engine.run_async(ctx, IDLE_DB_INSTANCES_METADATA, region)


@register_checker(SPEC)
def _factory(ctx: RunContext, bootstrap: Dict[str, Any]) -> IdleDBInstancesCheck:
    settings = bootstrap.get("check_settings")
    if settings is None:
        settings = get_settings().checks
    return IdleDBInstancesCheck(settings=settings)
