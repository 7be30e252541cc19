"""
checks/aws/cloudwatch_metrics.py

Per-resource CloudWatch metric fetcher.

One GetMetricStatistics call per resource, Average statistic only. Returned
datapoints are converted to MetricSample values; their order is whatever
CloudWatch returns (callers must not assume sorting).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from checks.aws._common import AWS_ERRORS, error_code, utc
from checks.aws.defaults import IDLE_METRIC_STATISTIC, RDS_INSTANCE_DIMENSION
from contracts.check_contracts import MetricFetchError
from contracts.check_pattern import MetricSample
from contracts.interfaces import CloudWatchClientProtocol


def _to_sample(point: Dict[str, Any], statistic: str) -> Optional[MetricSample]:
    ts = point.get("Timestamp")
    value = point.get(statistic)
    if not isinstance(ts, datetime):
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return MetricSample(timestamp=utc(ts), value=float(value))  # type: ignore[arg-type]


class CloudWatchMetricFetcher:
    """MetricFetcher backed by a CloudWatch client."""

    def __init__(
        self,
        cloudwatch: CloudWatchClientProtocol,
        *,
        dimension_name: str = RDS_INSTANCE_DIMENSION,
        statistic: str = IDLE_METRIC_STATISTIC,
    ) -> None:
        self._cw = cloudwatch
        self._dimension_name = dimension_name
        self._statistic = statistic

    def fetch_window(
        self,
        resource_id: str,
        metric_name: str,
        namespace: str,
        period: int,
        start: datetime,
        end: datetime,
    ) -> List[MetricSample]:
        """Return the samples of ``metric_name`` for one resource over [start, end].

        Raises:
            MetricFetchError: the backend call failed.
        """
        try:
            resp = self._cw.get_metric_statistics(
                Namespace=namespace,
                MetricName=metric_name,
                Dimensions=[{"Name": self._dimension_name, "Value": resource_id}],
                StartTime=start,
                EndTime=end,
                Period=int(period),
                Statistics=[self._statistic],
            )
        except AWS_ERRORS as exc:
            raise MetricFetchError(
                f"get_metric_statistics failed for {resource_id}: {error_code(exc)}",
                resource_id=resource_id,
                metric_name=metric_name,
            ) from exc

        samples: List[MetricSample] = []
        for point in resp.get("Datapoints", []) or []:
            if not isinstance(point, dict):
                continue
            sample = _to_sample(point, self._statistic)
            if sample is not None:
                samples.append(sample)
        return samples
