"""
checks/idle_engine.py

Idle resource engine
====================

Shared orchestration for "is this resource idle?" checks:

  enumerate resources -> fetch one activity metric per resource
    -> classify over the lookback window -> assemble a CheckResult

Concurrency
-----------
Per-resource metric fetches are blocking SDK calls. Each run owns a
``ThreadPoolExecutor`` sized to ``max_concurrency`` and submits them through
``loop.run_in_executor``, bounded by an ``asyncio.Semaphore``; ``asyncio.gather``
returns outcomes in enumeration order, so findings order never depends on which
fetch finished first. ``max_concurrency=1`` evaluates resources one at a time.

The executor is shut down without waiting when the run ends. A timed-out or
aborted run returns immediately: queued fetches are cancelled and an SDK call
that is already running is left to finish in its worker thread, its result
unused. The synchronous ``run`` drives its own event loop for the same reason
(``asyncio.run`` would join the loop's default executor on exit).

Failure policy
--------------
- Enumeration failure is always fatal (EnumerationError, no report).
- Metric failure follows ``CheckSettings.on_metric_error``:
    abort: in-flight fetches are cancelled and MetricFetchError propagates
    skip:  the resource becomes a SkippedResource warning; the rest still run
- A deadline (RunContext or settings) bounds the whole run; on expiry the
  run raises CheckTimeoutError.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from checks.aws._common import utc
from checks.aws.defaults import IDLE_METRIC_PERIOD_SECONDS
from checks.metric_window import classify
from contracts.check_contracts import CheckTimeoutError, EnumerationError, MetricFetchError
from contracts.check_pattern import (
    CheckMetadata,
    CheckResult,
    IdleFinding,
    Resource,
    RunContext,
    SkippedResource,
)
from contracts.interfaces import MetricFetcher, ResourceEnumerator
from infra.config import CheckSettings
from infra.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class MetricQuery:
    """Which metric is the activity signal for a resource type."""

    metric_name: str
    namespace: str
    period: int = IDLE_METRIC_PERIOD_SECONDS


@dataclass(frozen=True)
class Classified:
    index: int
    finding: Optional[IdleFinding]


@dataclass(frozen=True)
class Failed:
    index: int
    resource_id: str
    error: MetricFetchError


Outcome = Union[Classified, Failed]


class IdleResourceEngine:
    """Evaluate every resource of one region against one activity metric."""

    def __init__(
        self,
        enumerator: ResourceEnumerator,
        fetcher: MetricFetcher,
        query: MetricQuery,
        *,
        settings: CheckSettings | None = None,
    ) -> None:
        self._enumerator = enumerator
        self._fetcher = fetcher
        self._query = query
        self._settings = settings or CheckSettings()

    @property
    def settings(self) -> CheckSettings:
        return self._settings

    def run(self, ctx: RunContext, metadata: CheckMetadata, region: str) -> CheckResult:
        """Synchronous facade over :meth:`run_async` (must not be called from a running loop)."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(self.run_async(ctx, metadata, region))
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                loop.close()

    async def run_async(self, ctx: RunContext, metadata: CheckMetadata, region: str) -> CheckResult:
        executor = ThreadPoolExecutor(
            max_workers=self._settings.max_concurrency,
            thread_name_prefix="idle-check",
        )
        try:
            return await self._run_with_deadline(ctx, metadata, region, executor)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    async def _run_with_deadline(
        self,
        ctx: RunContext,
        metadata: CheckMetadata,
        region: str,
        executor: Executor,
    ) -> CheckResult:
        deadline = ctx.deadline_seconds if ctx.deadline_seconds is not None else self._settings.deadline_seconds
        if deadline is None:
            return await self._evaluate(ctx, metadata, region, executor)

        try:
            return await asyncio.wait_for(self._evaluate(ctx, metadata, region, executor), timeout=deadline)
        except asyncio.TimeoutError:
            logger.error(
                "idle_check_deadline_exceeded",
                check_id=metadata.check_id,
                region=region,
                deadline_seconds=deadline,
            )
            raise CheckTimeoutError(
                f"{metadata.check_id} did not complete within {deadline}s in {region or 'unknown region'}",
                deadline_seconds=float(deadline),
            ) from None

    async def _evaluate(
        self,
        ctx: RunContext,
        metadata: CheckMetadata,
        region: str,
        executor: Executor,
    ) -> CheckResult:
        logger.info(
            "idle_check_started",
            check_id=metadata.check_id,
            region=region,
            run_id=ctx.run_id,
        )

        loop = asyncio.get_running_loop()
        try:
            resources = await loop.run_in_executor(executor, self._enumerator.list_all, region)
        except EnumerationError as exc:
            logger.error(
                "idle_check_enumeration_failed",
                check_id=metadata.check_id,
                region=region,
                error=str(exc),
            )
            raise

        logger.info(
            "idle_check_resources_enumerated",
            check_id=metadata.check_id,
            region=region,
            resources=len(resources),
        )
        if not resources:
            return self._complete(metadata, region, CheckResult(metadata=metadata))

        end = utc(ctx.run_ts)
        if end is None:
            raise ValueError("RunContext.run_ts is required")
        start = end - timedelta(days=self._settings.lookback_days)

        outcomes = await self._evaluate_all(
            resources, executor=executor, region=region, start=start, end=end
        )

        findings: list[IdleFinding] = []
        warnings: list[SkippedResource] = []
        evaluated = 0
        for outcome in outcomes:
            if isinstance(outcome, Failed):
                warnings.append(
                    SkippedResource(
                        resource_id=outcome.resource_id,
                        operation="get_metric_statistics",
                        message=str(outcome.error),
                    )
                )
                continue
            evaluated += 1
            if outcome.finding is not None:
                findings.append(outcome.finding)

        result = CheckResult(
            metadata=metadata,
            findings=tuple(findings),
            resources_evaluated=evaluated,
            warnings=tuple(warnings),
        )
        return self._complete(metadata, region, result)

    async def _evaluate_all(
        self,
        resources: Sequence[Resource],
        *,
        executor: Executor,
        region: str,
        start: datetime,
        end: datetime,
    ) -> list[Outcome]:
        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self._settings.max_concurrency)
        skip = self._settings.on_metric_error == "skip"

        async def _run_one(index: int, resource: Resource) -> Outcome:
            async with semaphore:
                try:
                    return await loop.run_in_executor(
                        executor, self._evaluate_one, index, resource, region, start, end
                    )
                except MetricFetchError as exc:
                    logger.warning(
                        "idle_check_metric_fetch_failed",
                        region=region,
                        resource_id=resource.resource_id,
                        metric_name=self._query.metric_name,
                        policy=self._settings.on_metric_error,
                        error=str(exc),
                    )
                    if not skip:
                        raise
                    return Failed(index=index, resource_id=resource.resource_id, error=exc)

        tasks = [asyncio.ensure_future(_run_one(i, r)) for i, r in enumerate(resources)]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _evaluate_one(
        self,
        index: int,
        resource: Resource,
        region: str,
        start: datetime,
        end: datetime,
    ) -> Classified:
        samples = self._fetcher.fetch_window(
            resource.resource_id,
            self._query.metric_name,
            self._query.namespace,
            self._query.period,
            start,
            end,
        )
        verdict = classify(
            samples,
            end,
            lookback_days=self._settings.lookback_days,
            idle_threshold_days=self._settings.idle_threshold_days,
        )
        if not verdict.is_idle:
            return Classified(index=index, finding=None)
        return Classified(
            index=index,
            finding=IdleFinding(
                region=region,
                resource_name=resource.resource_id,
                multi_az=resource.multi_az,
                instance_type=resource.instance_type,
                storage_gb=resource.storage_gb,
                days_since_last_activity=verdict.days_since_last_activity,
                estimated_monthly_savings=0,
            ),
        )

    @staticmethod
    def _complete(metadata: CheckMetadata, region: str, result: CheckResult) -> CheckResult:
        logger.info(
            "idle_check_completed",
            check_id=metadata.check_id,
            region=region,
            resources_evaluated=result.resources_evaluated,
            findings=len(result.findings),
            warnings=len(result.warnings),
        )
        return result
