"""
check_pattern.py

The uniform contract shared by every idle-resource check.

Goals:
- Checks focus on business logic, not boilerplate.
- Every check exposes the same two operations:
    list()          -> CheckMetadata (identity only, no I/O)
    run(ctx, conn)  -> CheckResult   (full evaluation, raises CheckError on failure)
- A fleet-level runner can invoke many heterogeneous checks polymorphically.
- All entities are immutable value objects created fresh per run.

How to use:
- Implement a check as a class with `checker_id`, `list()` and `run()`.
- Run one or many checks with CheckRunner, which:
  - serializes each CheckResult to its wire dict (with validation)
  - records per-check failures (lenient) or re-raises them (strict)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from .check_contracts import CheckError, ValidationError, serialize_check_result

# -----------------------------
# Core data structures
# -----------------------------


@dataclass(frozen=True)
class RunContext:
    """
    Immutable per-run context injected into all checks.

    `run_ts` is the single notion of "now" for a run: metric windows end there and
    recency is measured from it.
    """
    run_id: str
    run_ts: datetime

    engine_name: str = "idlecheck"
    engine_version: str = "0.0.0"
    schema_version: int = 1

    # Bound on the whole run() call; None means "use the check's configured default".
    deadline_seconds: float | None = None


@dataclass(frozen=True)
class CheckMetadata:
    """Identity of a check. Created once, never mutated."""
    check_id: str
    name: str
    description: str
    criteria: str
    recommended_action: str
    additional_resources: str = ""

    # Wire naming for this check's report
    findings_key: str = "findings"
    resource_name_field: str = "resourceName"


@dataclass(frozen=True)
class Resource:
    """One enumerated resource and the attributes carried into findings."""
    resource_id: str
    instance_type: str = ""
    storage_gb: int = 0
    multi_az: bool = False


@dataclass(frozen=True)
class MetricSample:
    """One (timestamp, value) observation. Feeds are not guaranteed to be sorted."""
    timestamp: datetime
    value: float


@dataclass(frozen=True)
class IdleFinding:
    region: str
    resource_name: str
    multi_az: bool
    instance_type: str
    storage_gb: int
    days_since_last_activity: int
    # NOTE: pricing lookup is not integrated; always 0.
    estimated_monthly_savings: int = 0


@dataclass(frozen=True)
class SkippedResource:
    """A resource that could not be evaluated (metric query failed in skip mode)."""
    resource_id: str
    operation: str
    message: str


@dataclass(frozen=True)
class CheckResult:
    """
    Outcome of one check run.

    `findings` is empty (never None) when nothing is idle. `resources_evaluated == 0`
    means the region had no resources at all.
    """
    metadata: CheckMetadata
    findings: tuple[IdleFinding, ...] = ()
    resources_evaluated: int = 0
    warnings: tuple[SkippedResource, ...] = ()

    @property
    def has_resources(self) -> bool:
        return self.resources_evaluated > 0 or bool(self.warnings)

    def to_dict(self) -> dict[str, Any]:
        return serialize_check_result(self)


# -----------------------------
# Check protocol & runner
# -----------------------------


class Check(Protocol):
    """
    A check evaluates one rule against the resources reachable through `conn`.
    """
    checker_id: str  # for logging / fleet reports

    def list(self) -> CheckMetadata:
        """Return identity metadata without performing any I/O."""
        raise NotImplementedError

    def run(self, ctx: RunContext, conn: Any) -> CheckResult:
        """Evaluate the check; raise CheckError on fatal failure."""
        raise NotImplementedError


@dataclass(frozen=True)
class CheckFailure:
    check_id: str
    region: str
    error_type: str
    message: str


@dataclass
class FleetResult:
    reports: list[dict[str, Any]] = field(default_factory=list)
    failures: list[CheckFailure] = field(default_factory=list)

    def extend(self, other: FleetResult) -> None:
        self.reports.extend(other.reports)
        self.failures.extend(other.failures)


class CheckRunner:
    """Runs one or many checks and collects their wire reports.

    The runner follows this pipeline:
        1. For each check, call check.run(ctx, conn) to get a CheckResult
        2. Serialize it with serialize_check_result() (validates every finding)
        3. Collect reports and failures

    In lenient mode (default) a failing check is recorded as a CheckFailure and the
    remaining checks still run. In strict mode the first failure is re-raised.

    Example:
        >>> runner = CheckRunner(validation_mode="lenient")
        >>> result = runner.run_many([IdleDBInstancesCheck()], ctx, services)
        >>> [r["id"] for r in result.reports]
        ['ckia:aws:cost:IdleDBInstances']
    """

    def __init__(self, *, validation_mode: str = "lenient") -> None:
        allowed_modes = {"lenient", "strict"}
        if validation_mode not in allowed_modes:
            raise ValueError(f"validation_mode must be one of {sorted(allowed_modes)}")
        self._validation_mode = validation_mode

    def run_one(self, check: Check, ctx: RunContext, conn: Any) -> FleetResult:
        """Run a single check against one connection (region)."""
        out = FleetResult()
        region = str(getattr(conn, "region", "") or "")

        if self._validation_mode == "strict":
            out.reports.append(serialize_check_result(check.run(ctx, conn)))
            return out

        try:
            out.reports.append(serialize_check_result(check.run(ctx, conn)))
        except (CheckError, ValidationError) as exc:
            check_id = getattr(check, "checker_id", "") or check.__class__.__name__
            out.failures.append(
                CheckFailure(
                    check_id=str(check_id),
                    region=region,
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
            )
        return out

    def run_many(self, checks: Sequence[Check], ctx: RunContext, conn: Any) -> FleetResult:
        """Run several checks sequentially against the same connection and merge results."""
        merged = FleetResult()
        for check in checks:
            merged.extend(self.run_one(check, ctx, conn))
        return merged
