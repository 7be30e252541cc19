"""
runner.py

Idle-resource check runner (checks -> validated wire reports -> JSON on stdout).

Default behavior: run ALL registered checks (discovered under the `checks` package)
in every configured region.
Optional behavior: run only selected checks via --check, exclude via --exclude-check,
and override the configured regions via --region.

Regions default to AWS_REGIONS from infra/aws_config.py (AWS__REGIONS / AWS_REGIONS env).

Run everything (default):
python runner.py

Run one check in one region, failing fast on the first error:
python runner.py --check checks.aws.rds_idle_instances:IdleDBInstancesCheck --region eu-west-3 --strict

Exit codes:
  0  every check produced a report
  2  at least one check failed (reports of the others are still printed)
"""

from __future__ import annotations

import argparse
import importlib
import json
import pkgutil
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import boto3

import checks  # IMPORTANT: used for module discovery
from checks.registry import get_factory, list_specs
from contracts.check_pattern import Check, CheckRunner, RunContext
from contracts.services import ServicesFactory
from infra.config import get_settings
from infra.logging_config import StructuredLogger, clear_run_context, set_run_context, setup_logging
from version import ENGINE_NAME, ENGINE_VERSION, SCHEMA_VERSION

logger = StructuredLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_z(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _make_run_id(run_ts: datetime) -> str:
    return f"run-{_iso_z(run_ts)}"


def _discover_all_check_specs() -> list[str]:
    """
    Import all modules under the `checks` package so they can register factories.
    Returns all registered check specs in deterministic order.
    """
    prefix = checks.__name__ + "."
    for mod in pkgutil.walk_packages(checks.__path__, prefix):
        importlib.import_module(mod.name)

    specs = list_specs()
    if not specs:
        raise RuntimeError(
            "No checks registered. Ensure check modules register themselves in checks.registry."
        )
    return specs


def _load_check(dotted_path: str, *, ctx: RunContext, bootstrap: dict) -> Check:
    """
    Load a check instance from a dotted import path.

    Format:
      module.path:ClassName
    Example:
      checks.aws.rds_idle_instances:IdleDBInstancesCheck
    """
    if ":" not in dotted_path:
        raise ValueError("Check path must be like 'module.path:ClassName'")
    module_path, class_name = dotted_path.split(":", 1)

    # Importing the module can register a factory in checks.registry.
    module = importlib.import_module(module_path)

    factory = get_factory(dotted_path)
    if factory is not None:
        instance = factory(ctx, bootstrap)
        if not hasattr(instance, "run") or not hasattr(instance, "checker_id"):
            raise TypeError(f"Factory for '{dotted_path}' did not return a valid Check")
        return instance

    # Fallback: plain no-arg constructor.
    klass = getattr(module, class_name, None)
    if klass is None:
        raise ValueError(f"Class '{class_name}' not found in module '{module_path}'")

    instance = klass()
    if not hasattr(instance, "run") or not hasattr(instance, "checker_id"):
        raise TypeError(f"{dotted_path} is not a valid Check (missing run/checker_id)")
    return instance


def _ordered_unique(values: Sequence[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for v in values:
        item = str(v).strip()
        if item and item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def _get_configured_regions() -> List[str]:
    """Read the region list from infra/aws_config.py (AWS_REGIONS)."""
    from infra.aws_config import AWS_REGIONS

    regions = _ordered_unique(AWS_REGIONS or [])
    if not regions:
        raise RuntimeError("AWS_REGIONS is empty. Configure at least one region.")
    return regions


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Idle resource check runner (checks -> JSON report)")

    parser.add_argument(
        "--check",
        action="append",
        default=None,  # None means "user did not specify"
        help="Check to run, format: module.path:ClassName. Repeatable. If omitted, runs all checks.",
    )
    parser.add_argument(
        "--exclude-check",
        action="append",
        default=[],
        help="Check spec(s) to exclude (same format as --check). Repeatable.",
    )
    parser.add_argument(
        "--region",
        action="append",
        default=None,
        help="Region to evaluate. Repeatable. If omitted, uses configured AWS_REGIONS.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Stop at the first failing check instead of recording it and continuing.",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation for the report (default: 2).",
    )
    parser.add_argument(
        "--print-version",
        action="store_true",
        help="Print engine/schema versions and exit.",
    )

    return parser.parse_args(argv)


def run_fleet(
    *,
    check_specs: Sequence[str],
    regions: Sequence[str],
    services_factory: Any,
    ctx: RunContext,
    bootstrap: Dict[str, Any],
    validation_mode: str = "lenient",
) -> Dict[str, Any]:
    """Run every check in every region and return the JSON-compatible fleet report."""
    runner = CheckRunner(validation_mode=validation_mode)
    per_region: List[Dict[str, Any]] = []

    for region in regions:
        svcs = services_factory.for_region(region)
        selected = [_load_check(spec, ctx=ctx, bootstrap=bootstrap) for spec in check_specs]

        set_run_context(run_id=ctx.run_id, region=region)
        try:
            result = runner.run_many(selected, ctx, svcs)
        finally:
            clear_run_context()

        per_region.append(
            {
                "region": region,
                "reports": result.reports,
                "failures": [
                    {
                        "checkId": f.check_id,
                        "errorType": f.error_type,
                        "message": f.message,
                    }
                    for f in result.failures
                ],
            }
        )

    return {
        "engineName": ctx.engine_name,
        "engineVersion": ctx.engine_version,
        "schemaVersion": ctx.schema_version,
        "runId": ctx.run_id,
        "runTs": _iso_z(ctx.run_ts),
        "regions": per_region,
    }


def main(argv: Sequence[str], *, services_factory: Optional[Any] = None) -> int:
    args = _parse_args(argv)

    if args.print_version:
        print(f"ENGINE_NAME={ENGINE_NAME}")
        print(f"ENGINE_VERSION={ENGINE_VERSION}")
        print(f"SCHEMA_VERSION={SCHEMA_VERSION}")
        return 0

    settings = get_settings()
    setup_logging()

    run_ts = _utc_now()
    run_id = _make_run_id(run_ts)
    ctx = RunContext(
        run_id=run_id,
        run_ts=run_ts,
        engine_name=ENGINE_NAME,
        engine_version=ENGINE_VERSION,
        schema_version=SCHEMA_VERSION,
        deadline_seconds=settings.checks.deadline_seconds,
    )

    regions = _ordered_unique(args.region) if args.region else _get_configured_regions()

    if args.check is None:
        check_specs = _discover_all_check_specs()
    else:
        check_specs = list(args.check)

    exclude = set(args.exclude_check or [])
    check_specs = [s for s in check_specs if s not in exclude]
    if not check_specs:
        raise RuntimeError("No checks selected to run (after exclusions).")

    if services_factory is None:
        from infra.aws_config import SDK_CONFIG

        services_factory = ServicesFactory(session=boto3.Session(), sdk_config=SDK_CONFIG)

    # Bootstrap is runtime data that check factories may need.
    bootstrap: Dict[str, Any] = {"check_settings": settings.checks}

    logger.info("fleet_run_started", run_id=run_id, regions=len(regions), checks=len(check_specs))
    report = run_fleet(
        check_specs=check_specs,
        regions=regions,
        services_factory=services_factory,
        ctx=ctx,
        bootstrap=bootstrap,
        validation_mode="strict" if args.strict else "lenient",
    )

    failures = sum(len(r["failures"]) for r in report["regions"])
    logger.info("fleet_run_completed", run_id=run_id, failures=failures)

    print(json.dumps(report, indent=args.indent if args.indent > 0 else None, sort_keys=False))
    return 2 if failures else 0


def cli() -> int:
    """Console-script entry point."""
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(cli())
