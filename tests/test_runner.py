"""End-to-end tests for the fleet runner with fake AWS clients."""

from __future__ import annotations

import json
from typing import Any

import pytest

import runner
from contracts.services import Services
from tests.aws_mocks import (
    FakeCloudWatchClient,
    FakeRdsClient,
    datapoint,
    db_instance,
    make_client_error,
    make_run_ctx,
)

_SPEC = "checks.aws.rds_idle_instances:IdleDBInstancesCheck"


class _FakeServicesFactory:
    def __init__(self, by_region: dict[str, Services]) -> None:
        self._by_region = by_region
        self.requested: list[str] = []

    def for_region(self, region: str) -> Services:
        self.requested.append(region)
        return self._by_region[region]


def _healthy_region(region: str) -> Services:
    return Services(
        rds=FakeRdsClient(region=region, instances=[db_instance("db-idle"), db_instance("db-busy")]),
        cloudwatch=FakeCloudWatchClient(region=region, datapoints_by_id={"db-busy": [datapoint(3, age_days=0.5)]}),
        region=region,
    )


def _denied_region(region: str) -> Services:
    return Services(
        rds=FakeRdsClient(region=region, pages=[make_client_error("DescribeDBInstances")]),
        cloudwatch=FakeCloudWatchClient(region=region),
        region=region,
    )


def test_run_fleet_reports_per_region() -> None:
    factory = _FakeServicesFactory({"eu-west-3": _healthy_region("eu-west-3"), "us-east-1": _denied_region("us-east-1")})
    report = runner.run_fleet(
        check_specs=[_SPEC],
        regions=["eu-west-3", "us-east-1"],
        services_factory=factory,
        ctx=make_run_ctx(),
        bootstrap={},
    )

    assert report["runId"] == "run-test"
    assert report["runTs"] == "2024-06-15T12:00:00Z"
    assert [r["region"] for r in report["regions"]] == ["eu-west-3", "us-east-1"]

    healthy, denied = report["regions"]
    assert healthy["failures"] == []
    (idle_report,) = healthy["reports"]
    assert idle_report["id"] == "ckia:aws:cost:IdleDBInstances"
    assert [f["dbInstanceName"] for f in idle_report["idleDBInstances"]] == ["db-idle"]
    assert idle_report["resourcesEvaluated"] == 2

    assert denied["reports"] == []
    assert denied["failures"][0]["checkId"] == "ckia:aws:cost:IdleDBInstances"
    assert denied["failures"][0]["errorType"] == "EnumerationError"


def test_main_prints_json_report(capsys: pytest.CaptureFixture[str]) -> None:
    factory = _FakeServicesFactory({"eu-west-3": _healthy_region("eu-west-3")})
    code = runner.main(["--check", _SPEC, "--region", "eu-west-3"], services_factory=factory)

    assert code == 0
    payload: dict[str, Any] = json.loads(capsys.readouterr().out)
    assert payload["engineName"] == "idlecheck"
    assert payload["regions"][0]["reports"][0]["idleDBInstances"][0]["dbInstanceName"] == "db-idle"


def test_main_discovers_registered_checks_and_reports_failures(capsys: pytest.CaptureFixture[str]) -> None:
    factory = _FakeServicesFactory({"us-east-1": _denied_region("us-east-1")})
    code = runner.main(["--region", "us-east-1", "--region", "us-east-1"], services_factory=factory)

    assert code == 2
    assert factory.requested == ["us-east-1"]
    payload = json.loads(capsys.readouterr().out)
    assert payload["regions"][0]["failures"][0]["errorType"] == "EnumerationError"


def test_main_strict_mode_raises() -> None:
    from contracts.check_contracts import EnumerationError

    factory = _FakeServicesFactory({"us-east-1": _denied_region("us-east-1")})
    with pytest.raises(EnumerationError):
        runner.main(["--check", _SPEC, "--region", "us-east-1", "--strict"], services_factory=factory)


def test_main_rejects_empty_selection() -> None:
    with pytest.raises(RuntimeError):
        runner.main(["--check", _SPEC, "--exclude-check", _SPEC, "--region", "eu-west-3"])


def test_load_check_validates_spec_format() -> None:
    with pytest.raises(ValueError):
        runner._load_check("checks.aws.rds_idle_instances", ctx=make_run_ctx(), bootstrap={})


def test_print_version(capsys: pytest.CaptureFixture[str]) -> None:
    assert runner.main(["--print-version"]) == 0
    out = capsys.readouterr().out
    assert "ENGINE_NAME=idlecheck" in out
    assert "SCHEMA_VERSION=" in out
