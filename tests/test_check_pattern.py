"""Unit tests for the check protocol value objects and the fleet CheckRunner."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from typing import Any

import pytest

from contracts.check_contracts import EnumerationError, MetricFetchError
from contracts.check_pattern import CheckFailure, CheckMetadata, CheckResult, CheckRunner, FleetResult, RunContext
from tests.aws_mocks import make_run_ctx, make_services
from tests.factories import make_finding, make_metadata, make_result


class _StaticCheck:
    def __init__(self, metadata: CheckMetadata, result: CheckResult | None = None, error: Exception | None = None):
        self.checker_id = metadata.check_id
        self._metadata = metadata
        self._result = result
        self._error = error
        self.calls = 0

    def list(self) -> CheckMetadata:
        return self._metadata

    def run(self, ctx: RunContext, conn: Any) -> CheckResult:
        self.calls += 1
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


def test_value_objects_are_immutable() -> None:
    meta = make_metadata()
    with pytest.raises(FrozenInstanceError):
        meta.name = "other"  # type: ignore[misc]
    with pytest.raises(FrozenInstanceError):
        make_finding().storage_gb = 1  # type: ignore[misc]


def test_has_resources_distinguishes_empty_region() -> None:
    assert make_result().has_resources is False
    assert make_result(resources_evaluated=3).has_resources is True


def test_runner_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        CheckRunner(validation_mode="yolo")


def test_run_many_collects_reports_in_order() -> None:
    a = _StaticCheck(make_metadata(check_id="a"), make_result(metadata=make_metadata(check_id="a")))
    b = _StaticCheck(
        make_metadata(check_id="b"),
        make_result(make_finding(), metadata=make_metadata(check_id="b")),
    )
    out = CheckRunner().run_many([a, b], make_run_ctx(), make_services())

    assert [r["id"] for r in out.reports] == ["a", "b"]
    assert out.reports[1]["resourcesEvaluated"] == 1
    assert out.failures == []


def test_lenient_mode_records_failures_and_continues() -> None:
    failing = _StaticCheck(make_metadata(check_id="bad"), error=EnumerationError("denied", region="eu-west-3"))
    ok = _StaticCheck(make_metadata(check_id="ok"), make_result(metadata=make_metadata(check_id="ok")))

    out = CheckRunner(validation_mode="lenient").run_many([failing, ok], make_run_ctx(), make_services())

    assert [r["id"] for r in out.reports] == ["ok"]
    assert out.failures == [
        CheckFailure(check_id="bad", region="eu-west-3", error_type="EnumerationError", message="denied")
    ]


def test_lenient_mode_records_invalid_reports() -> None:
    bad = _StaticCheck(
        make_metadata(check_id="neg"),
        make_result(make_finding(days_since_last_activity=-1), metadata=make_metadata(check_id="neg")),
    )
    out = CheckRunner().run_one(bad, make_run_ctx(), make_services())
    assert out.reports == []
    assert out.failures[0].error_type == "ValidationError"


def test_strict_mode_reraises_first_failure() -> None:
    failing = _StaticCheck(make_metadata(check_id="bad"), error=MetricFetchError("boom", resource_id="db-1"))
    never = _StaticCheck(make_metadata(check_id="never"), make_result())

    with pytest.raises(MetricFetchError):
        CheckRunner(validation_mode="strict").run_many([failing, never], make_run_ctx(), make_services())
    assert never.calls == 0


def test_unexpected_errors_are_not_swallowed() -> None:
    broken = _StaticCheck(make_metadata(), error=KeyError("bug"))
    with pytest.raises(KeyError):
        CheckRunner().run_one(broken, make_run_ctx(), make_services())


def test_fleet_result_extend() -> None:
    first = FleetResult(reports=[{"id": "a"}])
    first.extend(FleetResult(reports=[{"id": "b"}], failures=[CheckFailure("c", "r", "E", "m")]))
    assert [r["id"] for r in first.reports] == ["a", "b"]
    assert len(first.failures) == 1
