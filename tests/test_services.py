"""Unit tests for the per-region services factory."""

from __future__ import annotations

from typing import Any

import pytest

from contracts.services import Services, ServicesFactory


class _FakeSession:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def client(self, service: str, **kwargs: Any) -> Any:
        self.calls.append((service, dict(kwargs)))
        return f"{service}@{kwargs.get('region_name', '')}"


def test_for_region_builds_rds_and_cloudwatch_clients() -> None:
    session = _FakeSession()
    sdk_config = object()
    svcs = ServicesFactory(session=session, sdk_config=sdk_config).for_region(" eu-west-3 ")  # type: ignore[arg-type]

    assert svcs == Services(rds="rds@eu-west-3", cloudwatch="cloudwatch@eu-west-3", region="eu-west-3")
    assert [name for name, _ in session.calls] == ["rds", "cloudwatch"]
    assert all(kwargs["config"] is sdk_config for _, kwargs in session.calls)


def test_for_region_is_cached_until_cleared() -> None:
    session = _FakeSession()
    factory = ServicesFactory(session=session)  # type: ignore[arg-type]

    first = factory.for_region("us-east-1")
    assert factory.for_region("us-east-1") is first
    assert len(session.calls) == 2
    assert "config" not in session.calls[0][1]

    factory.clear_cache()
    assert factory.for_region("us-east-1") is not first


def test_empty_region_is_rejected() -> None:
    with pytest.raises(ValueError):
        ServicesFactory(session=_FakeSession()).for_region("  ")  # type: ignore[arg-type]
