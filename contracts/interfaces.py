"""
Protocol definitions for dependency injection.

This module defines explicit interfaces (Protocols) for the collaborators of the
idle-resource engine, enabling:
- Easy fakes in tests (no boto3 client construction)
- Clear contracts between the engine and AWS-specific adapters

Two layers are declared:
- AWS client protocols: the subset of boto3 RDS / CloudWatch used by adapters
- Engine capability protocols: what the orchestrator consumes
  (ResourceEnumerator, MetricFetcher), independent of any provider
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from contracts.check_pattern import MetricSample, Resource

# -----------------------------------------------------------------------------
# AWS Service Protocols
# -----------------------------------------------------------------------------


@runtime_checkable
class PaginatorProtocol(Protocol):
    """Protocol for a boto3 paginator."""

    def paginate(self, **kwargs: Any) -> Iterable[dict[str, Any]]:
        """Yield response pages until the listing is exhausted."""
        ...


@runtime_checkable
class RDSClientProtocol(Protocol):
    """Protocol for RDS client interactions."""

    def get_paginator(self, operation_name: str) -> PaginatorProtocol:
        """Return a paginator (describe_db_instances)."""
        ...


@runtime_checkable
class CloudWatchClientProtocol(Protocol):
    """Protocol for CloudWatch client interactions."""

    def get_metric_statistics(self, *, Namespace: str, MetricName: str,
                              Dimensions: list[dict[str, str]],
                              StartTime: datetime, EndTime: datetime,
                              Period: int, Statistics: list[str]) -> dict[str, Any]:
        """Get statistics for one metric/dimension pair."""
        ...


# -----------------------------------------------------------------------------
# Engine capability Protocols
# -----------------------------------------------------------------------------


@runtime_checkable
class ResourceEnumerator(Protocol):
    """Lists every candidate resource of a region; raises EnumerationError on failure."""

    def list_all(self, region: str) -> list[Resource]:
        ...


@runtime_checkable
class MetricFetcher(Protocol):
    """Fetches one resource's samples for a window; raises MetricFetchError on failure."""

    def fetch_window(
        self,
        resource_id: str,
        metric_name: str,
        namespace: str,
        period: int,
        start: datetime,
        end: datetime,
    ) -> Sequence[MetricSample]:
        ...
