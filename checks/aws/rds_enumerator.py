"""
checks/aws/rds_enumerator.py

Lists every RDS DB instance in a region by draining the boto3
``describe_db_instances`` paginator. All-or-nothing: if any page fails the
caller gets an EnumerationError and no partial list.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List

from checks.aws._common import AWS_ERRORS, error_code, safe_int, safe_region_from_client
from checks.aws.defaults import RDS_DESCRIBE_INSTANCES_OPERATION
from contracts.check_contracts import EnumerationError, normalize_str
from contracts.check_pattern import Resource
from contracts.interfaces import RDSClientProtocol


def _to_resource(inst: Dict[str, Any]) -> Resource | None:
    resource_id = normalize_str(inst.get("DBInstanceIdentifier"))
    if not resource_id:
        return None
    return Resource(
        resource_id=resource_id,
        instance_type=normalize_str(inst.get("DBInstanceClass")),
        storage_gb=max(0, safe_int(inst.get("AllocatedStorage"))),
        multi_az=bool(inst.get("MultiAZ", False)),
    )


class RdsInstanceEnumerator:
    """ResourceEnumerator backed by an RDS client."""

    def __init__(self, rds: RDSClientProtocol) -> None:
        self._rds = rds

    def _iter_db_instances(self) -> Iterator[Dict[str, Any]]:
        paginator = self._rds.get_paginator(RDS_DESCRIBE_INSTANCES_OPERATION)
        for page in paginator.paginate():
            for inst in page.get("DBInstances", []) or []:
                if isinstance(inst, dict):
                    yield inst

    def list_all(self, region: str = "") -> List[Resource]:
        """Return every DB instance in enumeration order.

        Raises:
            EnumerationError: the listing failed on any page.
        """
        region = region or safe_region_from_client(self._rds)
        out: List[Resource] = []
        try:
            for inst in self._iter_db_instances():
                resource = _to_resource(inst)
                if resource is not None:
                    out.append(resource)
        except AWS_ERRORS as exc:
            raise EnumerationError(
                f"{RDS_DESCRIBE_INSTANCES_OPERATION} failed in {region or 'unknown region'}: "
                f"{error_code(exc)}",
                region=region,
                operation=RDS_DESCRIBE_INSTANCES_OPERATION,
            ) from exc
        return out
