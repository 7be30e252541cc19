"""
check_contracts.py

Error taxonomy, wire format and validation for idle-resource check reports.

This module is intentionally transport-agnostic: it does not print or persist.
It provides:
- The exception hierarchy raised by checks and the engine
- Deterministic string / datetime normalization helpers
- Conversion of a CheckResult into its wire (JSON-compatible) dict
- Required-field and type validation for finding records

Design goals:
- Stable key names and ordering across runs
- Findings list always present (empty list, never null)
- Savings always numeric (0 when unknown); formatting is a presentation concern
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from dateutil import parser as _dtparser  # type: ignore

if TYPE_CHECKING:
    from contracts.check_pattern import CheckResult, IdleFinding


# -----------------------------
# Exceptions
# -----------------------------


class ContractError(ValueError):
    """Base class for wire-contract violations."""


class ValidationError(ContractError):
    """Raised when a finding record does not satisfy required fields or types."""


class CheckError(RuntimeError):
    """Base class for failures that abort a check run."""


class EnumerationError(CheckError):
    """The paginated resource listing failed; the check produced no report."""

    def __init__(self, message: str, *, region: str = "", operation: str = "") -> None:
        super().__init__(message)
        self.region = region
        self.operation = operation


class MetricFetchError(CheckError):
    """A per-resource metric query failed."""

    def __init__(self, message: str, *, resource_id: str, metric_name: str = "") -> None:
        super().__init__(message)
        self.resource_id = resource_id
        self.metric_name = metric_name


class CheckTimeoutError(CheckError):
    """The run deadline expired before the check completed."""

    def __init__(self, message: str, *, deadline_seconds: float) -> None:
        super().__init__(message)
        self.deadline_seconds = deadline_seconds


# -----------------------------
# Normalization helpers
# -----------------------------


def normalize_str(value: Any, *, lower: bool = False, none_as_empty: bool = True) -> str:
    """
    Normalize strings for deterministic output:
    - None -> "" by default
    - strip whitespace
    - optional lower-casing (identifiers keep their case by default)
    """
    if value is None:
        return "" if none_as_empty else "null"
    text = str(value).strip()
    return text.lower() if lower else text


def parse_utc_datetime(value: Any) -> Optional[datetime]:
    """Coerce datetimes / ISO-8601 strings to timezone-aware UTC.

    Naive values are assumed to already be UTC. Empty values return None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if isinstance(value, str):
        dt = _dtparser.isoparse(value)
        dt = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    raise TypeError(f"Cannot parse datetime from {type(value)}")


def _savings_or_zero(value: Any) -> int:
    """Normalize a savings estimate to a whole number of currency units.

    Pricing is not integrated, so None (unknown) is reported as 0.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError("savings value cannot be bool")
    if isinstance(value, (int, float)):
        return int(value)
    raise ValueError(f"savings value must be numeric or None, got {type(value).__name__}: {value!r}")


# -----------------------------
# Wire format
# -----------------------------

# (wire key, expected python type); the resource name key is check-specific.
FINDING_FIELD_TYPES: Tuple[Tuple[str, type], ...] = (
    ("region", str),
    ("multiAZ", bool),
    ("instanceType", str),
    ("storageProvisionedInGB", int),
    ("daysSinceLastConnection", int),
    ("estimatedMonthlySavings", int),
)


def finding_to_wire(finding: IdleFinding, *, resource_name_field: str) -> Dict[str, Any]:
    """Convert one IdleFinding to its wire dict (stable key order)."""
    return {
        "region": normalize_str(finding.region),
        resource_name_field: normalize_str(finding.resource_name),
        "multiAZ": bool(finding.multi_az),
        "instanceType": normalize_str(finding.instance_type),
        "storageProvisionedInGB": int(finding.storage_gb),
        "daysSinceLastConnection": int(finding.days_since_last_activity),
        "estimatedMonthlySavings": _savings_or_zero(finding.estimated_monthly_savings),
    }


def validate_finding_record(record: Mapping[str, Any], *, resource_name_field: str) -> List[str]:
    """Return a list of human-readable problems with a wire finding (empty when valid)."""
    errors: List[str] = []

    name = record.get(resource_name_field)
    if not isinstance(name, str) or not name:
        errors.append(f"missing required field: {resource_name_field}")

    for key, expected in FINDING_FIELD_TYPES:
        if key not in record:
            errors.append(f"missing required field: {key}")
            continue
        value = record[key]
        # bool is an int subclass; keep the two apart
        if expected is int and isinstance(value, bool):
            errors.append(f"{key} must be int, got bool")
        elif not isinstance(value, expected):
            errors.append(f"{key} must be {expected.__name__}, got {type(value).__name__}")

    days = record.get("daysSinceLastConnection")
    if isinstance(days, int) and not isinstance(days, bool) and days < 0:
        errors.append("daysSinceLastConnection must be >= 0")

    return errors


def validate_finding_record_or_raise(record: Mapping[str, Any], *, resource_name_field: str) -> None:
    """Raise ValidationError if the record fails validation."""
    errors = validate_finding_record(record, resource_name_field=resource_name_field)
    if errors:
        raise ValidationError("; ".join(errors))


def serialize_check_result(result: CheckResult, *, validate: bool = True) -> Dict[str, Any]:
    """Convert a CheckResult into the JSON-compatible report dict.

    Check identity first, then the findings list under the check's findings key,
    then run bookkeeping (resources evaluated, per-resource warnings).
    """
    meta = result.metadata
    findings: List[Dict[str, Any]] = []
    for finding in result.findings:
        record = finding_to_wire(finding, resource_name_field=meta.resource_name_field)
        if validate:
            validate_finding_record_or_raise(record, resource_name_field=meta.resource_name_field)
        findings.append(record)

    return {
        "id": meta.check_id,
        "name": meta.name,
        "description": meta.description,
        "criteria": meta.criteria,
        "recommendedAction": meta.recommended_action,
        "additionalResources": meta.additional_resources,
        meta.findings_key: findings,
        "resourcesEvaluated": int(result.resources_evaluated),
        "warnings": [
            {
                "resourceId": w.resource_id,
                "operation": w.operation,
                "message": w.message,
            }
            for w in result.warnings
        ],
    }
