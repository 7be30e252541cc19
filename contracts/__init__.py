"""Contracts shared by checks, the engine and the runner.

The contracts package defines:
- the value objects every check produces (CheckMetadata, IdleFinding, CheckResult...)
- the uniform Check protocol and the fleet CheckRunner
- the error taxonomy and the report wire format
- Protocol definitions for dependency injection

Main exports:
- RunContext, CheckMetadata, Resource, MetricSample, IdleFinding, CheckResult
- Check, CheckRunner, FleetResult, CheckFailure
- CheckError, EnumerationError, MetricFetchError, CheckTimeoutError, ValidationError
- serialize_check_result
- Services, ServicesFactory
"""

from contracts import check_contracts
from contracts import check_pattern
from contracts import services as services_module

__all__ = [
    "Check",
    "CheckError",
    "CheckFailure",
    "CheckMetadata",
    "CheckResult",
    "CheckRunner",
    "CheckTimeoutError",
    "EnumerationError",
    "FleetResult",
    "IdleFinding",
    "MetricFetchError",
    "MetricSample",
    "Resource",
    "SkippedResource",
    "RunContext",
    "Services",
    "ServicesFactory",
    "ValidationError",
    "serialize_check_result",
]

# Re-export for convenience
Check = check_pattern.Check
CheckFailure = check_pattern.CheckFailure
CheckMetadata = check_pattern.CheckMetadata
CheckResult = check_pattern.CheckResult
CheckRunner = check_pattern.CheckRunner
FleetResult = check_pattern.FleetResult
IdleFinding = check_pattern.IdleFinding
MetricSample = check_pattern.MetricSample
Resource = check_pattern.Resource
SkippedResource = check_pattern.SkippedResource
RunContext = check_pattern.RunContext

Services = services_module.Services
ServicesFactory = services_module.ServicesFactory

CheckError = check_contracts.CheckError
CheckTimeoutError = check_contracts.CheckTimeoutError
EnumerationError = check_contracts.EnumerationError
MetricFetchError = check_contracts.MetricFetchError
ValidationError = check_contracts.ValidationError
serialize_check_result = check_contracts.serialize_check_result
