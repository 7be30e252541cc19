# checks/registry.py
"""
Lightweight check registry / factory.

The runner imports check modules by dotted path. That import can register
a factory for the check class, allowing uniform instantiation without
runner special-casing.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, List

from contracts.check_pattern import Check, RunContext

Bootstrap = Dict[str, Any]
CheckFactory = Callable[[RunContext, Bootstrap], Check]

_REGISTRY: Dict[str, CheckFactory] = {}


def register_checker(spec: str) -> Callable[[CheckFactory], CheckFactory]:
    """Register a factory for a check.

    spec should match what runner uses, e.g. "checks.aws.rds_idle_instances:IdleDBInstancesCheck"
    """
    def _decorator(factory: CheckFactory) -> CheckFactory:
        if spec in _REGISTRY:
            raise KeyError(f"Check factory already registered for '{spec}'")
        _REGISTRY[spec] = factory
        return factory
    return _decorator


def get_factory(spec: str) -> Optional[CheckFactory]:
    return _REGISTRY.get(spec)


def list_specs() -> List[str]:
    """All registered check specs in deterministic order."""
    return sorted(_REGISTRY.keys())
