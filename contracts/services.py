"""
contracts/services.py

Services container + region-aware factory (DI-friendly).

A `Services` value is the "connection" a check runs against: the SDK clients for
one region plus the region name. Checks never create clients themselves:
    factory.for_region("eu-west-3") -> Services (cached)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config


@dataclass(frozen=True)
class Services:
    """
    Bag of SDK clients for one region.

    `region` is reported on every finding produced through this connection.
    """
    rds: Any
    cloudwatch: Any
    region: str = ""


class ServicesFactory:
    """
    Creates and caches AWS SDK clients per region.

    Usage:
      session = boto3.Session()
      factory = ServicesFactory(session=session, sdk_config=SDK_CONFIG)

      svcs = factory.for_region("eu-west-3")
      svcs2 = factory.for_region("eu-west-3")  # cached, same object
    """

    def __init__(self, *, session: boto3.Session, sdk_config: Config | None = None) -> None:
        self._session = session
        self._sdk_config = sdk_config
        self._by_region: dict[str, Services] = {}

    def _client(self, service: str, *, region: str | None) -> Any:
        kwargs: dict[str, Any] = {}
        if region:
            kwargs["region_name"] = region
        if self._sdk_config is not None:
            kwargs["config"] = self._sdk_config
        return self._session.client(service, **kwargs)

    def for_region(self, region: str) -> Services:
        """
        Return cached Services for a given region, creating it if needed.
        """
        reg = str(region or "").strip()
        if not reg:
            raise ValueError("region must be a non-empty string")

        cached = self._by_region.get(reg)
        if cached is not None:
            return cached

        svcs = Services(
            rds=self._client("rds", region=reg),
            cloudwatch=self._client("cloudwatch", region=reg),
            region=reg,
        )
        self._by_region[reg] = svcs
        return svcs

    def clear_cache(self) -> None:
        """
        Clears per-region Services cache. (Mostly useful for tests.)
        """
        self._by_region.clear()
