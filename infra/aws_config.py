"""AWS SDK configuration for the engine.

The runner and the services factory import from this module to keep AWS client
tuning in one place. Retries/backoff are delegated to botocore; checks never
retry on their own.
"""

from botocore.config import Config

from infra.config import get_settings
from version import ENGINE_NAME, ENGINE_VERSION

_SETTINGS = get_settings()
_AWS_CFG = _SETTINGS.aws

SDK_CONFIG = Config(
    retries={"max_attempts": int(_AWS_CFG.max_retries), "mode": "adaptive"},
    user_agent_extra=f"{ENGINE_NAME}/{ENGINE_VERSION}",
    connect_timeout=int(_AWS_CFG.connect_timeout),
    read_timeout=int(_AWS_CFG.timeout),
)

AWS_REGIONS = list(_AWS_CFG.regions)
