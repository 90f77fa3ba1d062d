"""zik-client: authenticated API access layer for the Zik client.

Attaches stored credentials to API requests, refreshes them single-flight
on 401, replays a failed request once, and tears the session down exactly
once when the refresh credential is rejected.

Usage:
    from zik_client import ZikClient, load_client_config

    async with ZikClient(load_client_config()) as client:
        profile = await client.get_profile()
"""

__version__ = "0.1.0"

from zik_client.client import ZikClient
from zik_client.config import ClientConfig, load_client_config
from zik_client.exceptions import (
    NetworkUnavailable,
    SessionExpired,
    StorageFailure,
    Unauthenticated,
    ZikClientError,
)

__all__ = [
    "ClientConfig",
    "NetworkUnavailable",
    "SessionExpired",
    "StorageFailure",
    "Unauthenticated",
    "ZikClient",
    "ZikClientError",
    "__version__",
    "load_client_config",
]
