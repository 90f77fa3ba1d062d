"""Session lifecycle: authenticated requests, single-flight refresh, logout.

Structure:
    pipeline    RequestPipeline (bearer header, 401 -> refresh -> replay once)
    refresh     RefreshCoordinator (one refresh shared by every waiter)
    logout      SessionLogoutBroadcaster (collapsed logout notification)
"""

from zik_client.session.logout import SessionLogoutBroadcaster
from zik_client.session.pipeline import (
    RequestPipeline,
    RequestSpec,
    is_authorization_failure,
)
from zik_client.session.refresh import RefreshAttempt, RefreshCoordinator

__all__ = [
    "RefreshAttempt",
    "RefreshCoordinator",
    "RequestPipeline",
    "RequestSpec",
    "SessionLogoutBroadcaster",
    "is_authorization_failure",
]
