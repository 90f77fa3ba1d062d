"""User profile: API models, session-scoped TTL cache, and fetch service."""

from zik_client.profile.cache import CachedProfile, ProfileCache
from zik_client.profile.models import UserPreferences, UserProfile
from zik_client.profile.service import ProfileService

__all__ = [
    "CachedProfile",
    "ProfileCache",
    "ProfileService",
    "UserPreferences",
    "UserProfile",
]
