"""Session-scoped TTL cache for the user profile.

An entry is served only while it is younger than the TTL and belongs to the
session that asks for it. invalidate() drops everything and is registered
with the logout broadcaster, so no profile outlives the session that
fetched it.

A fetch that is still running when invalidate() is called is handed to its
caller but not stored: each fetch remembers the cache generation it started
in and only stores its result if no invalidation happened meanwhile.
"""

from __future__ import annotations

__all__ = [
    "CachedProfile",
    "Clock",
    "ProfileCache",
    "ProfileFetcher",
]

import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from zik_client.constants import CACHE_DURATION_SECONDS
from zik_client.profile.models import UserProfile
from zik_client.telemetry.system.system_logger import get_system_logger

_logger = get_system_logger()

ProfileFetcher = Callable[[], Awaitable[UserProfile]]
Clock = Callable[[], float]


@dataclass(frozen=True)
class CachedProfile:
    """A fetched profile and when it was fetched.

    Attributes:
        profile: The profile.
        fetched_at: Cache clock reading at fetch completion (seconds).
        session_id: Session that fetched it.
    """

    profile: UserProfile
    fetched_at: float
    session_id: str

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.fetched_at < ttl_seconds


class ProfileCache:
    """In-memory profile cache keyed by session.

    Usage:
        cache = ProfileCache()
        broadcaster.register_invalidator(cache.invalidate)
        profile = await cache.get(token.session_id, fetch_profile)
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_DURATION_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: How long an entry is served.
            clock: Returns the current time in seconds (monotonic by default).
        """
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedProfile] = {}
        self._generation = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def peek(self, session_id: str) -> CachedProfile | None:
        """Return the fresh entry for session_id without fetching."""
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock(), self._ttl_seconds):
            del self._entries[session_id]
            return None
        return entry

    async def get(self, session_id: str, fetcher: ProfileFetcher) -> UserProfile:
        """Return the cached profile, fetching it when missing or stale.

        Args:
            session_id: Session the profile is requested for.
            fetcher: Fetches the profile from the API.

        Returns:
            The profile.

        Raises:
            Whatever fetcher raises (failures are never cached).
        """
        entry = self.peek(session_id)
        if entry is not None:
            _logger.debug(
                {
                    "event": "profile_cache_hit",
                    "session_id": session_id,
                    "age_seconds": round(self._clock() - entry.fetched_at, 1),
                }
            )
            return entry.profile

        _logger.debug({"event": "profile_cache_miss", "session_id": session_id})
        return await self._fetch_and_store(session_id, fetcher)

    async def force_refresh(self, session_id: str, fetcher: ProfileFetcher) -> UserProfile:
        """Fetch the profile regardless of any cached entry, then store it."""
        return await self._fetch_and_store(session_id, fetcher)

    def invalidate(self) -> None:
        """Drop every entry, and any fetch still in flight from being stored."""
        self._generation += 1
        if self._entries:
            _logger.debug(
                {
                    "event": "profile_cache_invalidated",
                    "entries": len(self._entries),
                }
            )
        self._entries.clear()

    async def _fetch_and_store(self, session_id: str, fetcher: ProfileFetcher) -> UserProfile:
        generation = self._generation
        profile = await fetcher()

        if generation != self._generation:
            _logger.debug(
                {
                    "event": "profile_cache_store_skipped",
                    "message": "Cache was invalidated while the profile was being fetched",
                    "session_id": session_id,
                }
            )
            return profile

        self._entries[session_id] = CachedProfile(
            profile=profile,
            fetched_at=self._clock(),
            session_id=session_id,
        )
        return profile
