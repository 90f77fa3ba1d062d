"""Profile fetch through the authenticated pipeline, fronted by the cache."""

from __future__ import annotations

__all__ = [
    "ProfileService",
    "parse_profile_response",
]

import json
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from zik_client.constants import PROFILE_ENDPOINT
from zik_client.exceptions import ApiError, Unauthenticated
from zik_client.profile.models import UserProfile

if TYPE_CHECKING:
    from zik_client.profile.cache import ProfileCache
    from zik_client.security.auth.token_storage import CredentialStore
    from zik_client.session.pipeline import RequestPipeline


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from an API error body."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.reason_phrase or "Unknown error"
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return response.reason_phrase or "Unknown error"


def parse_profile_response(response: httpx.Response) -> UserProfile:
    """Parse a GET /profile response.

    Accepts either a bare profile object or the {"profile": {...}} envelope.

    Raises:
        ApiError: On a non-2xx status or an unusable body.
    """
    if not response.is_success:
        raise ApiError(response.status_code, _error_message(response))

    try:
        data: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ApiError(response.status_code, f"Profile response is not JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("profile"), dict):
        data = data["profile"]

    try:
        return UserProfile.model_validate(data)
    except ValidationError as e:
        raise ApiError(response.status_code, f"Invalid profile response: {e.error_count()} error(s)") from e


class ProfileService:
    """Fetches the current user's profile, cached per session.

    Usage:
        service = ProfileService(pipeline, store, cache)
        profile = await service.get_profile()
    """

    def __init__(
        self,
        pipeline: "RequestPipeline",
        store: "CredentialStore",
        cache: "ProfileCache",
    ) -> None:
        self._pipeline = pipeline
        self._store = store
        self._cache = cache

    async def get_profile(self) -> UserProfile:
        """Return the profile, from the cache when fresh.

        Raises:
            Unauthenticated: If no session is stored.
            SessionExpired: If the session ended while fetching.
            NetworkUnavailable: On network failure.
            ApiError: If the API answered with an error.
        """
        session_id = await self._current_session_id()
        return await self._cache.get(session_id, self._fetch)

    async def refresh_profile(self) -> UserProfile:
        """Fetch the profile from the API, bypassing the cache."""
        session_id = await self._current_session_id()
        return await self._cache.force_refresh(session_id, self._fetch)

    def invalidate(self) -> None:
        """Drop cached profiles (e.g. after the user edited theirs)."""
        self._cache.invalidate()

    async def _current_session_id(self) -> str:
        token = await self._store.load()
        if token is None:
            raise Unauthenticated("Not logged in")
        return token.session_id

    async def _fetch(self) -> UserProfile:
        response = await self._pipeline.request("GET", PROFILE_ENDPOINT)
        return parse_profile_response(response)
