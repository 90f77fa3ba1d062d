"""Token set model and the credential store.

The CredentialStore is the only component that touches persistent storage.
It keeps the whole token set as one JSON document under one storage key, so
a save is all-or-nothing: a reader sees either the previous complete set or
the new complete set, never a mix.

Tokens are never stored in plaintext: the default media are the OS keychain
and a Fernet-encrypted file (see zik_client.security.storage).
"""

from __future__ import annotations

__all__ = [
    "CredentialStore",
    "TokenSet",
    "new_session_id",
]

import asyncio
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, ValidationError

from zik_client.constants import TOKEN_STORAGE_KEY
from zik_client.security.storage import KeyValueStorage
from zik_client.telemetry.system.system_logger import get_system_logger

_logger = get_system_logger()


def new_session_id() -> str:
    """Mint an opaque identifier for a new authenticated session."""
    return uuid.uuid4().hex


class TokenSet(BaseModel):
    """Credentials of one authenticated session.

    All three credentials are required and non-empty, so a partial token set
    cannot be constructed, let alone persisted.

    Attributes:
        access_token: Short-lived token sent as the bearer credential.
        id_token: OIDC ID token carrying the user's claims.
        refresh_token: Longer-lived token used only to mint new access tokens.
        issued_at: UTC timestamp when this set was issued.
        expires_at: UTC timestamp when access_token expires (if known).
        token_type: Authorization scheme (always "Bearer" for Cognito).
        session_id: Opaque id of the login that produced this set; kept
            unchanged across refreshes.
    """

    access_token: str = Field(min_length=1)
    id_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    issued_at: datetime
    expires_at: datetime | None = None
    token_type: str = "Bearer"
    session_id: str = Field(default_factory=new_session_id, min_length=1)

    @property
    def is_expired(self) -> bool:
        """Check if access token has expired (False when expiry is unknown)."""
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_at

    @property
    def seconds_until_expiry(self) -> float | None:
        """Seconds until access token expires (negative if expired, None if unknown)."""
        if self.expires_at is None:
            return None
        return (self.expires_at - datetime.now(timezone.utc)).total_seconds()

    def to_json(self) -> str:
        """Serialize to JSON string for storage."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "TokenSet":
        """Deserialize from JSON string."""
        return cls.model_validate_json(data)


class CredentialStore:
    """Durable storage of the current token set.

    Every write holds one lock, so a conditional write (replace, or clear of
    a given session) sees the same state it acts on. A refresh that finishes
    after a logout or a new login cannot bring the old session back.

    Usage:
        store = CredentialStore(create_storage(config.storage))
        await store.save(token_set)
        current = await store.load()
        await store.replace(current, refreshed)
        await store.clear()
    """

    def __init__(self, storage: KeyValueStorage, key: str = TOKEN_STORAGE_KEY) -> None:
        """Initialize the store.

        Args:
            storage: Persistence medium.
            key: Storage key holding the serialized token set.
        """
        self._storage = storage
        self._key = key
        self._lock = asyncio.Lock()

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    async def save(self, token_set: TokenSet) -> None:
        """Persist the token set, replacing the previous one in a single write.

        Raises:
            StorageFailure: If the medium is unavailable.
        """
        async with self._lock:
            await self._storage.set(self._key, token_set.to_json())

    async def replace(self, expected: TokenSet, token_set: TokenSet) -> bool:
        """Save token_set only while `expected`'s session is still stored.

        The stored set must have the same session_id and refresh_token as
        `expected`, otherwise nothing is written.

        Returns:
            True if token_set was saved, False if the session was cleared or
            replaced in the meantime.

        Raises:
            StorageFailure: If the medium is unavailable.
        """
        async with self._lock:
            current = await self.load()
            if (
                current is None
                or current.session_id != expected.session_id
                or current.refresh_token != expected.refresh_token
            ):
                return False
            await self._storage.set(self._key, token_set.to_json())
            return True

    async def load(self) -> TokenSet | None:
        """Load the current token set.

        Returns:
            The stored TokenSet, or None if absent or corrupt.

        Raises:
            StorageFailure: If the medium is unavailable.
        """
        data = await self._storage.get(self._key)
        if data is None:
            return None

        try:
            return TokenSet.from_json(data)
        except ValidationError as e:
            _logger.warning(
                {
                    "event": "stored_tokens_corrupt",
                    "message": "Stored token set is corrupt, treating as logged out",
                    "error_count": e.error_count(),
                }
            )
            return None

    async def clear(self, session_id: str | None = None) -> tuple[bool, TokenSet | None]:
        """Remove the token set. Idempotent.

        Args:
            session_id: Only clear while this session is stored. None clears
                whatever is stored.

        Returns:
            (cleared, previous): whether the removal happened, and the set
            that was stored before it.

        Raises:
            StorageFailure: If the medium is unavailable.
        """
        async with self._lock:
            current = await self.load()
            if session_id is not None and (current is None or current.session_id != session_id):
                return False, current
            await self._storage.remove(self._key)
            return True, current

    async def exists(self) -> bool:
        """Check if a loadable token set is stored."""
        return await self.load() is not None
