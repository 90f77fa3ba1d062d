"""Shared fixtures for zik-client tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import jwt
import pytest

from zik_client.config import ClientConfig, CognitoConfig, LoggingConfig, StorageConfig
from zik_client.security.auth.token_storage import CredentialStore, TokenSet
from zik_client.security.storage import MemoryStorage

TokenFactory = Callable[..., TokenSet]


def _make_id_token(sub: str = "user-123", email: str = "ada@example.com", name: str = "Ada") -> str:
    return jwt.encode({"sub": sub, "email": email, "name": name}, "zik-test-signing-key-0123456789abcdef", algorithm="HS256")


@pytest.fixture
def cognito_config() -> CognitoConfig:
    """Cognito settings pointing at the us-east-1 endpoint."""
    return CognitoConfig(region="us-east-1", client_id="test-client-id")


@pytest.fixture
def client_config(tmp_path: Path, cognito_config: CognitoConfig) -> ClientConfig:
    """Client config with in-memory storage and no auth log."""
    return ClientConfig(
        api_base_url="https://api.zik.test",
        cognito=cognito_config,
        storage=StorageConfig(backend="memory"),
        logging=LoggingConfig(log_dir=str(tmp_path / "logs"), auth_log=False),
    )


@pytest.fixture
def id_token_factory() -> Callable[..., str]:
    """Build unsigned-for-our-purposes ID tokens with the given claims."""
    return _make_id_token


@pytest.fixture
def token_factory() -> TokenFactory:
    """Build TokenSets whose credentials carry a recognizable suffix."""

    def _make(
        suffix: str = "1",
        *,
        session_id: str | None = None,
        expires_in: float = 3600,
        sub: str = "user-123",
    ) -> TokenSet:
        now = datetime.now(timezone.utc)
        kwargs = {}
        if session_id is not None:
            kwargs["session_id"] = session_id
        return TokenSet(
            access_token=f"access-{suffix}",
            id_token=_make_id_token(sub=sub),
            refresh_token=f"refresh-{suffix}",
            issued_at=now,
            expires_at=now + timedelta(seconds=expires_in),
            **kwargs,
        )

    return _make


@pytest.fixture
def token_set(token_factory: TokenFactory) -> TokenSet:
    """Valid token set (expires in 1 hour) for session "session-1"."""
    return token_factory("1", session_id="session-1")


@pytest.fixture
def memory_storage() -> MemoryStorage:
    """Empty in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def store(memory_storage: MemoryStorage) -> CredentialStore:
    """Credential store over in-memory storage."""
    return CredentialStore(memory_storage)
