"""Fixtures for CLI tests: a saved config and a patched ZikClient."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from zik_client.config import ClientConfig
from zik_client.security.auth.token_storage import CredentialStore
from zik_client.security.storage import MemoryStorage


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, client_config: ClientConfig) -> Path:
    """Saved config using in-memory storage."""
    path = tmp_path / "config.json"
    client_config.save_to_file(path)
    return path


@pytest.fixture
def fake_client() -> MagicMock:
    """ZikClient double with an empty in-memory credential store."""
    client = MagicMock()
    client.store = CredentialStore(MemoryStorage())
    client.login = AsyncMock()
    client.logout = AsyncMock()
    client.is_authenticated = AsyncMock(return_value=False)
    client.get_profile = AsyncMock()
    client.request = AsyncMock()
    return client


@pytest.fixture
def patched_client(fake_client: MagicMock):
    """Make run_with_client() hand out fake_client."""
    with patch("zik_client.utils.cli.helpers.ZikClient") as client_cls:
        client_cls.return_value.__aenter__.return_value = fake_client
        client_cls.return_value.__aexit__.return_value = False
        yield client_cls
