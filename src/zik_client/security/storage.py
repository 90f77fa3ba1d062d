"""Persistent key/value storage media for credentials.

The credential store only needs three asynchronous operations - get, set,
remove - over string values. Three media provide them:

1. KeychainStorage (primary): OS keychain via the keyring library
   - macOS: Keychain
   - Windows: Credential Locker
   - Linux: Secret Service (GNOME Keyring, KDE Wallet)

2. EncryptedFileStorage (fallback): one Fernet-encrypted file per key
   - Used when keyring is unavailable
   - Key derived from machine-specific identifiers
   - Writes replace the file atomically (temp file + rename)

3. MemoryStorage: process-local dict (tests, ephemeral sessions)

Every medium error surfaces as StorageFailure. Blocking keyring and file
calls run in a worker thread so the event loop is never stalled.
"""

from __future__ import annotations

__all__ = [
    "EncryptedFileStorage",
    "KeyValueStorage",
    "KeychainStorage",
    "MemoryStorage",
    "create_storage",
    "get_storage_info",
]

import asyncio
import base64
import hashlib
import platform
import re
import socket
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from zik_client.constants import APP_NAME, ENCRYPTED_FILE_SUFFIX
from zik_client.exceptions import StorageFailure
from zik_client.telemetry.system.system_logger import get_system_logger
from zik_client.utils.file_helpers import atomic_write_bytes, set_secure_permissions

if TYPE_CHECKING:
    from cryptography.fernet import Fernet

    from zik_client.config import StorageConfig

_logger = get_system_logger()

# Storage keys become file names, so keep them boring
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStorage(ABC):
    """Abstract base class for storage media.

    Implementations must be durable once a coroutine returns and must raise
    StorageFailure (never a backend-specific exception) on medium errors.
    """

    name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under key, or None if absent.

        Raises:
            StorageFailure: If the medium cannot be read.
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value.

        Raises:
            StorageFailure: If the medium cannot be written.
        """

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove key. Removing a missing key is a no-op.

        Raises:
            StorageFailure: If the medium cannot be written.
        """


class MemoryStorage(KeyValueStorage):
    """Process-local storage. Nothing survives the process."""

    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class KeychainStorage(KeyValueStorage):
    """Storage in the OS keychain via the keyring library.

    Each key is a keyring "username" under the application's service name.
    """

    name = "keychain"

    def __init__(self, service: str = APP_NAME) -> None:
        self._service = service

    async def get(self, key: str) -> str | None:
        import keyring

        try:
            return await asyncio.to_thread(keyring.get_password, self._service, key)
        except Exception as e:
            raise StorageFailure(f"Failed to access keychain: {e}") from e

    async def set(self, key: str, value: str) -> None:
        import keyring

        try:
            await asyncio.to_thread(keyring.set_password, self._service, key, value)
        except Exception as e:
            raise StorageFailure(f"Failed to save to keychain: {e}") from e

    async def remove(self, key: str) -> None:
        import keyring
        from keyring.errors import PasswordDeleteError

        try:
            await asyncio.to_thread(keyring.delete_password, self._service, key)
        except PasswordDeleteError:
            pass  # Already gone
        except Exception as e:
            raise StorageFailure(f"Failed to delete from keychain: {e}") from e


class EncryptedFileStorage(KeyValueStorage):
    """Fallback storage using one Fernet-encrypted file per key.

    Uses symmetric encryption with a key derived from machine-specific
    identifiers. Less secure than the keychain but works everywhere.

    A file that exists but cannot be decrypted (key changed, truncated by
    hand) is reported as absent with a warning, so a damaged file behaves
    like a logged-out state instead of blocking the application.
    """

    name = "encrypted_file"

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._key: bytes | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}{ENCRYPTED_FILE_SUFFIX}"

    def _get_machine_id(self) -> str:
        """Get a stable platform-specific machine identifier."""
        system = platform.system()

        if system == "Darwin":
            try:
                result = subprocess.run(
                    ["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"],
                    capture_output=True,
                    text=True,
                    timeout=5,
                )
                for line in result.stdout.splitlines():
                    if "IOPlatformUUID" in line:
                        parts = line.split("=")
                        if len(parts) >= 2:
                            return parts[1].strip().strip('"')
            except (subprocess.SubprocessError, OSError):
                pass

        elif system == "Linux":
            for candidate in ("/etc/machine-id", "/var/lib/dbus/machine-id"):
                try:
                    with open(candidate) as f:
                        value = f.read().strip()
                    if value:
                        return value
                except OSError:
                    continue

        # Less unique but always available
        return socket.gethostname()

    def _derive_key(self) -> bytes:
        """Derive the Fernet key from machine identifiers (PBKDF2-SHA256)."""
        if self._key is not None:
            return self._key

        combined = f"{self._get_machine_id()}:{socket.gethostname()}:{APP_NAME}-credentials"
        # Static salt keeps the key stable across restarts; the machine
        # identifiers provide the per-host uniqueness.
        salt = f"{APP_NAME}-v1".encode()
        raw = hashlib.pbkdf2_hmac("sha256", combined.encode(), salt, iterations=100_000, dklen=32)

        self._key = base64.urlsafe_b64encode(raw)
        return self._key

    def _get_fernet(self) -> "Fernet":
        from cryptography.fernet import Fernet

        return Fernet(self._derive_key())

    def _read(self, key: str) -> str | None:
        from cryptography.fernet import InvalidToken

        path = self._path_for(key)
        if not path.exists():
            return None

        try:
            encrypted = path.read_bytes()
        except OSError as e:
            raise StorageFailure(f"Failed to read {path.name}: {e}") from e

        try:
            return self._get_fernet().decrypt(encrypted).decode()
        except (InvalidToken, UnicodeDecodeError) as e:
            _logger.warning(
                {
                    "event": "encrypted_entry_unreadable",
                    "message": f"Ignoring unreadable encrypted entry {path.name}",
                    "error_type": type(e).__name__,
                }
            )
            return None

    def _write(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            encrypted = self._get_fernet().encrypt(value.encode())
            self._directory.mkdir(parents=True, exist_ok=True)
            set_secure_permissions(self._directory, is_directory=True)
            atomic_write_bytes(path, encrypted)
        except OSError as e:
            raise StorageFailure(f"Failed to write {path.name}: {e}") from e

    def _delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailure(f"Failed to delete {path.name}: {e}") from e

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)


def _is_keyring_available() -> bool:
    """Probe the keyring with a write/read/delete cycle.

    Returns:
        True if keyring can store and retrieve secrets.
    """
    try:
        import keyring
        from keyring.backends.fail import Keyring as FailKeyring
    except ImportError:
        return False

    try:
        if isinstance(keyring.get_keyring(), FailKeyring):
            _logger.debug(
                {
                    "event": "keyring_unavailable",
                    "reason": "fail_backend",
                    "message": "Keyring using FailKeyring backend (no usable backend found)",
                }
            )
            return False

        probe_service = f"{APP_NAME}-probe"
        keyring.set_password(probe_service, "availability-check", "ok")
        result = keyring.get_password(probe_service, "availability-check")
        keyring.delete_password(probe_service, "availability-check")
        return result == "ok"
    except Exception as e:
        # DBus errors on Linux, locked keychains, ...
        _logger.debug(
            {
                "event": "keyring_unavailable",
                "reason": "probe_failed",
                "error": str(e),
                "error_type": type(e).__name__,
            }
        )
        return False


def create_storage(config: "StorageConfig") -> KeyValueStorage:
    """Create the storage medium selected by config.

    "auto" prefers the keychain when a functional backend exists and falls
    back to the encrypted file otherwise.

    Args:
        config: Storage configuration.

    Returns:
        KeyValueStorage instance.
    """
    if config.backend == "memory":
        return MemoryStorage()
    if config.backend == "keychain":
        return KeychainStorage()
    if config.backend == "encrypted_file":
        return EncryptedFileStorage(config.resolved_directory)

    if _is_keyring_available():
        return KeychainStorage()
    return EncryptedFileStorage(config.resolved_directory)


def get_storage_info(storage: KeyValueStorage) -> dict[str, str]:
    """Describe a storage medium for status display.

    Returns:
        Dict with a 'backend' key plus backend-specific details.
    """
    if isinstance(storage, KeychainStorage):
        import keyring

        return {
            "backend": storage.name,
            "keyring_backend": type(keyring.get_keyring()).__name__,
            "service": APP_NAME,
        }
    if isinstance(storage, EncryptedFileStorage):
        return {"backend": storage.name, "location": str(storage.directory)}
    return {"backend": storage.name}
