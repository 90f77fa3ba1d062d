"""Credential security: storage media and authentication primitives.

Storage media (keychain, encrypted file, memory) are in storage.py.
Login, refresh and token parsing are in auth/.
"""

__all__: list[str] = []
