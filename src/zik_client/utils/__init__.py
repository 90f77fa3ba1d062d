"""Shared utilities (file helpers, logging setup)."""

__all__: list[str] = []
