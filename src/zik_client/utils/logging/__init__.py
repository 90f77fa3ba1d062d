"""Logging utilities and helpers.

This package provides logging infrastructure for zik-client:
- iso_formatter: ISO 8601 timestamp formatting for JSONL logs
- logger_setup: Factory function for creating configured JSONL loggers

Import directly from submodules to avoid circular imports:
    from zik_client.utils.logging.logger_setup import setup_jsonl_logger
"""

__all__: list[str] = []  # Direct submodule imports required (see docstring)
