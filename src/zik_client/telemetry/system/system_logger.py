"""System logger for operational events.

This module provides a singleton system logger for operational events of the
access layer (refresh attempts, logout notifications, storage problems,
profile cache activity).

Logging strategy:
- Console (stderr): WARNING and above by default; INFO when verbose
- File (system.jsonl): Only issues (WARNING, ERROR, CRITICAL)

Messages are dicts with an "event" key; the console shows the "message" (or
"event") field, the file gets the full JSON with credential fields masked.

The file handler is configured separately via configure_system_logger_file()
once the user's log_dir from config is available.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "set_console_level",
]

import logging
import sys
from pathlib import Path

from zik_client.constants import APP_NAME
from zik_client.utils.logging.iso_formatter import ISO8601Formatter
from zik_client.utils.logging.logger_setup import ensure_secure_log_directory


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts 'message' or 'event' field from dict messages for cleaner stderr output.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human-readable console output.

        Args:
            record: The log record to format.

        Returns:
            str: Formatted log message with level prefix.
        """
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


# Module-level singleton logger
_system_logger: logging.Logger | None = None
_console_handler: logging.Handler | None = None
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with a stderr handler only.
    File handler is added later via configure_system_logger_file().

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "refresh_unavailable", "error": "..."})
    """
    global _system_logger, _console_handler

    if _system_logger is not None:
        return _system_logger

    # Logger accepts DEBUG; handlers decide what is actually emitted
    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.DEBUG)
    _system_logger.propagate = False

    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    # A client library should stay quiet on stderr unless something is wrong
    _console_handler = logging.StreamHandler(sys.stderr)
    _console_handler.setLevel(logging.WARNING)
    _console_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(_console_handler)

    return _system_logger


def set_console_level(level: int | str) -> None:
    """Change the stderr handler's level (e.g. INFO for a verbose CLI run).

    Args:
        level: Logging level as int or name ("DEBUG", "INFO", ...).
    """
    get_system_logger()
    if _console_handler is not None:
        _console_handler.setLevel(level)


def configure_system_logger_file(log_path: Path, level: int | str = logging.WARNING) -> None:
    """Configure the system logger's file handler with the user's log path.

    Should be called once after config is loaded. Later calls are ignored.

    Args:
        log_path: Path to the system log file.
        level: Minimum level written to the file (default WARNING).
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    logger = get_system_logger()

    try:
        ensure_secure_log_directory(log_path)
    except OSError:
        return  # stderr still works without a log directory

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)

    _file_handler_configured = True
