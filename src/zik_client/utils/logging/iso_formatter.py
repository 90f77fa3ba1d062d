"""Log formatting utilities for JSONL output.

Provides ISO 8601 timestamp formatting for JSONL logs (system.jsonl, auth.jsonl)
and masks credential fields so a token can never reach a log file.
"""

from __future__ import annotations

__all__ = ["ISO8601Formatter", "REDACTED_FIELDS", "redact"]

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Keys whose values are replaced before a record is serialized
REDACTED_FIELDS: frozenset[str] = frozenset(
    {
        "access_token",
        "id_token",
        "refresh_token",
        "password",
        "authorization",
    }
)

_MASK = "[redacted]"


def redact(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a structured log message with credential fields masked.

    Nested dicts are masked too. Matching is case-insensitive.
    """
    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in REDACTED_FIELDS:
            cleaned[key] = _MASK
        elif isinstance(value, dict):
            cleaned[key] = redact(value)
        else:
            cleaned[key] = value
    return cleaned


class ISO8601Formatter(logging.Formatter):
    """Formatter with ISO 8601 timestamps (UTC) for JSONL output.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2026-10-18T10:48:37.123Z
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as one JSON line with a leading timestamp.

        Args:
            record: The log record to format.

        Returns:
            str: JSON-formatted log entry.
        """
        timestamp = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        if isinstance(record.msg, dict):
            log_data = redact(record.msg)
        else:
            log_data = {"message": record.getMessage()}

        log_entry = {"time": timestamp, "level": record.levelname, **log_data}
        return json.dumps(log_entry, default=str)
