"""Tests for JSONL formatting and credential redaction."""

from __future__ import annotations

import json
import logging

from zik_client.telemetry.system.system_logger import ConsoleFormatter
from zik_client.utils.logging.iso_formatter import ISO8601Formatter, redact


def _record(msg, level: int = logging.WARNING) -> logging.LogRecord:
    return logging.LogRecord("zik-client.test", level, __file__, 1, msg, None, None)


class TestRedact:
    """Tests for redact()."""

    def test_masks_credential_fields(self) -> None:
        """Given token fields, their values are replaced."""
        cleaned = redact({"event": "x", "access_token": "secret", "Refresh_Token": "secret"})

        assert cleaned["event"] == "x"
        assert "secret" not in json.dumps(cleaned)

    def test_masks_nested_dicts(self) -> None:
        cleaned = redact({"headers": {"Authorization": "Bearer secret"}})

        assert cleaned["headers"]["Authorization"] == "[redacted]"

    def test_does_not_mutate_input(self) -> None:
        data = {"password": "hunter2"}

        redact(data)

        assert data["password"] == "hunter2"


class TestISO8601Formatter:
    """Tests for ISO8601Formatter."""

    def test_dict_message_becomes_json_line(self) -> None:
        """Given a dict message, the output is one JSON object with time and level."""
        line = ISO8601Formatter().format(_record({"event": "refresh_failed", "id_token": "secret"}))

        entry = json.loads(line)
        assert entry["event"] == "refresh_failed"
        assert entry["level"] == "WARNING"
        assert entry["id_token"] == "[redacted]"
        assert entry["time"].endswith("Z")

    def test_string_message_wrapped(self) -> None:
        entry = json.loads(ISO8601Formatter().format(_record("plain text")))

        assert entry["message"] == "plain text"


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_prefers_message_field(self) -> None:
        line = ConsoleFormatter().format(_record({"event": "e", "message": "Refresh failed"}))

        assert line == "WARNING: Refresh failed"

    def test_falls_back_to_event(self) -> None:
        line = ConsoleFormatter().format(_record({"event": "logout_notified"}, logging.INFO))

        assert line == "INFO: logout_notified"
