"""Pydantic models for structured log events."""

from __future__ import annotations

__all__ = ["AuthEvent"]

from typing import Literal

from pydantic import BaseModel, Field


class AuthEvent(BaseModel):
    """
    One authentication log entry (<log_dir>/auth.jsonl).

    Never carries credential values; the session is identified by its opaque
    session_id and the user by the id token's subject.

    Note: 'time' is None when created, populated by ISO8601Formatter during logging.
    """

    time: str | None = Field(
        None,
        description="ISO 8601 timestamp, added by formatter during serialization",
    )

    event_type: Literal[
        "login",
        "token_refreshed",
        "token_refresh_failed",
        "session_expired",
        "logout",
    ]
    status: Literal["Success", "Failure"]
    message: str | None = None

    session_id: str | None = None
    user_id: str | None = None

    # Failure details
    error_type: str | None = None
    error_message: str | None = None

    # Refresh details
    duration_ms: float | None = None
    waiters: int | None = None
