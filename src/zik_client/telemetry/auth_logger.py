"""Authentication event logger.

Logs session lifecycle events to <log_dir>/auth.jsonl:
- Login (success/failure)
- Token refresh attempts (success/failure)
- Session expiry (refresh credential rejected)
- Logout

Unlike the system logger, this log records every refresh, not only problems,
so a user can reconstruct why a session ended.

A failure to write the auth log never breaks a request: it is reported on the
system logger and the request carries on.
"""

from __future__ import annotations

__all__ = [
    "AuthLogger",
    "create_auth_logger",
]

import logging
from pathlib import Path

from zik_client.constants import APP_NAME
from zik_client.telemetry.models import AuthEvent
from zik_client.telemetry.system.system_logger import get_system_logger
from zik_client.utils.logging.logger_setup import setup_jsonl_logger

_system_logger = get_system_logger()


class AuthLogger:
    """Logger for authentication events.

    Provides typed methods for logging auth events.

    Usage:
        auth_logger = create_auth_logger(log_dir / "auth.jsonl")
        auth_logger.log_token_refreshed(session_id="...", duration_ms=120.0, waiters=3)
    """

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize auth logger.

        Args:
            logger: Configured JSONL logger.
        """
        self._logger = logger

    def _log_event(self, event: AuthEvent) -> bool:
        """Write one event.

        Returns:
            True if written, False if the write failed.
        """
        event_data = event.model_dump(exclude_none=True, mode="json")
        level = logging.INFO if event.status == "Success" else logging.WARNING
        try:
            self._logger.log(level, event_data)
            return True
        except Exception as e:
            _system_logger.error(
                {
                    "event": "auth_log_write_failed",
                    "message": f"Failed to write auth event: {e}",
                    "auth_event_type": event.event_type,
                    "error_type": type(e).__name__,
                }
            )
            return False

    def log_login(
        self,
        *,
        success: bool,
        session_id: str | None = None,
        user_id: str | None = None,
        error_type: str | None = None,
        error_message: str | None = None,
    ) -> bool:
        """Log a login attempt."""
        return self._log_event(
            AuthEvent(
                event_type="login",
                status="Success" if success else "Failure",
                session_id=session_id,
                user_id=user_id,
                error_type=error_type,
                error_message=error_message,
            )
        )

    def log_token_refreshed(
        self,
        *,
        session_id: str | None = None,
        duration_ms: float | None = None,
        waiters: int | None = None,
    ) -> bool:
        """Log a successful refresh.

        Args:
            session_id: Session whose tokens were refreshed.
            duration_ms: Wall time of the refresh exchange.
            waiters: Number of callers that shared this refresh.
        """
        return self._log_event(
            AuthEvent(
                event_type="token_refreshed",
                status="Success",
                session_id=session_id,
                duration_ms=duration_ms,
                waiters=waiters,
            )
        )

    def log_token_refresh_failed(
        self,
        *,
        session_id: str | None = None,
        error_type: str | None = None,
        error_message: str | None = None,
        duration_ms: float | None = None,
        waiters: int | None = None,
    ) -> bool:
        """Log a failed refresh (rejected or unavailable)."""
        return self._log_event(
            AuthEvent(
                event_type="token_refresh_failed",
                status="Failure",
                session_id=session_id,
                error_type=error_type,
                error_message=error_message,
                duration_ms=duration_ms,
                waiters=waiters,
            )
        )

    def log_session_expired(self, *, session_id: str | None = None, message: str | None = None) -> bool:
        """Log that a session was torn down after its refresh credential was rejected."""
        return self._log_event(
            AuthEvent(
                event_type="session_expired",
                status="Failure",
                session_id=session_id,
                message=message,
            )
        )

    def log_logout(self, *, session_id: str | None = None, message: str | None = None) -> bool:
        """Log a user-initiated logout."""
        return self._log_event(
            AuthEvent(
                event_type="logout",
                status="Success",
                session_id=session_id,
                message=message,
            )
        )


def create_auth_logger(log_path: Path, log_level: int = logging.INFO) -> AuthLogger:
    """Create an AuthLogger writing to log_path.

    Args:
        log_path: Path to auth.jsonl.
        log_level: Logging level (default INFO, i.e. every event).

    Returns:
        AuthLogger instance.
    """
    logger = setup_jsonl_logger(f"{APP_NAME}.auth", log_path, log_level)
    return AuthLogger(logger)
