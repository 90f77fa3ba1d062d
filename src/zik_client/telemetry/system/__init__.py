"""System operational logging.

Provides the system logger for operational events (refresh attempts,
storage problems, logout notifications).
"""

from zik_client.telemetry.system.system_logger import (
    ConsoleFormatter,
    configure_system_logger_file,
    get_system_logger,
)

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
]
