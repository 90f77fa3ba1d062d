"""Telemetry domain: operational and authentication event logging.

Structure:
    system/         System operational logs (stderr + system.jsonl)
    auth_logger     Authentication lifecycle events (auth.jsonl)
"""

__all__: list[str] = []
