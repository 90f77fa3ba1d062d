"""CLI utility functions.

Re-exports helpers for convenient importing.
"""

from .helpers import (
    get_config_path_option,
    load_config_or_exit,
    run_with_client,
)

__all__ = [
    "get_config_path_option",
    "load_config_or_exit",
    "run_with_client",
]
