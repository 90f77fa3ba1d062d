"""Command-line interface for zik-client.

Provides commands for configuring the client, logging in and out, and
sending authenticated requests.
"""

from .main import cli, main

__all__ = ["cli", "main"]
