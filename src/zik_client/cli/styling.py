"""CLI output styling.

Visual language:
- Cyan bold for section headers and labels
- Green for success (with checkmark), red for errors (with cross)
- Yellow for warnings and "needs attention" states
- Dim for neutral/empty state messages
"""

from __future__ import annotations

__all__ = [
    "format_duration",
    "style_dim",
    "style_header",
    "style_http_status",
    "style_label",
    "style_success",
    "style_warning",
]

import click


def style_header(title: str) -> str:
    """Section header, e.g. "--- Session ---"."""
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    """Label with colon suffix, e.g. "Backend:"."""
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    return click.style(f"✓ {message}", fg="green")


def style_warning(message: str) -> str:
    return click.style(f"Warning: {message}", fg="yellow", bold=True)


def style_dim(message: str) -> str:
    return click.style(message, dim=True)


def style_http_status(status_code: int, reason: str = "") -> str:
    """Color an HTTP status line by class (2xx green, 4xx yellow, 5xx red).

    Args:
        status_code: HTTP status code.
        reason: Reason phrase appended after the code.

    Returns:
        Styled "HTTP <code> <reason>" string.
    """
    text = f"HTTP {status_code} {reason}".rstrip()
    if status_code < 300:
        return click.style(text, fg="green", bold=True)
    if status_code < 500:
        return click.style(text, fg="yellow", bold=True)
    return click.style(text, fg="red", bold=True)


def format_duration(seconds: float) -> str:
    """Human-readable duration ("2h 05m", "14m", "45s"); negative means "ago"."""
    suffix = " ago" if seconds < 0 else ""
    remaining = int(abs(seconds))
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)
    if hours:
        return f"{hours}h {minutes:02d}m{suffix}"
    if minutes:
        return f"{minutes}m{suffix}"
    return f"{secs}s{suffix}"
