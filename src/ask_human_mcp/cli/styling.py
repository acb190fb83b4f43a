"""CLI output styling helpers.

- Cyan bold for section headers and labels
- Green for success messages (with checkmark)
- Red for error messages (with cross)
- Yellow for warnings
- Dim for neutral/empty state messages
"""

from __future__ import annotations

__all__ = [
    "style_dim",
    "style_error",
    "style_header",
    "style_label",
    "style_success",
    "style_warning",
]

import click


def style_header(title: str) -> str:
    """Style a section header with dashes.

    Example:
        >>> click.echo(style_header("Tool"))
        --- Tool ---
    """
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    """Style a label with a colon suffix.

    Example:
        >>> click.echo(style_label("Pending questions") + f" {count}")
        Pending questions: 2
    """
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    """Style a success message with checkmark."""
    return click.style(f"✓ {message}", fg="green")


def style_error(message: str) -> str:
    """Style an error message with cross mark."""
    return click.style(f"✗ {message}", fg="red")


def style_dim(message: str) -> str:
    """Style a neutral/empty state message as dim."""
    return click.style(message, dim=True)


def style_warning(message: str) -> str:
    """Style a warning message.

    Example:
        >>> click.echo(style_warning("Port 11911 is used by another application"))
        Warning: Port 11911 is used by another application
    """
    return click.style(f"Warning: {message}", fg="yellow", bold=True)
