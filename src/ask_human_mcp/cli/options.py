"""Shared click options."""

from __future__ import annotations

__all__ = ["port_option", "resolve_port"]

import click

from ask_human_mcp.config import load_config
from ask_human_mcp.constants import MAX_PORT, MIN_PORT

port_option = click.option(
    "--port",
    "-p",
    type=click.IntRange(MIN_PORT, MAX_PORT),
    default=None,
    help="Loopback port (default: config value)",
)


def resolve_port(port: int | None) -> int:
    """Return the given port, or the configured one when not given."""
    if port is not None:
        return port
    return load_config().port
