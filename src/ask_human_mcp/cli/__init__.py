"""Command-line interface for ask-human-mcp.

Provides commands for running the service and for answering questions of
a running instance from another terminal.
"""

from .main import cli, main

__all__ = ["cli", "main"]
