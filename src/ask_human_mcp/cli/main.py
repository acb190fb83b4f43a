"""Main CLI entry point for ask-human-mcp.

Defines the CLI group and registers all subcommands.

Commands:
    serve      - Run the service in the foreground
    status     - Show who owns the port
    questions  - List pending questions of a running instance
    answer     - Answer a pending question
    stop       - Ask the running instance to release the port
    config     - Configuration management (show, path)

Subcommand help:
    ask-human-mcp COMMAND -h   Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys

import click

from ask_human_mcp import __version__

from .commands.config import config
from .commands.questions import answer, questions
from .commands.serve import serve
from .commands.status import status
from .commands.stop import stop


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  ask-human-mcp serve                   Serve on the configured port
  ask-human-mcp questions               List pending questions (other terminal)
  ask-human-mcp answer <id> "<text>"    Answer one of them

MCP client configuration:
  { "type": "http", "url": "http://127.0.0.1:<port>/mcp" }

Only one instance can serve a port. Start a second one with --takeover to
move the port to it; the first instance keeps its pending questions.
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """ask-human-mcp: let MCP agents ask the developer a question."""
    if version:
        click.echo(f"ask-human-mcp {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(serve)
cli.add_command(status)
cli.add_command(questions)
cli.add_command(answer)
cli.add_command(stop)
cli.add_command(config)


def main() -> None:
    """CLI entry point."""
    cli()
