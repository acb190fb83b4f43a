"""Serve command for ask-human-mcp CLI.

Runs one instance in the foreground until Ctrl+C, SIGTERM, or until another
instance takes the port over.
"""

from __future__ import annotations

__all__ = ["serve"]

import asyncio
import signal
import sys

import click

from ask_human_mcp.config import BrokerConfig, load_config
from ask_human_mcp.constants import APP_NAME
from ask_human_mcp.lifecycle import LifecycleController
from ask_human_mcp.log_config import configure_logging
from ask_human_mcp.models import ConflictReason

from ..console_sink import ConsoleSink
from ..options import port_option
from ..styling import style_dim, style_error, style_label


async def _run(config: BrokerConfig, takeover: bool) -> int:
    """Start the controller and wait for a stop condition.

    Returns:
        Process exit code.
    """
    sink = ConsoleSink(port=config.port)

    async with LifecycleController(config, sink=sink) as controller:
        result = await controller.start(takeover=takeover)
        if not result.running:
            click.echo(style_error(result.message or "Failed to start"), err=True)
            if result.reason == ConflictReason.OWNED_BY_SIBLING:
                click.echo(f"  Take it over with: {APP_NAME} serve --port {config.port} --takeover", err=True)
            return 1

        click.echo(style_label("MCP endpoint") + f" http://127.0.0.1:{config.port}/mcp")
        click.echo(style_dim("Press Ctrl+C to stop"))

        interrupted = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, interrupted.set)
            except (NotImplementedError, RuntimeError):
                # Windows event loops: Ctrl+C surfaces as KeyboardInterrupt
                pass

        waiters = {
            asyncio.create_task(interrupted.wait()),
            asyncio.create_task(controller.wait_until_stopped()),
        }
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiters:
                task.cancel()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except (NotImplementedError, RuntimeError):
                    pass

    return 0


@click.command()
@port_option
@click.option("--takeover", is_flag=True, help="Ask a running instance on the port to hand it over")
def serve(port: int | None, takeover: bool) -> None:
    """Run the service in the foreground.

    Questions from MCP clients are printed here; answer them from another
    terminal with the 'answer' command.

    Examples:
        ask-human-mcp serve                 # Configured port
        ask-human-mcp serve -p 12000        # Override port
        ask-human-mcp serve --takeover      # Take the port from another instance
    """
    config = load_config()
    if port is not None:
        config = config.model_copy(update={"port": port})

    configure_logging(config)

    try:
        exit_code = asyncio.run(_run(config, takeover))
    except KeyboardInterrupt:
        exit_code = 0

    sys.exit(exit_code)
