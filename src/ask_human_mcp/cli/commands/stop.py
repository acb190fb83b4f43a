"""Stop command for ask-human-mcp CLI.

Asks the instance on the port to release it. The port owner is probed
first; nothing is sent to a process that is not an instance of this
service.
"""

from __future__ import annotations

__all__ = ["stop"]

import asyncio
import sys

import click

from ask_human_mcp.constants import PORT_RELEASE_TIMEOUT_SECONDS, SHUTDOWN_PATH
from ask_human_mcp.exceptions import ForeignOccupantError
from ask_human_mcp.utils import is_port_in_use, wait_for_condition

from ..api_client import ServiceNotRunningError, api_request, probe_service
from ..options import port_option, resolve_port
from ..styling import style_error, style_success, style_warning


@click.command()
@port_option
def stop(port: int | None) -> None:
    """Stop the instance serving the port.

    Pending questions of that instance stay pending until it is disposed.
    """
    effective_port = resolve_port(port)

    try:
        identity = probe_service(effective_port)
    except ServiceNotRunningError:
        click.echo(style_warning(f"Nothing is listening on port {effective_port}"))
        sys.exit(0)
    except ForeignOccupantError as e:
        click.echo(style_error(f"Port {effective_port} is used by another application: {e}"), err=True)
        sys.exit(1)

    click.echo(f"Stopping instance {identity.instance_id[:8]} on port {effective_port}...")

    response = api_request("POST", SHUTDOWN_PATH, port=effective_port, max_retries=1)
    if not (isinstance(response, dict) and response.get("success")):
        reason = response.get("reason") if isinstance(response, dict) else None
        click.echo(style_error(f"Instance refused to stop: {reason or 'no reason given'}"), err=True)
        sys.exit(1)

    released = asyncio.run(
        wait_for_condition(lambda: not is_port_in_use(effective_port), PORT_RELEASE_TIMEOUT_SECONDS)
    )
    if not released:
        click.echo(style_warning("Stop accepted but the port is still in use"))
        sys.exit(1)

    click.echo(style_success("Stopped"))
