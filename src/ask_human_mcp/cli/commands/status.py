"""Status command for ask-human-mcp CLI.

Probes the port and reports who owns it: an instance of this service, some
other application, or nothing.
"""

from __future__ import annotations

__all__ = ["status"]

import json
from typing import Any

import click

from ask_human_mcp.constants import STATUS_API_PATH
from ask_human_mcp.exceptions import ForeignOccupantError

from ..api_client import ServiceAPIError, ServiceNotRunningError, api_request, probe_service
from ..options import port_option, resolve_port
from ..styling import style_dim, style_error, style_label, style_success, style_warning


def _collect_status(port: int) -> dict[str, Any]:
    result: dict[str, Any] = {"port": port, "owner": "none", "identity": None, "status": None}

    try:
        identity = probe_service(port)
    except ServiceNotRunningError:
        return result
    except ForeignOccupantError as e:
        result["owner"] = "foreign"
        result["error"] = str(e)
        return result

    result["owner"] = "sibling"
    result["identity"] = identity.model_dump(mode="json", by_alias=True)

    # Best effort: older instances may not serve the status route
    try:
        result["status"] = api_request("GET", STATUS_API_PATH, port=port, max_retries=1)
    except ServiceAPIError:
        result["status"] = None

    return result


@click.command()
@port_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status(port: int | None, as_json: bool) -> None:
    """Show who owns the port.

    Examples:
        ask-human-mcp status
        ask-human-mcp status --port 12000 --json
    """
    effective_port = resolve_port(port)
    result = _collect_status(effective_port)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    owner = result["owner"]
    if owner == "none":
        click.echo(style_warning(f"Nothing is listening on port {effective_port}"))
        return
    if owner == "foreign":
        click.echo(style_error(f"Port {effective_port} is used by another application"))
        click.echo(style_dim(f"  {result.get('error', '')}"))
        return

    identity = result["identity"]
    click.echo(style_success(f"Running on port {effective_port}"))
    click.echo(f"  {style_label('Instance')} {identity['instanceId']}")
    click.echo(f"  {style_label('Version')} {identity['version']}")
    click.echo(f"  {style_label('Endpoint')} http://127.0.0.1:{effective_port}{identity['endpoint']}")

    service_status = result["status"]
    if isinstance(service_status, dict) and service_status.get("state"):
        click.echo(f"  {style_label('State')} {service_status['state']}")
