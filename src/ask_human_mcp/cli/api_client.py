"""API client helper for CLI commands that talk to a running instance.

Runtime commands (status, questions, answer, stop) reach the service over
loopback HTTP on the configured port. Commands that only read local files
(config show) do not use this module.

The discovery probe is always made before anything else is sent, so the
CLI never posts to a process that is not a sibling.
"""

from __future__ import annotations

__all__ = [
    "ServiceAPIError",
    "ServiceNotRunningError",
    "api_request",
    "probe_service",
]

import json
import time
from typing import Any

import click
import httpx

from ask_human_mcp.constants import (
    APP_NAME,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DISCOVERY_PATH,
    LOOPBACK_HOST,
    PROBE_TIMEOUT_SECONDS,
)
from ask_human_mcp.exceptions import ForeignOccupantError
from ask_human_mcp.models import ServiceIdentity
from ask_human_mcp.negotiator import parse_identity


class ServiceNotRunningError(click.ClickException):
    """Raised when nothing is listening on the port."""

    def __init__(self, port: int) -> None:
        super().__init__(f"Nothing is listening on port {port}.\nStart the service with: {APP_NAME} serve --port {port}")
        self.port = port


class ServiceAPIError(click.ClickException):
    """Raised when an API request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        if status_code:
            super().__init__(f"API error ({status_code}): {message}")
        else:
            super().__init__(f"API error: {message}")
        self.status_code = status_code


def _create_client(port: int, timeout: float) -> httpx.Client:
    return httpx.Client(base_url=f"http://{LOOPBACK_HOST}:{port}", timeout=timeout)


def probe_service(port: int, timeout: float = PROBE_TIMEOUT_SECONDS) -> ServiceIdentity:
    """Identify the process listening on the port.

    Args:
        port: Port to probe.
        timeout: Request timeout in seconds.

    Returns:
        Identity of the sibling instance on the port.

    Raises:
        ServiceNotRunningError: If the connection is refused.
        ForeignOccupantError: If the occupant is not a sibling.
    """
    try:
        with _create_client(port, timeout) as client:
            response = client.get(DISCOVERY_PATH)
    except httpx.ConnectError as e:
        raise ServiceNotRunningError(port) from e
    except httpx.HTTPError as e:
        # Accepted the connection but did not answer like we do
        raise ForeignOccupantError(f"Discovery request failed: {type(e).__name__}") from e

    return parse_identity(response)


def api_request(
    method: str,
    endpoint: str,
    *,
    port: int,
    json_data: dict[str, Any] | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    max_retries: int = 3,
    backoff_ms: int = 100,
) -> dict[str, Any] | list[Any]:
    """Make an API request to a running instance.

    Connection failures are retried with exponential backoff to cover a
    CLI call made right after 'serve' was launched.

    Args:
        method: HTTP method (GET, POST).
        endpoint: API endpoint path (e.g., "/api/questions").
        port: Port of the running instance.
        json_data: Optional JSON body for POST requests.
        timeout: Request timeout in seconds.
        max_retries: Maximum connection attempts.
        backoff_ms: Initial backoff in milliseconds (doubles each retry).

    Returns:
        Parsed JSON response.

    Raises:
        ServiceNotRunningError: If nothing accepts the connection.
        ServiceAPIError: If the request fails or returns an error status.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            with _create_client(port, timeout) as client:
                response = client.request(method, endpoint, json=json_data)
                response.raise_for_status()

                result = response.json()
                if isinstance(result, (dict, list)):
                    return result
                return {"value": result}

        except httpx.ConnectError as e:
            last_error = e
            if attempt < max_retries - 1:
                time.sleep(backoff_ms / 1000 * (2**attempt))
            continue

        except httpx.HTTPStatusError as e:
            try:
                detail = e.response.json().get("detail", str(e))
                if isinstance(detail, dict):
                    detail = detail.get("message", str(detail))
            except (json.JSONDecodeError, AttributeError):
                detail = str(e)
            raise ServiceAPIError(str(detail), e.response.status_code) from e

        except httpx.HTTPError as e:
            raise ServiceAPIError(str(e)) from e

        except json.JSONDecodeError as e:
            raise ServiceAPIError(f"Invalid JSON response from {endpoint}") from e

    raise ServiceNotRunningError(port) from last_error
