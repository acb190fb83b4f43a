"""Socket and polling helpers shared by the service and the negotiator."""

from __future__ import annotations

__all__ = [
    "bind_loopback_socket",
    "is_port_in_use",
    "wait_for_condition",
    "wait_for_port_release",
]

import asyncio
import errno
import socket
import sys
import time
from collections.abc import Callable

from ask_human_mcp.constants import HTTP_SERVER_BACKLOG, LOOPBACK_HOST, POLL_INTERVAL_SECONDS
from ask_human_mcp.exceptions import PortInUseError, ServiceStartError


def is_port_in_use(port: int, host: str = LOOPBACK_HOST) -> bool:
    """Check if something is accepting connections on the port.

    Args:
        port: Port number to check.
        host: Host to connect to.

    Returns:
        True if a connection could be established.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(0.5)
        return sock.connect_ex((host, port)) == 0


def bind_loopback_socket(port: int) -> socket.socket:
    """Bind and listen on the loopback interface.

    SO_REUSEADDR is set on POSIX so a port left in TIME_WAIT by a sibling
    that just shut down can be re-bound immediately. It is skipped on
    Windows where the option allows two live listeners on one port.

    Args:
        port: Port to bind.

    Returns:
        Listening non-blocking socket.

    Raises:
        PortInUseError: If another process holds the port.
        ServiceStartError: For any other bind failure.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    if sys.platform != "win32":
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    try:
        sock.bind((LOOPBACK_HOST, port))
        sock.listen(HTTP_SERVER_BACKLOG)
    except OSError as e:
        sock.close()
        if e.errno == errno.EADDRINUSE:
            raise PortInUseError(port) from e
        raise ServiceStartError(f"Cannot bind {LOOPBACK_HOST}:{port}: {e}") from e
    except OverflowError as e:
        sock.close()
        raise ServiceStartError(f"Invalid port {port}: {e}") from e

    sock.setblocking(False)
    return sock


async def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float,
    interval: float = POLL_INTERVAL_SECONDS,
) -> bool:
    """Poll until condition() returns True or timeout elapses.

    Args:
        condition: Zero-argument predicate.
        timeout: Maximum seconds to wait.
        interval: Seconds between checks.

    Returns:
        True if the condition became true within the timeout.
    """
    deadline = time.monotonic() + timeout
    while True:
        if condition():
            return True
        if time.monotonic() >= deadline:
            return False
        await asyncio.sleep(interval)


async def wait_for_port_release(
    port: int,
    timeout: float,
    interval: float = POLL_INTERVAL_SECONDS,
) -> bool:
    """Poll until nothing accepts connections on the port.

    Each check runs in a worker thread so the event loop keeps serving
    while a connect attempt is pending.

    Args:
        port: Port to watch.
        timeout: Maximum seconds to wait.
        interval: Seconds between checks.

    Returns:
        True if the port was released within the timeout.
    """
    deadline = time.monotonic() + timeout
    while True:
        if not await asyncio.to_thread(is_port_in_use, port):
            return True
        if time.monotonic() >= deadline:
            return False
        await asyncio.sleep(interval)
