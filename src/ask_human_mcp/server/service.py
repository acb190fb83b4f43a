"""Coordination service: owns the HTTP server for one instance.

CoordinationService binds the loopback port, serves the FastAPI app with
uvicorn on the pre-bound socket, and tears the server down on request.
Binding happens before uvicorn is involved so EADDRINUSE surfaces as
PortInUseError synchronously, which is what the StartupNegotiator keys on.

The service never stops itself in response to POST /shutdown: it hands the
request to its owner through on_shutdown_requested.
"""

from __future__ import annotations

__all__ = ["CoordinationService"]

import asyncio
import logging
import socket
import uuid
from collections.abc import Awaitable, Callable

import uvicorn

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.constants import (
    MCP_ENDPOINT,
    SERVER_GRACEFUL_SHUTDOWN_SECONDS,
    SERVER_SHUTDOWN_TIMEOUT_SECONDS,
    SERVER_STARTUP_TIMEOUT_SECONDS,
    SERVICE_NAME,
    SERVICE_VERSION,
)
from ask_human_mcp.exceptions import ServiceStartError
from ask_human_mcp.log_config import log_event
from ask_human_mcp.models import ServiceIdentity, ServiceState, ServiceStatus, SystemEvent
from ask_human_mcp.utils import bind_loopback_socket, wait_for_condition

from .app import create_service_app


class CoordinationService:
    """HTTP server on the loopback port serving discovery, shutdown and MCP.

    The instance ID is generated once per service object and stays the same
    across restarts, so a sibling probing the port can tell instances apart.

    Usage:
        service = CoordinationService(broker, config, on_shutdown_requested=owner.handle)
        await service.start()    # PortInUseError if the port is held
        ...
        await service.stop()
    """

    def __init__(
        self,
        broker: QuestionBroker,
        config: BrokerConfig,
        *,
        port: int | None = None,
        on_shutdown_requested: Callable[[], Awaitable[None]] | None = None,
        status_provider: Callable[[], ServiceStatus] | None = None,
    ) -> None:
        """Initialize the service without binding.

        Args:
            broker: Broker that owns pending questions.
            config: Configuration (port, tool strings).
            port: Port override. Defaults to config.port.
            on_shutdown_requested: Called after POST /shutdown is accepted.
                Defaults to stopping this service.
            status_provider: Returns the status served on /api/status.
                Defaults to this service's own running state.
        """
        self._broker = broker
        self._config = config
        self._port = port if port is not None else config.port
        self._instance_id = uuid.uuid4().hex
        self._on_shutdown_requested = on_shutdown_requested
        self._status_provider = status_provider

        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None

    @property
    def port(self) -> int:
        """Port this service binds."""
        return self._port

    @property
    def instance_id(self) -> str:
        """Process-unique identifier served on the discovery route."""
        return self._instance_id

    @property
    def identity(self) -> ServiceIdentity:
        """Discovery payload returned by GET /."""
        return ServiceIdentity(
            name=SERVICE_NAME,
            version=SERVICE_VERSION,
            status="running",
            endpoint=MCP_ENDPOINT,
            instance_id=self._instance_id,
        )

    @property
    def is_running(self) -> bool:
        """Whether the HTTP server is serving the port."""
        return self._serve_task is not None and not self._serve_task.done()

    # =========================================================================
    # Start / stop
    # =========================================================================

    async def start(self) -> None:
        """Bind the port and start serving.

        No-op if already running.

        Raises:
            PortInUseError: If the port is already bound.
            ServiceStartError: For other bind failures or if uvicorn does not
                report started within the startup timeout.
        """
        if self.is_running:
            return

        sock = bind_loopback_socket(self._port)

        try:
            app = create_service_app(
                broker=self._broker,
                config=self._config,
                identity=self.identity,
                on_shutdown=self._handle_shutdown_request,
                status_provider=self._status_provider or self._own_status,
            )
            server_config = uvicorn.Config(
                app,
                log_config=None,
                ws="none",
                lifespan="on",
                timeout_graceful_shutdown=SERVER_GRACEFUL_SHUTDOWN_SECONDS,
            )
            server = uvicorn.Server(server_config)

            # _serve() instead of serve() so uvicorn does not install signal handlers
            task = asyncio.create_task(server._serve(sockets=[sock]))
        except Exception as e:
            sock.close()
            raise ServiceStartError(f"Cannot start HTTP server on port {self._port}: {e}") from e

        started = await wait_for_condition(
            lambda: server.started or task.done(),
            timeout=SERVER_STARTUP_TIMEOUT_SECONDS,
        )
        if not started or not server.started:
            server.should_exit = True
            await self._await_server_task(task)
            sock.close()
            raise ServiceStartError(f"HTTP server on port {self._port} did not start")

        self._socket = sock
        self._server = server
        self._serve_task = task

        log_event(
            logging.INFO,
            SystemEvent(
                event="service_started",
                message=f"Server listening on port {self._port}",
                port=self._port,
                instance_id=self._instance_id,
            ),
        )

    async def stop(self) -> None:
        """Stop serving and release the port.

        In-flight /mcp requests are abandoned after a short grace period;
        their questions stay pending in the broker. No-op if not running.
        """
        server, task, sock = self._server, self._serve_task, self._socket
        self._server = None
        self._serve_task = None
        self._socket = None

        if server is None or task is None:
            return

        server.should_exit = True
        await self._await_server_task(task)

        if sock is not None:
            sock.close()

        log_event(
            logging.INFO,
            SystemEvent(
                event="service_stopped",
                message=f"Server on port {self._port} stopped",
                port=self._port,
                instance_id=self._instance_id,
            ),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _handle_shutdown_request(self) -> None:
        if self._on_shutdown_requested is not None:
            await self._on_shutdown_requested()
        else:
            await self.stop()

    def _own_status(self) -> ServiceStatus:
        running = self.is_running
        return ServiceStatus(
            running=running,
            port=self._port,
            state=ServiceState.RUNNING if running else ServiceState.STOPPED,
        )

    @staticmethod
    async def _await_server_task(task: asyncio.Task[None]) -> None:
        """Wait for the uvicorn task to finish, cancelling it on timeout."""
        try:
            await asyncio.wait_for(task, timeout=SERVER_SHUTDOWN_TIMEOUT_SECONDS)
        except TimeoutError:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="service_stop_timeout",
                    message="HTTP server did not stop in time, cancelled",
                ),
            )
        except Exception as e:
            log_event(
                logging.ERROR,
                SystemEvent(
                    event="service_crashed",
                    message=f"HTTP server task failed: {e}",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
