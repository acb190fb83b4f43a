"""Port negotiation: bind, probe the occupant, optionally take over.

StartupNegotiator decides what a start attempt ends in:

1. Bind succeeds -> running.
2. Port in use -> GET / on the occupant.
   - No answer, non-JSON, or an identity that does not match -> foreign
     occupant, stopped. Nothing is sent to a foreign process.
   - A sibling, passive start -> owned by sibling, stopped.
   - A sibling, takeover -> POST /shutdown, wait for the port to be
     released, bind again once.
3. Any other bind error -> bind error, stopped.

A shutdown request is only ever sent after the probe matched a sibling.
"""

from __future__ import annotations

__all__ = [
    "StartupNegotiator",
    "parse_identity",
    "probe_identity",
    "request_shutdown",
]

import logging

import httpx
from pydantic import ValidationError

from ask_human_mcp.constants import (
    DISCOVERY_PATH,
    LOOPBACK_HOST,
    PORT_RELEASE_TIMEOUT_SECONDS,
    PROBE_TIMEOUT_SECONDS,
    SHUTDOWN_PATH,
    SHUTDOWN_REQUEST_TIMEOUT_SECONDS,
)
from ask_human_mcp.exceptions import (
    ForeignOccupantError,
    PortInUseError,
    ServiceStartError,
    TakeoverRejectedError,
)
from ask_human_mcp.log_config import log_event
from ask_human_mcp.models import (
    ConflictReason,
    NegotiationResult,
    ServiceIdentity,
    ServiceState,
    ShutdownResponse,
    SystemEvent,
)
from ask_human_mcp.server.service import CoordinationService
from ask_human_mcp.utils import wait_for_port_release


def _base_url(port: int) -> str:
    return f"http://{LOOPBACK_HOST}:{port}"


def parse_identity(response: httpx.Response) -> ServiceIdentity:
    """Validate a discovery response as a sibling identity.

    Args:
        response: Response to GET / on the occupied port.

    Returns:
        The sibling's identity.

    Raises:
        ForeignOccupantError: If the response is not a 2xx JSON
            ServiceIdentity, or the identity does not match ours.
    """
    if not response.is_success:
        raise ForeignOccupantError(f"Discovery returned HTTP {response.status_code}")

    try:
        identity = ServiceIdentity.model_validate(response.json())
    except ValueError as e:
        # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
        kind = "invalid identity" if isinstance(e, ValidationError) else "non-JSON response"
        raise ForeignOccupantError(f"Discovery returned {kind}") from e

    if not identity.matches_contract():
        raise ForeignOccupantError(f"Occupant identifies as {identity.name!r} at {identity.endpoint!r}")

    return identity


async def probe_identity(port: int, timeout: float = PROBE_TIMEOUT_SECONDS) -> ServiceIdentity:
    """Ask the process on the port who it is.

    Args:
        port: Occupied port.
        timeout: Seconds for the whole round trip.

    Returns:
        The sibling's identity.

    Raises:
        ForeignOccupantError: If nothing answers like a sibling.
    """
    try:
        async with httpx.AsyncClient(base_url=_base_url(port), timeout=timeout) as client:
            response = await client.get(DISCOVERY_PATH)
    except httpx.HTTPError as e:
        log_event(
            logging.DEBUG,
            SystemEvent(
                event="probe_failed",
                message=f"Discovery probe on port {port} failed: {e}",
                port=port,
                error_type=type(e).__name__,
                error_message=str(e),
            ),
        )
        raise ForeignOccupantError(f"Discovery request failed: {type(e).__name__}") from e

    return parse_identity(response)


async def request_shutdown(port: int, timeout: float = SHUTDOWN_REQUEST_TIMEOUT_SECONDS) -> None:
    """Ask a sibling to release the port.

    Args:
        port: Port the sibling serves.
        timeout: Seconds for the whole round trip.

    Raises:
        TakeoverRejectedError: On HTTP failure, timeout, or success=false.
    """
    try:
        async with httpx.AsyncClient(base_url=_base_url(port), timeout=timeout) as client:
            response = await client.post(SHUTDOWN_PATH)
            response.raise_for_status()
            result = ShutdownResponse.model_validate(response.json())
    except httpx.HTTPError as e:
        raise TakeoverRejectedError(f"Shutdown request failed: {type(e).__name__}: {e}") from e
    except ValueError as e:
        raise TakeoverRejectedError("Shutdown request returned an invalid response") from e

    if not result.success:
        raise TakeoverRejectedError(result.reason or "Sibling refused to shut down")


class StartupNegotiator:
    """Runs one start attempt for a CoordinationService.

    The negotiator never owns the socket: it only calls service.start()
    and inspects the occupant over HTTP.
    """

    def __init__(
        self,
        service: CoordinationService,
        port: int | None = None,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        release_timeout: float = PORT_RELEASE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the negotiator.

        Args:
            service: Service to start.
            port: Port being negotiated. Defaults to service.port.
            probe_timeout: Timeout for the discovery probe.
            release_timeout: How long to wait for a sibling to release the
                port after accepting a shutdown request.
        """
        self._service = service
        self._port = port if port is not None else service.port
        self._probe_timeout = probe_timeout
        self._release_timeout = release_timeout

    @property
    def port(self) -> int:
        """Port being negotiated."""
        return self._port

    async def negotiate(self, takeover: bool = False) -> NegotiationResult:
        """Attempt to start, resolving a port conflict if there is one.

        Args:
            takeover: Ask a sibling on the port to shut down.

        Returns:
            NegotiationResult, RUNNING or STOPPED with a reason.
        """
        try:
            await self._service.start()
            return self._running()
        except ServiceStartError as e:
            return self._bind_error(e)
        except PortInUseError:
            log_event(
                logging.INFO,
                SystemEvent(
                    event="port_in_use",
                    message=f"Port {self._port} is in use, probing occupant",
                    port=self._port,
                ),
            )

        try:
            sibling = await probe_identity(self._port, self._probe_timeout)
        except ForeignOccupantError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="foreign_occupant",
                    message=f"Port {self._port} is used by another application: {e}",
                    port=self._port,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            return self._stopped(
                ConflictReason.FOREIGN_OCCUPANT,
                f"Port {self._port} is used by another application",
            )

        if sibling.instance_id == self._service.instance_id:
            # The occupant is this service, started by a concurrent call
            return self._running()

        log_event(
            logging.INFO,
            SystemEvent(
                event="sibling_detected",
                message=f"Port {self._port} is owned by another instance",
                port=self._port,
                instance_id=sibling.instance_id,
            ),
        )

        if not takeover:
            return self._stopped(
                ConflictReason.OWNED_BY_SIBLING,
                f"Port {self._port} is owned by another instance. Start again with takeover to move it here.",
                sibling=sibling,
            )

        return await self._take_over(sibling)

    async def _take_over(self, sibling: ServiceIdentity) -> NegotiationResult:
        log_event(
            logging.INFO,
            SystemEvent(
                event="takeover_requested",
                message=f"Requesting shutdown of instance {sibling.instance_id}",
                port=self._port,
                instance_id=sibling.instance_id,
            ),
        )

        try:
            await request_shutdown(self._port)

            released = await wait_for_port_release(self._port, timeout=self._release_timeout)
            if not released:
                raise TakeoverRejectedError(f"Port {self._port} was not released in {self._release_timeout}s")

            await self._service.start()
        except (TakeoverRejectedError, PortInUseError, ServiceStartError) as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="takeover_failed",
                    message=f"Takeover of port {self._port} failed: {e}",
                    port=self._port,
                    instance_id=sibling.instance_id,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            return self._stopped(
                ConflictReason.TAKEOVER_REJECTED,
                f"Could not take over port {self._port}: {e}",
                sibling=sibling,
            )

        return self._running()

    # =========================================================================
    # Result builders
    # =========================================================================

    def _running(self) -> NegotiationResult:
        return NegotiationResult(
            state=ServiceState.RUNNING,
            port=self._port,
            message=f"Listening on port {self._port}",
        )

    def _bind_error(self, error: ServiceStartError) -> NegotiationResult:
        log_event(
            logging.ERROR,
            SystemEvent(
                event="bind_failed",
                message=f"Cannot start on port {self._port}: {error}",
                port=self._port,
                error_type=type(error).__name__,
                error_message=str(error),
            ),
        )
        return self._stopped(ConflictReason.BIND_ERROR, str(error))

    def _stopped(
        self,
        reason: ConflictReason,
        message: str,
        sibling: ServiceIdentity | None = None,
    ) -> NegotiationResult:
        return NegotiationResult(
            state=ServiceState.STOPPED,
            port=self._port,
            reason=reason,
            message=message,
            sibling=sibling,
        )
