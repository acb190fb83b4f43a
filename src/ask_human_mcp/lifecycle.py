"""Lifecycle controller for one ask-human instance.

LifecycleController owns the QuestionBroker, the CoordinationService and the
StartupNegotiator, and is the only place that changes ServiceState. Every
transition is published to the UI sink as a ServiceStatus.

There is no module-level "current instance": several controllers on
different ports can live in one process.

Usage:
    async with LifecycleController(config, sink=sink) as controller:
        result = await controller.start()
        if result.running:
            await controller.wait_until_stopped()
"""

from __future__ import annotations

__all__ = ["LifecycleController"]

import asyncio
import logging
from types import TracebackType

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.constants import APP_NAME, DISPOSAL_ANSWER, PROBE_TIMEOUT_SECONDS
from ask_human_mcp.log_config import log_event
from ask_human_mcp.models import ConflictReason, NegotiationResult, ServiceState, ServiceStatus, SystemEvent
from ask_human_mcp.negotiator import StartupNegotiator
from ask_human_mcp.server.service import CoordinationService
from ask_human_mcp.sinks import NullSink, QuestionSink

_logger = logging.getLogger(f"{APP_NAME}.lifecycle")


class LifecycleController:
    """State holder with start/stop/toggle/dispose.

    Disposal stops the network side first and only then cancels pending
    questions, so no new question can arrive after the cancellation.
    """

    def __init__(
        self,
        config: BrokerConfig,
        sink: QuestionSink | None = None,
        broker: QuestionBroker | None = None,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the controller in the stopped state.

        Args:
            config: Configuration (port, tool strings).
            sink: UI collaborator. Defaults to NullSink.
            broker: Broker to use. A new one is created if not given. The
                broker's sink is replaced by this controller's sink.
            probe_timeout: Timeout for the discovery probe on conflicts.
        """
        self._config = config
        self._sink: QuestionSink = sink or NullSink()
        self._broker = broker or QuestionBroker()
        self._broker.sink = self._sink

        self._service = CoordinationService(
            self._broker,
            config,
            on_shutdown_requested=self.handle_shutdown_request,
            status_provider=lambda: self.status,
        )
        self._negotiator = StartupNegotiator(self._service, probe_timeout=probe_timeout)

        self._state = ServiceState.STOPPED
        self._reason: ConflictReason | None = None
        self._message: str | None = None
        self._last_result: NegotiationResult | None = None
        self._disposed = False
        self._stopped_event = asyncio.Event()
        self._stopped_event.set()
        self._start_lock = asyncio.Lock()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ServiceState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether this instance serves the port."""
        return self._state == ServiceState.RUNNING

    @property
    def status(self) -> ServiceStatus:
        """Status as published to the sink."""
        return ServiceStatus(
            running=self.is_running,
            port=self._service.port,
            state=self._state,
            reason=self._reason,
            message=self._message,
        )

    @property
    def broker(self) -> QuestionBroker:
        """Broker holding pending questions."""
        return self._broker

    @property
    def service(self) -> CoordinationService:
        """HTTP service for this instance."""
        return self._service

    @property
    def last_result(self) -> NegotiationResult | None:
        """Outcome of the most recent start attempt."""
        return self._last_result

    # =========================================================================
    # Transitions
    # =========================================================================

    async def start(self, takeover: bool = False) -> NegotiationResult:
        """Start serving, negotiating the port if it is taken.

        No-op when already running (returns the stored result). A call made
        while another start is in flight waits for it and then returns its
        result if it ended running.

        Args:
            takeover: Ask a sibling on the port to shut down.

        Returns:
            Outcome of the negotiation.
        """
        async with self._start_lock:
            if self._state == ServiceState.RUNNING and self._last_result is not None:
                return self._last_result

            self._set_state(ServiceState.STARTING, message=f"Starting on port {self._service.port}")
            try:
                result = await self._negotiator.negotiate(takeover=takeover)
            except BaseException:
                self._set_state(ServiceState.STOPPED)
                raise

            self._last_result = result
            if result.running:
                self._stopped_event.clear()
            self._set_state(result.state, reason=result.reason, message=result.message)
            return result

    async def stop(self) -> None:
        """Stop serving. Pending questions stay pending.

        Only valid while running; otherwise logged and ignored.
        """
        if self._state != ServiceState.RUNNING:
            _logger.debug("stop() ignored in state %s", self._state.value)
            return
        await self._stop_service()

    async def toggle(self) -> NegotiationResult | None:
        """Stop if running, otherwise start with takeover.

        Returns:
            The negotiation result when starting, None when stopping.
        """
        if self.is_running:
            await self.stop()
            return None
        return await self.start(takeover=True)

    async def handle_shutdown_request(self) -> None:
        """Release the port because a sibling asked for it."""
        if self._state != ServiceState.RUNNING:
            return
        self._set_state(ServiceState.STOPPING_FOR_TAKEOVER, message="Another instance is taking over the port")
        await self._stop_service(message="Port handed over to another instance")

    def submit_answer(self, question_id: str, answer_text: str) -> bool:
        """Deliver an answer from the UI.

        Returns:
            True if a pending question was resolved.
        """
        return self._broker.resolve(question_id, answer_text)

    async def wait_until_stopped(self) -> None:
        """Wait until the service stops (locally or by takeover)."""
        await self._stopped_event.wait()

    async def dispose(self) -> None:
        """Stop the service, cancel pending questions, notify the sink.

        Idempotent.
        """
        if self._disposed:
            return
        self._disposed = True

        # Waits for an in-flight start so its socket is released here
        async with self._start_lock:
            if self._state != ServiceState.STOPPED or self._service.is_running:
                await self._stop_service()

        cancelled = self._broker.cancel_all(DISPOSAL_ANSWER)

        log_event(
            logging.INFO,
            SystemEvent(
                event="controller_disposed",
                message=f"Disposed, cancelled {cancelled} pending question(s)",
                port=self._service.port,
                details={"cancelled": cancelled},
            ),
        )

        try:
            self._sink.disposed()
        except Exception as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="sink_notification_failed",
                    message=f"UI sink raised on dispose: {e}",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )

    async def __aenter__(self) -> LifecycleController:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()

    # =========================================================================
    # Internals
    # =========================================================================

    async def _stop_service(self, message: str = "Stopped") -> None:
        try:
            await self._service.stop()
        finally:
            self._set_state(ServiceState.STOPPED, message=message)
            self._stopped_event.set()

    def _set_state(
        self,
        state: ServiceState,
        reason: ConflictReason | None = None,
        message: str | None = None,
    ) -> None:
        self._state = state
        self._reason = reason
        self._message = message
        status = self.status
        try:
            self._sink.status_changed(status)
        except Exception as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="sink_notification_failed",
                    message=f"UI sink raised while receiving status: {e}",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
