"""FastAPI application factory for the coordination service.

Combines the service routes (discovery, shutdown, question API) with the
FastMCP streamable HTTP app. The MCP app is mounted last at the root so its
own /mcp route handles protocol traffic while everything else is matched by
the FastAPI router first.
"""

from __future__ import annotations

__all__ = ["create_service_app"]

from collections.abc import Awaitable, Callable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.constants import MCP_ENDPOINT, SERVICE_NAME, SERVICE_VERSION
from ask_human_mcp.models import ServiceIdentity, ServiceStatus

from .errors import (
    APIError,
    api_error_handler,
    validation_error_handler,
)
from .mcp import create_mcp_server
from .middleware import RequestLoggingMiddleware
from .routes import router


def create_service_app(
    broker: QuestionBroker,
    config: BrokerConfig,
    identity: ServiceIdentity,
    on_shutdown: Callable[[], Awaitable[None]],
    status_provider: Callable[[], ServiceStatus],
) -> FastAPI:
    """Create the HTTP application for one service run.

    A new app must be built for every start: the MCP session manager can
    only be run once per instance.

    Args:
        broker: Broker that owns pending questions.
        config: Configuration (tool strings).
        identity: Identity served on the discovery route.
        on_shutdown: Coroutine function invoked after POST /shutdown.
        status_provider: Returns the current ServiceStatus for /api/status.

    Returns:
        Configured FastAPI application.
    """
    mcp_server = create_mcp_server(broker, config)
    mcp_app = mcp_server.http_app(path=MCP_ENDPOINT, stateless_http=True)

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=mcp_app.lifespan,
    )

    app.state.broker = broker
    app.state.identity = identity
    app.state.shutdown_callback = on_shutdown
    app.state.status_provider = status_provider
    app.state.background_tasks = set()

    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(router)

    # Must come after the router: the root mount matches every path
    app.mount("/", mcp_app)

    return app
