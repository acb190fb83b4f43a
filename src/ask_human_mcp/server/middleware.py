"""HTTP middleware for the coordination service.

RequestLoggingMiddleware logs every request/response pair (method, path,
truncated body, status, duration) and turns unhandled exceptions into
error responses so a bad request never takes the service down.
"""

from __future__ import annotations

__all__ = ["RequestLoggingMiddleware"]

import logging
import time

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ask_human_mcp.constants import LOG_BODY_MAX_CHARS, MCP_ENDPOINT
from ask_human_mcp.log_config import log_event
from ask_human_mcp.models import SystemEvent

from .errors import ErrorCode, jsonrpc_error_response


def _truncate(text: str, limit: int = LOG_BODY_MAX_CHARS) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text)} chars)"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request and its response without altering either."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        method = request.method
        path = request.url.path
        started = time.perf_counter()

        body_text = ""
        if method == "POST":
            # Cached by Starlette, so downstream handlers can read it again
            body = await request.body()
            if body:
                body_text = _truncate(body.decode("utf-8", errors="replace"))

        log_event(
            logging.INFO,
            SystemEvent(
                event="http_request",
                message=f"Request: {method} {path}" + (f" - {body_text}" if body_text else ""),
                method=method,
                path=path,
            ),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            log_event(
                logging.ERROR,
                SystemEvent(
                    event="request_failed",
                    message=f"Request failed: {method} {path} - {e}",
                    method=method,
                    path=path,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            if path.startswith(MCP_ENDPOINT):
                return jsonrpc_error_response()
            return JSONResponse(
                status_code=500,
                content={
                    "detail": {
                        "code": ErrorCode.INTERNAL_ERROR.value,
                        "message": "Internal server error",
                    }
                },
            )

        log_event(
            logging.INFO,
            SystemEvent(
                event="http_response",
                message=f"Response: {method} {path} - {response.status_code}",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            ),
        )
        return response
