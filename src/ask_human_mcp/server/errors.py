"""Error responses of the coordination service.

REST routes answer with a structured envelope:

    {"detail": {"code": "QUESTION_NOT_FOUND", "message": "...", "details": {...}}}

The MCP endpoint answers with JSON-RPC error objects instead, built by
jsonrpc_error_response().
"""

from __future__ import annotations

__all__ = [
    "APIError",
    "ErrorCode",
    "api_error_handler",
    "jsonrpc_error_response",
    "validation_error_handler",
]

from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ask_human_mcp.constants import JSONRPC_INTERNAL_ERROR


class ErrorCode(str, Enum):
    """Codes carried in the REST error envelope."""

    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(HTTPException):
    """HTTPException whose detail is the structured envelope.

    Usage:
        raise APIError(404, ErrorCode.QUESTION_NOT_FOUND, "Pending question not found",
                       details={"question_id": question_id})
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        detail: dict[str, Any] = {"code": code.value, "message": message}
        if details:
            detail["details"] = details
        super().__init__(status_code=status_code, detail=detail)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError as the structured envelope."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render a rejected request body (e.g. an AnswerRequest without answer).

    Field paths are dotted without the leading "body" segment.
    """
    fields = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "msg": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    message = "; ".join(f"{f['field']}: {f['msg']}" if f["field"] else f["msg"] for f in fields)

    return JSONResponse(
        status_code=422,
        content={
            "detail": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": message or "Invalid request",
                "details": {"fields": fields},
            }
        },
    )


def jsonrpc_error_response(
    code: int = JSONRPC_INTERNAL_ERROR,
    message: str = "Internal server error",
    status_code: int = 500,
) -> JSONResponse:
    """JSON-RPC error object with a null id, for failures on /mcp."""
    return JSONResponse(
        status_code=status_code,
        content={
            "jsonrpc": "2.0",
            "error": {"code": code, "message": message},
            "id": None,
        },
    )
