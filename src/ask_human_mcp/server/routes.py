"""Routes of the coordination service.

- GET  /                                  Discovery probe (ServiceIdentity)
- POST /shutdown                          Release the port for a sibling
- GET  /api/status                        Current ServiceStatus
- GET  /api/questions                     Pending questions in display order
- GET  /api/questions/{id}                One pending question
- POST /api/questions/{id}/answer         Submit an answer (UI inbound)

POST /mcp is not here: it is served by the mounted FastMCP app.
"""

from __future__ import annotations

__all__ = ["router"]

import asyncio
import logging

from fastapi import APIRouter, Request

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.constants import DISCOVERY_PATH, QUESTIONS_API_PATH, SHUTDOWN_PATH, STATUS_API_PATH
from ask_human_mcp.log_config import log_event
from ask_human_mcp.models import (
    AnswerRequest,
    AnswerResponse,
    QuestionInfo,
    ServiceIdentity,
    ServiceStatus,
    ShutdownResponse,
    SystemEvent,
)

from .errors import APIError, ErrorCode

router = APIRouter()


def _broker(request: Request) -> QuestionBroker:
    broker: QuestionBroker = request.app.state.broker
    return broker


@router.get(DISCOVERY_PATH, response_model=ServiceIdentity)
async def discovery(request: Request) -> ServiceIdentity:
    """Identify this service to health checks and starting siblings."""
    identity: ServiceIdentity = request.app.state.identity
    return identity


@router.post(SHUTDOWN_PATH, response_model=ShutdownResponse)
async def shutdown(request: Request) -> ShutdownResponse:
    """Ask this instance to release the port.

    The owner's shutdown callback runs in its own task after the response
    is produced, so the HTTP server can drain this request while stopping.
    Pending questions are left alone.
    """
    callback = request.app.state.shutdown_callback
    identity: ServiceIdentity = request.app.state.identity

    log_event(
        logging.INFO,
        SystemEvent(
            event="shutdown_requested",
            message="Shutdown requested by another instance",
            instance_id=identity.instance_id,
        ),
    )

    task = asyncio.create_task(callback())
    tasks: set[asyncio.Task[None]] = request.app.state.background_tasks
    tasks.add(task)
    task.add_done_callback(tasks.discard)

    return ShutdownResponse(success=True)


@router.get(STATUS_API_PATH, response_model=ServiceStatus)
async def status(request: Request) -> ServiceStatus:
    """Get the status of the owning controller."""
    result: ServiceStatus = request.app.state.status_provider()
    return result


@router.get(QUESTIONS_API_PATH, response_model=list[QuestionInfo])
async def list_questions(request: Request) -> list[QuestionInfo]:
    """List pending questions, oldest first."""
    return _broker(request).snapshot()


@router.get(QUESTIONS_API_PATH + "/{question_id}", response_model=QuestionInfo)
async def get_question(question_id: str, request: Request) -> QuestionInfo:
    """Get one pending question."""
    info = _broker(request).get(question_id)
    if info is None:
        raise APIError(
            status_code=404,
            code=ErrorCode.QUESTION_NOT_FOUND,
            message="Pending question not found",
            details={"question_id": question_id},
        )
    return info


@router.post(QUESTIONS_API_PATH + "/{question_id}/answer", response_model=AnswerResponse)
async def answer_question(question_id: str, body: AnswerRequest, request: Request) -> AnswerResponse:
    """Submit an answer.

    Answers for unknown or already answered questions return
    resolved=false instead of an error.
    """
    resolved = _broker(request).resolve(question_id, body.answer)
    return AnswerResponse(id=question_id, resolved=resolved)
