"""Pydantic models for ask-human-mcp.

This module contains three categories of models:

Question Models (FrozenModel-based):
- Choice, ChoiceSpec: Closed set of suggested answers
- QuestionInfo: Read-only view of a pending question (no continuation)

Service Models:
- ServiceIdentity: Discovery payload returned by GET /
- ServiceState, ConflictReason: Lifecycle enums
- NegotiationResult: Outcome of a start attempt
- ServiceStatus: Status published to the UI sink and GET /api/status
- ShutdownResponse, AnswerRequest, AnswerResponse: HTTP bodies

Logging Models:
- SystemEvent: System log entries
"""

from __future__ import annotations

__all__ = [
    # Question Models
    "Choice",
    "ChoiceSpec",
    "FrozenModel",
    "QuestionInfo",
    # Service Models
    "AnswerRequest",
    "AnswerResponse",
    "ConflictReason",
    "NegotiationResult",
    "ServiceIdentity",
    "ServiceState",
    "ServiceStatus",
    "ShutdownResponse",
    # Logging Models
    "SystemEvent",
]

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ask_human_mcp.constants import MCP_ENDPOINT, SERVICE_NAME


class FrozenModel(BaseModel):
    """Base class for immutable Pydantic models."""

    model_config = ConfigDict(frozen=True)


# =============================================================================
# Question Models
# =============================================================================


class Choice(FrozenModel):
    """One suggested answer.

    Attributes:
        label: Short answer text, delivered verbatim when picked.
        description: Optional explanation shown next to the label.
    """

    label: str = Field(min_length=1, description="Answer text returned when this choice is picked")
    description: str = Field(default="", description="Explanation shown next to the label")


class ChoiceSpec(FrozenModel):
    """Closed set of choices offered with a question.

    The answer is expected to be drawn from (or augmented by) this set.

    Attributes:
        choices: Suggested answers in display order.
        multiple: Whether more than one choice may be picked.
    """

    choices: list[Choice] = Field(min_length=1, description="Suggested answers")
    multiple: bool = Field(default=False, description="Allow picking more than one choice")


class QuestionInfo(FrozenModel):
    """API-facing view of a pending question.

    This is what the UI sink and GET /api/questions receive. It never
    carries the continuation.

    Attributes:
        id: Unique question ID, never reused.
        prompt_text: Question text as received.
        choice_spec: Optional suggested answers.
        created_at: When the question was registered.
    """

    id: str
    prompt_text: str
    choice_spec: ChoiceSpec | None = None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json")


# =============================================================================
# Service Models
# =============================================================================


class ServiceState(str, Enum):
    """Lifecycle state of one coordinator."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING_FOR_TAKEOVER = "stopping_for_takeover"


class ConflictReason(str, Enum):
    """Why a start attempt ended in the stopped state."""

    OWNED_BY_SIBLING = "owned by sibling"
    FOREIGN_OCCUPANT = "foreign occupant"
    TAKEOVER_REJECTED = "takeover rejected"
    BIND_ERROR = "bind error"


class ServiceIdentity(FrozenModel):
    """Discovery payload returned by GET /.

    Wire format uses the camelCase key ``instanceId``. Unknown keys are
    ignored so newer siblings still parse.

    Attributes:
        name: Identity marker, SERVICE_NAME for siblings.
        version: Service version string.
        status: Always "running" while the endpoint answers.
        endpoint: Path of the MCP endpoint.
        instance_id: Process-unique identifier of the answering instance.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    version: str
    status: str
    endpoint: str
    instance_id: str = Field(alias="instanceId")

    def matches_contract(self) -> bool:
        """Check whether this identity belongs to a sibling instance.

        Returns:
            True if marker, status and endpoint all match this service.
        """
        return self.name == SERVICE_NAME and self.status == "running" and self.endpoint == MCP_ENDPOINT


class NegotiationResult(FrozenModel):
    """Outcome of one StartupNegotiator run.

    Attributes:
        state: RUNNING on success, STOPPED otherwise.
        port: The negotiated port.
        reason: Why the attempt ended stopped (None when running).
        message: Human-readable status text.
        sibling: Identity of the sibling that owns the port, if one answered.
    """

    state: ServiceState
    port: int
    reason: ConflictReason | None = None
    message: str | None = None
    sibling: ServiceIdentity | None = None

    @property
    def running(self) -> bool:
        """Whether this instance ended up serving the port."""
        return self.state == ServiceState.RUNNING


class ServiceStatus(FrozenModel):
    """Status published to the UI sink.

    Attributes:
        running: Whether this instance serves the port.
        port: Configured port.
        state: Current lifecycle state.
        reason: Last conflict reason, if the last start failed.
        message: Human-readable status text.
    """

    running: bool
    port: int
    state: ServiceState = ServiceState.STOPPED
    reason: ConflictReason | None = None
    message: str | None = None


class ShutdownResponse(FrozenModel):
    """Body of POST /shutdown."""

    success: bool
    reason: str | None = None


class AnswerRequest(FrozenModel):
    """Body of POST /api/questions/{id}/answer."""

    answer: str


class AnswerResponse(FrozenModel):
    """Result of submitting an answer.

    ``resolved`` is False when the question was already answered,
    cancelled or never existed. That is not an error.
    """

    id: str
    resolved: bool


# =============================================================================
# Logging Models
# =============================================================================


class SystemEvent(BaseModel):
    """One system log entry (<log_dir>/ask-human-mcp/system.jsonl).

    Used for INFO, WARNING and ERROR events of the coordination service.

    Note: 'time' is None when created, populated by ISO8601Formatter during logging.
    """

    # --- core ---
    time: Optional[str] = Field(
        None,
        description="ISO 8601 timestamp (UTC), added by formatter during serialization",
    )
    event: Optional[str] = Field(
        None,
        description="Machine-friendly event name, e.g. 'service_started', 'sibling_detected'",
    )
    message: str = Field(description="Human-readable log message")

    # --- service context ---
    port: Optional[int] = Field(None, description="Port the event refers to")
    instance_id: Optional[str] = Field(None, description="Instance identifier (own or sibling)")
    question_id: Optional[str] = Field(None, description="Pending question identifier")

    # --- HTTP context ---
    method: Optional[str] = Field(None, description="HTTP method, e.g. 'POST'")
    path: Optional[str] = Field(None, description="HTTP request path, e.g. '/mcp'")
    status_code: Optional[int] = Field(None, description="HTTP response status code")
    duration_ms: Optional[float] = Field(None, description="Request duration in milliseconds")

    # --- error details ---
    error_type: Optional[str] = Field(
        None,
        description="Exception class name, e.g. 'ConnectError'",
    )
    error_message: Optional[str] = Field(
        None,
        description="Short error text from exception",
    )

    # --- additional structured details ---
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional context as key-value pairs",
    )

    model_config = ConfigDict(extra="allow")
