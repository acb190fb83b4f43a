"""Custom exceptions for ask-human-mcp.

None of these terminate the hosting process. Startup failures are caught by
the StartupNegotiator and turned into a stopped status with a reason; only
explicit disposal ends the service.

Bind failures (raised by CoordinationService.start):
    - PortInUseError: Port owned by something (recovered via probe/takeover)
    - ServiceStartError: Any other bind or startup failure (not retried)

Negotiation failures (raised and handled inside StartupNegotiator):
    - ForeignOccupantError: Port owned by a process that is not a sibling
    - TakeoverRejectedError: Sibling did not release the port

Configuration:
    - ConfigurationError: Config file missing or invalid (strict loading)

Usage:
    from ask_human_mcp.exceptions import PortInUseError
"""

from __future__ import annotations

__all__ = [
    "AskHumanError",
    "ConfigurationError",
    "ForeignOccupantError",
    "PortInUseError",
    "ServiceStartError",
    "TakeoverRejectedError",
]


class AskHumanError(Exception):
    """Base class for ask-human-mcp errors."""


class PortInUseError(AskHumanError):
    """The configured port is already bound by another socket.

    Attributes:
        port: The port that could not be bound.
    """

    def __init__(self, port: int) -> None:
        super().__init__(f"Port {port} is already in use")
        self.port = port


class ServiceStartError(AskHumanError):
    """The service could not bind or start for a reason other than EADDRINUSE.

    Raised for permission errors, invalid ports, or a uvicorn server that
    never reports it is serving. Fatal for the current start attempt.
    """


class ForeignOccupantError(AskHumanError):
    """The occupied port did not answer with a compatible identity.

    Covers connection errors, non-HTTP or non-JSON answers and identities
    with a different marker or endpoint.
    """


class TakeoverRejectedError(AskHumanError):
    """The sibling instance did not release the port.

    Raised when the shutdown request fails, times out, returns
    success=false, or the port is still held after the release timeout.
    """


class ConfigurationError(AskHumanError):
    """Configuration is invalid or incomplete.

    Raised when:
    - Config file does not exist (strict loading only)
    - Config file contains invalid JSON
    - Config file fails Pydantic validation
    """
