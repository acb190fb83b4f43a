"""Application-wide constants for ask-human-mcp.

Constants that define application behavior.
For user-configurable settings, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    "SERVICE_NAME",
    "SERVICE_VERSION",
    # Network
    "LOOPBACK_HOST",
    "DEFAULT_PORT",
    "MIN_PORT",
    "MAX_PORT",
    "HTTP_SERVER_BACKLOG",
    # HTTP surface
    "DISCOVERY_PATH",
    "MCP_ENDPOINT",
    "SHUTDOWN_PATH",
    "QUESTIONS_API_PATH",
    "STATUS_API_PATH",
    # Tool defaults
    "DEFAULT_TOOL_NAME",
    "DEFAULT_TOOL_TITLE",
    "DEFAULT_TOOL_DESCRIPTION",
    "DEFAULT_QUESTION_DESCRIPTION",
    # Timeouts
    "PROBE_TIMEOUT_SECONDS",
    "SHUTDOWN_REQUEST_TIMEOUT_SECONDS",
    "PORT_RELEASE_TIMEOUT_SECONDS",
    "SERVER_STARTUP_TIMEOUT_SECONDS",
    "SERVER_SHUTDOWN_TIMEOUT_SECONDS",
    "SERVER_GRACEFUL_SHUTDOWN_SECONDS",
    "POLL_INTERVAL_SECONDS",
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    # Logging
    "LOG_BODY_MAX_CHARS",
    # Answers
    "DISPOSAL_ANSWER",
    # JSON-RPC
    "JSONRPC_INTERNAL_ERROR",
]

from ask_human_mcp import __version__

# ============================================================================
# Application Identity
# ============================================================================

# Used for directory names, logger names and the console script
APP_NAME: str = "ask-human-mcp"

# Identity marker returned by the discovery probe. Siblings are recognized
# by this exact string, so changing it breaks takeover between versions.
SERVICE_NAME: str = "Ask Human MCP Server"

SERVICE_VERSION: str = __version__

# ============================================================================
# Network
# ============================================================================

# Never bind a public interface: the trust boundary is "same machine, same user"
LOOPBACK_HOST: str = "127.0.0.1"

DEFAULT_PORT: int = 11911

MIN_PORT: int = 1024
MAX_PORT: int = 65535

# Number of pending connections on the listening socket
HTTP_SERVER_BACKLOG: int = 100

# ============================================================================
# HTTP Surface
# ============================================================================

DISCOVERY_PATH: str = "/"
MCP_ENDPOINT: str = "/mcp"
SHUTDOWN_PATH: str = "/shutdown"
QUESTIONS_API_PATH: str = "/api/questions"
STATUS_API_PATH: str = "/api/status"

# ============================================================================
# Tool Defaults (pass-through text, no behavioral effect)
# ============================================================================

DEFAULT_TOOL_NAME: str = "ask-human"
DEFAULT_TOOL_TITLE: str = "Ask Human"
DEFAULT_TOOL_DESCRIPTION: str = "Ask a question to the developer and wait for the answer"
DEFAULT_QUESTION_DESCRIPTION: str = "Question to ask the developer"

# ============================================================================
# Timeouts
# ============================================================================

# Discovery probe against an occupied port (seconds)
PROBE_TIMEOUT_SECONDS: float = 3.0

# POST /shutdown round trip during takeover (seconds)
SHUTDOWN_REQUEST_TIMEOUT_SECONDS: float = 5.0

# How long to wait for a sibling to release the port after it accepted
# a shutdown request, before the single retry bind (seconds)
PORT_RELEASE_TIMEOUT_SECONDS: float = 5.0

# How long to wait for uvicorn to report it is serving (seconds)
SERVER_STARTUP_TIMEOUT_SECONDS: float = 5.0

# How long stop() waits for the server task before cancelling it (seconds)
SERVER_SHUTDOWN_TIMEOUT_SECONDS: float = 5.0

# How long uvicorn lets in-flight requests (long-lived questions) finish
# once shutdown starts. The listening socket is closed before this wait.
SERVER_GRACEFUL_SHUTDOWN_SECONDS: float = 1.0

POLL_INTERVAL_SECONDS: float = 0.05

# CLI requests against the local service (seconds)
DEFAULT_HTTP_TIMEOUT_SECONDS: float = 10.0

# ============================================================================
# Logging
# ============================================================================

# Request bodies longer than this are truncated in request logs
LOG_BODY_MAX_CHARS: int = 500

# ============================================================================
# Answers
# ============================================================================

# Synthetic answer delivered to every waiting caller on disposal
DISPOSAL_ANSWER: str = "shutting down"

# ============================================================================
# JSON-RPC
# ============================================================================

JSONRPC_INTERNAL_ERROR: int = -32603
