"""HTTP side of ask-human-mcp.

Exports:
- CoordinationService: binds the loopback port and serves the app
- create_service_app: FastAPI app factory (discovery, shutdown, question API, MCP)
- create_mcp_server: FastMCP server with the ask-human tool
"""

from .app import create_service_app
from .mcp import create_mcp_server
from .service import CoordinationService

__all__ = [
    "CoordinationService",
    "create_mcp_server",
    "create_service_app",
]
