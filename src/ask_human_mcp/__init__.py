"""ask-human-mcp: MCP tool that routes questions to a human and waits for the answer."""

__version__ = "0.1.0"
