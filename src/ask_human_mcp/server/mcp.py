"""MCP server exposing the ask-human tool.

The tool turns one inbound call into one pending question and returns the
answer as text content once the human resolves it.

This module does not use postponed annotations: FastMCP resolves the tool
signature at registration, and the parameter descriptions are built from a
config object that only exists inside create_mcp_server().
"""

__all__ = ["create_mcp_server"]

from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.constants import SERVICE_NAME, SERVICE_VERSION
from ask_human_mcp.models import ChoiceSpec


def create_mcp_server(broker: QuestionBroker, config: BrokerConfig) -> FastMCP:
    """Create a FastMCP server with the ask-human tool registered.

    Tool name, title and descriptions come from config and are passed
    through unchanged.

    Args:
        broker: Broker that owns the pending questions.
        config: Configuration with the tool strings.

    Returns:
        FastMCP server ready to be mounted as an HTTP app.
    """
    server = FastMCP(name=SERVICE_NAME, version=SERVICE_VERSION)

    async def ask_human(
        question: Annotated[str, Field(description=config.question_description)],
        choice: Annotated[
            ChoiceSpec | None,
            Field(description="Optional suggested answers the developer can pick from"),
        ] = None,
    ) -> str:
        return await broker.ask(question, choice)

    server.tool(
        ask_human,
        name=config.tool_name,
        title=config.tool_title,
        description=config.tool_description,
        output_schema=None,
    )

    return server
