"""Tests for the ask-human MCP tool (in-memory FastMCP client)."""

from __future__ import annotations

import asyncio

from fastmcp import Client

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.server.mcp import create_mcp_server
from ask_human_mcp.utils import wait_for_condition


class TestAskHumanTool:
    """Tests for tool registration and calls."""

    async def test_tool_uses_configured_strings(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """Name and descriptions come from config."""
        config = config.model_copy(
            update={
                "tool_name": "ask-dev",
                "tool_description": "Ask the dev",
                "question_description": "What to ask",
            }
        )
        server = create_mcp_server(broker, config)

        async with Client(server) as client:
            tools = await client.list_tools()

        assert [tool.name for tool in tools] == ["ask-dev"]
        tool = tools[0]
        assert tool.description == "Ask the dev"
        assert tool.inputSchema["properties"]["question"]["description"] == "What to ask"
        assert tool.inputSchema["required"] == ["question"]

    async def test_choice_question_answered(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """A question with choices returns the picked label as text."""
        server = create_mcp_server(broker, config)

        async with Client(server) as client:
            call = asyncio.create_task(
                client.call_tool(
                    "ask-human",
                    {
                        "question": "Which option?",
                        "choice": {"choices": [{"label": "A"}, {"label": "B", "description": "other"}]},
                    },
                )
            )
            assert await wait_for_condition(lambda: broker.pending_count == 1, timeout=5.0)

            info = broker.latest()
            assert info is not None
            assert info.prompt_text == "Which option?"
            assert info.choice_spec is not None
            assert [c.label for c in info.choice_spec.choices] == ["A", "B"]

            broker.resolve(info.id, "A")
            result = await asyncio.wait_for(call, timeout=5.0)

        assert result.is_error is False
        assert result.content[0].type == "text"
        assert result.content[0].text == "A"

    async def test_plain_question_receives_disposal_answer(
        self, broker: QuestionBroker, config: BrokerConfig
    ) -> None:
        """cancel_all() answers an in-flight call with the reason."""
        server = create_mcp_server(broker, config)

        async with Client(server) as client:
            call = asyncio.create_task(client.call_tool("ask-human", {"question": "Still there?"}))
            assert await wait_for_condition(lambda: broker.pending_count == 1, timeout=5.0)

            broker.cancel_all("shutting down")
            result = await asyncio.wait_for(call, timeout=5.0)

        assert result.content[0].text == "shutting down"
