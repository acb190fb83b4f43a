"""Tests for CoordinationService on real loopback sockets."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator
from unittest.mock import patch

import httpx
import pytest
from fastmcp import Client

from ask_human_mcp import __version__
from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.constants import MCP_ENDPOINT
from ask_human_mcp.exceptions import PortInUseError, ServiceStartError
from ask_human_mcp.models import ServiceIdentity
from ask_human_mcp.server.service import CoordinationService
from ask_human_mcp.utils import is_port_in_use, wait_for_condition

_MCP_HEADERS = {"Accept": "application/json, text/event-stream", "Content-Type": "application/json"}


@pytest.fixture
async def service(broker: QuestionBroker, config: BrokerConfig) -> AsyncIterator[CoordinationService]:
    """Create a started service, stopped after the test."""
    service = CoordinationService(broker, config)
    await service.start()
    try:
        yield service
    finally:
        await service.stop()


class TestStartStop:
    """Tests for start() and stop()."""

    async def test_discovery_on_fresh_service(self, service: CoordinationService) -> None:
        """GET / returns running status and the /mcp endpoint."""
        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{service.port}") as client:
            response = await client.get("/")

        identity = ServiceIdentity.model_validate(response.json())
        assert identity.endpoint == "/mcp"
        assert identity.status == "running"
        assert identity.instance_id == service.instance_id

    async def test_discovery_reports_package_version(self, service: CoordinationService) -> None:
        """The identity carries the installed package version."""
        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{service.port}") as client:
            response = await client.get("/")

        assert response.json()["version"] == __version__

    async def test_stop_releases_port(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """After stop() the port can be bound again."""
        service = CoordinationService(broker, config)
        await service.start()
        assert service.is_running

        await service.stop()

        assert not service.is_running
        assert not is_port_in_use(config.port)

    async def test_restart_keeps_instance_id(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """A stopped service can start again with the same identity."""
        service = CoordinationService(broker, config)
        instance_id = service.instance_id

        await service.start()
        await service.stop()
        await service.start()
        try:
            assert service.is_running
            assert service.identity.instance_id == instance_id
        finally:
            await service.stop()

    async def test_stop_is_idempotent(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """Stopping a stopped service is a no-op."""
        service = CoordinationService(broker, config)

        await service.stop()
        await service.stop()

        assert not service.is_running

    async def test_occupied_port_raises(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """A busy port surfaces as PortInUseError."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
            occupant.bind(("127.0.0.1", config.port))
            occupant.listen()

            service = CoordinationService(broker, config)
            with pytest.raises(PortInUseError):
                await service.start()

        assert not service.is_running

    async def test_invalid_port_raises_start_error(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """Non-EADDRINUSE bind failures are ServiceStartError."""
        service = CoordinationService(broker, config, port=70000)

        with pytest.raises(ServiceStartError):
            await service.start()

    async def test_stop_keeps_pending_questions(self, service: CoordinationService, broker: QuestionBroker) -> None:
        """Stopping the network side does not cancel questions."""
        broker.create_question("Still waiting")

        await service.stop()

        assert broker.pending_count == 1


class TestShutdownRoute:
    """Tests for POST /shutdown on a real server."""

    async def test_shutdown_without_owner_stops_service(self, service: CoordinationService) -> None:
        """With no owner callback the service stops itself."""
        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{service.port}") as client:
            response = await client.post("/shutdown")

        assert response.json()["success"] is True
        assert await wait_for_condition(lambda: not service.is_running, timeout=5.0)
        assert await wait_for_condition(lambda: not is_port_in_use(service.port), timeout=5.0)


class TestMcpOverHttp:
    """End-to-end MCP call over the streamable HTTP endpoint."""

    async def test_question_answered_over_http(self, service: CoordinationService, broker: QuestionBroker) -> None:
        """The answer submitted through the broker comes back as text content."""
        async with Client(f"http://127.0.0.1:{service.port}/mcp") as client:
            call = asyncio.create_task(
                client.call_tool(
                    "ask-human",
                    {"question": "Ship it?", "choice": {"choices": [{"label": "A"}, {"label": "B"}]}},
                )
            )
            assert await wait_for_condition(lambda: broker.pending_count == 1, timeout=5.0)

            question = broker.latest()
            assert question is not None
            broker.resolve(question.id, "A")

            result = await asyncio.wait_for(call, timeout=5.0)

        assert result.content[0].text == "A"

    async def test_configured_tool_served_over_http(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """A service built from non-default tool strings starts and serves them."""
        config = config.model_copy(
            update={"tool_name": "ask-dev", "question_description": "What to ask the developer"}
        )
        service = CoordinationService(broker, config)
        await service.start()
        try:
            async with Client(f"http://127.0.0.1:{service.port}/mcp") as client:
                tools = await client.list_tools()
                call = asyncio.create_task(client.call_tool("ask-dev", {"question": "Merge?"}))
                assert await wait_for_condition(lambda: broker.pending_count == 1, timeout=5.0)

                question = broker.latest()
                assert question is not None
                broker.resolve(question.id, "yes")
                result = await asyncio.wait_for(call, timeout=5.0)
        finally:
            await service.stop()

        assert [tool.name for tool in tools] == ["ask-dev"]
        assert tools[0].inputSchema["properties"]["question"]["description"] == "What to ask the developer"
        assert result.content[0].text == "yes"

    async def test_malformed_json_gets_jsonrpc_error(self, service: CoordinationService) -> None:
        """A broken body on /mcp is a JSON-RPC parse error and the service keeps serving."""
        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{service.port}", timeout=5.0) as client:
            response = await client.post(MCP_ENDPOINT, content=b"{not json", headers=_MCP_HEADERS)
            discovery = await client.get("/")

        assert response.status_code == 400
        body = response.json()
        assert body["jsonrpc"] == "2.0"
        assert body["error"]["code"] == -32700
        assert discovery.status_code == 200
        assert service.is_running

    async def test_client_disconnect_leaves_question_pending(
        self, service: CoordinationService, broker: QuestionBroker
    ) -> None:
        """Dropping the HTTP connection mid-question keeps the question answerable."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {"name": "ask-human", "arguments": {"question": "Anyone there?"}},
        }

        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{service.port}", timeout=10.0) as client:
            call = asyncio.create_task(client.post(MCP_ENDPOINT, json=payload, headers=_MCP_HEADERS))
            assert await wait_for_condition(lambda: broker.pending_count == 1, timeout=5.0)

            call.cancel()
            with pytest.raises(asyncio.CancelledError):
                await call

        await asyncio.sleep(0.2)
        assert broker.pending_count == 1
        assert service.is_running

        question = broker.latest()
        assert question is not None
        assert broker.resolve(question.id, "late answer") is True
        assert broker.pending_count == 0


class TestStartFailure:
    """Failures after the bind release the socket."""

    async def test_app_build_failure_releases_port(self, broker: QuestionBroker, config: BrokerConfig) -> None:
        """An error building the app surfaces as ServiceStartError and frees the port."""
        service = CoordinationService(broker, config)

        with (
            patch("ask_human_mcp.server.service.create_service_app", side_effect=RuntimeError("broken app")),
            pytest.raises(ServiceStartError, match="broken app"),
        ):
            await service.start()

        assert not service.is_running
        assert not is_port_in_use(config.port)

        await service.start()
        try:
            assert service.is_running
        finally:
            await service.stop()
