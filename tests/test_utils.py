"""Tests for socket and polling helpers."""

from __future__ import annotations

import asyncio
import socket

import pytest

from ask_human_mcp.exceptions import PortInUseError
from ask_human_mcp.utils import bind_loopback_socket, is_port_in_use, wait_for_condition, wait_for_port_release


class TestBindLoopbackSocket:
    """Tests for bind_loopback_socket()."""

    def test_binds_free_port(self, free_port: int) -> None:
        """Binding a free port returns a listening socket."""
        sock = bind_loopback_socket(free_port)
        try:
            assert sock.getsockname() == ("127.0.0.1", free_port)
            assert is_port_in_use(free_port) is True
        finally:
            sock.close()

    def test_occupied_port_raises_port_in_use(self, free_port: int) -> None:
        """A listening socket on the port causes PortInUseError."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
            occupant.bind(("127.0.0.1", free_port))
            occupant.listen()

            with pytest.raises(PortInUseError) as exc_info:
                bind_loopback_socket(free_port)

        assert exc_info.value.port == free_port
        assert str(free_port) in str(exc_info.value)


class TestIsPortInUse:
    """Tests for is_port_in_use()."""

    def test_free_port(self, free_port: int) -> None:
        """Nothing listening means not in use."""
        assert is_port_in_use(free_port) is False


class TestWaitForCondition:
    """Tests for wait_for_condition()."""

    async def test_returns_true_when_condition_met(self) -> None:
        """Returns as soon as the condition holds."""
        calls = []

        def condition() -> bool:
            calls.append(1)
            return len(calls) >= 3

        assert await wait_for_condition(condition, timeout=1.0, interval=0.001) is True
        assert len(calls) == 3

    async def test_returns_false_on_timeout(self) -> None:
        """Returns False if the condition never holds."""
        assert await wait_for_condition(lambda: False, timeout=0.05, interval=0.01) is False


class TestWaitForPortRelease:
    """Tests for wait_for_port_release()."""

    async def test_free_port_is_released(self, free_port: int) -> None:
        """Returns True at once when nothing listens."""
        assert await wait_for_port_release(free_port, timeout=1.0) is True

    async def test_held_port_times_out(self, free_port: int) -> None:
        """Returns False while a listener keeps the port."""
        sock = bind_loopback_socket(free_port)
        try:
            assert await wait_for_port_release(free_port, timeout=0.05, interval=0.01) is False
        finally:
            sock.close()

    async def test_loop_keeps_running_while_polling(self, free_port: int) -> None:
        """Other tasks make progress while the port is checked."""
        sock = bind_loopback_socket(free_port)
        ticks: list[int] = []

        async def ticker() -> None:
            while True:
                ticks.append(1)
                await asyncio.sleep(0.005)

        task = asyncio.create_task(ticker())
        try:
            await wait_for_port_release(free_port, timeout=0.1, interval=0.01)
        finally:
            task.cancel()
            sock.close()

        assert len(ticks) > 1
