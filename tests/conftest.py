"""Shared fixtures for ask-human-mcp tests."""

from __future__ import annotations

import socket
from pathlib import Path

import pytest

from ask_human_mcp.broker import QuestionBroker
from ask_human_mcp.config import BrokerConfig
from ask_human_mcp.models import QuestionInfo, ServiceStatus


class RecordingSink:
    """QuestionSink that records every notification in order."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.snapshots: list[list[QuestionInfo]] = []
        self.statuses: list[ServiceStatus] = []
        self.disposed_count = 0

    def questions_changed(self, questions: list[QuestionInfo]) -> None:
        self.events.append("changed")
        self.snapshots.append(list(questions))

    def questions_shown(self) -> None:
        self.events.append("shown")

    def questions_hidden(self) -> None:
        self.events.append("hidden")

    def status_changed(self, status: ServiceStatus) -> None:
        self.events.append("status")
        self.statuses.append(status)

    def disposed(self) -> None:
        self.events.append("disposed")
        self.disposed_count += 1


@pytest.fixture
def free_port() -> int:
    """Find an unused loopback port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port: int = sock.getsockname()[1]
    return port


@pytest.fixture
def sink() -> RecordingSink:
    """Create a fresh recording sink."""
    return RecordingSink()


@pytest.fixture
def broker(sink: RecordingSink) -> QuestionBroker:
    """Create a broker wired to the recording sink."""
    return QuestionBroker(sink)


@pytest.fixture
def config(free_port: int, tmp_path: Path) -> BrokerConfig:
    """Config on a free port with logs under tmp_path."""
    return BrokerConfig(port=free_port, log_dir=str(tmp_path / "logs"))
