"""Protocol definition for UI sinks.

The rendering surface (panel, sidebar, terminal) is an external
collaborator. The core only pushes notifications into it through this
narrow interface and receives answers back via
LifecycleController.submit_answer() or POST /api/questions/{id}/answer.

Implementations satisfy the protocol structurally (no inheritance needed).
Sink methods are called synchronously from the event loop and must not
block.
"""

from __future__ import annotations

__all__ = [
    "NullSink",
    "QuestionSink",
]

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ask_human_mcp.models import QuestionInfo, ServiceStatus


@runtime_checkable
class QuestionSink(Protocol):
    """Protocol for UI collaborators.

    Required methods:
    - questions_changed(): Full ordered list after every change
    - questions_shown(): Pending set went from 0 to 1
    - questions_hidden(): Pending set went from N to 0
    - status_changed(): Lifecycle status after every transition
    - disposed(): Controller finished teardown
    """

    def questions_changed(self, questions: list["QuestionInfo"]) -> None:
        """Receive the full ordered list of pending questions."""
        ...

    def questions_shown(self) -> None:
        """The first question arrived after an empty period."""
        ...

    def questions_hidden(self) -> None:
        """The last pending question left the set."""
        ...

    def status_changed(self, status: "ServiceStatus") -> None:
        """Receive the current service status."""
        ...

    def disposed(self) -> None:
        """The owning controller was disposed."""
        ...


class NullSink:
    """Sink that ignores every notification."""

    def questions_changed(self, questions: list["QuestionInfo"]) -> None:
        pass

    def questions_shown(self) -> None:
        pass

    def questions_hidden(self) -> None:
        pass

    def status_changed(self, status: "ServiceStatus") -> None:
        pass

    def disposed(self) -> None:
        pass
