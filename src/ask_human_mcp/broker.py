"""Pending question store with async wait capability.

QuestionBroker owns the set of pending questions. Each PendingQuestion
wraps a QuestionInfo with a single-shot future that the broker completes
exactly once, either with the human's answer (resolve) or with a synthetic
answer on teardown (cancel_all).

The typical lifecycle is:
1. ask() registers a PendingQuestion and notifies the UI sink
2. ask() awaits the continuation (no timeout, the human sets the pace)
3. UI calls resolve() with the answer
4. ask() returns the answer to the caller

Everything runs on one event loop. Mutations of the pending dict happen in
synchronous sections only, so no lock is needed.
"""

from __future__ import annotations

__all__ = [
    "PendingQuestion",
    "QuestionBroker",
]

import asyncio
import logging
import uuid
from datetime import UTC, datetime

from ask_human_mcp.log_config import log_event
from ask_human_mcp.models import ChoiceSpec, QuestionInfo, SystemEvent
from ask_human_mcp.sinks import NullSink, QuestionSink

# Prompt text longer than this is shortened in log messages
_LOG_PROMPT_MAX_CHARS = 120


def _shorten(text: str, limit: int = _LOG_PROMPT_MAX_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class PendingQuestion:
    """Internal pending question with async wait capability.

    Wraps QuestionInfo with the future the caller waits on. The future is
    never exposed outside the broker.

    Attributes:
        info: The immutable question information.
    """

    def __init__(self, info: QuestionInfo) -> None:
        """Initialize with question info.

        Must be called from a running event loop.

        Args:
            info: The immutable question information.
        """
        self.info = info
        self._answer: asyncio.Future[str] = asyncio.get_running_loop().create_future()

    @property
    def id(self) -> str:
        """Get the question ID."""
        return self.info.id

    @property
    def done(self) -> bool:
        """Whether the continuation has been completed."""
        return self._answer.done()

    def resolve(self, answer: str) -> bool:
        """Complete the continuation with an answer.

        Args:
            answer: Answer text delivered to the waiting caller.

        Returns:
            True if this call completed the continuation, False if it was
            already completed.
        """
        if self._answer.done():
            return False
        self._answer.set_result(answer)
        return True

    async def wait(self) -> str:
        """Wait for the answer.

        The future is shielded: cancelling the waiting task (for example
        because the HTTP client disconnected) leaves the question resolvable.

        Returns:
            The answer text.
        """
        return await asyncio.shield(self._answer)


class QuestionBroker:
    """Holds pending questions and hands answers back to waiting callers.

    Insertion order of the pending dict is presentation order. The sink
    receives the full list after every change, plus edge notifications
    when the set becomes non-empty (0 -> 1) or empty (N -> 0).

    Usage:
        broker = QuestionBroker(sink)
        answer = await broker.ask("Deploy now?")      # in the tool handler
        broker.resolve(question_id, "yes")            # from the UI
        broker.cancel_all("shutting down")            # on disposal
    """

    def __init__(self, sink: QuestionSink | None = None) -> None:
        """Initialize with an optional UI sink.

        Args:
            sink: Receiver of question notifications. Defaults to NullSink.
        """
        self._sink: QuestionSink = sink or NullSink()
        self._pending: dict[str, PendingQuestion] = {}

    @property
    def sink(self) -> QuestionSink:
        """Get the UI sink."""
        return self._sink

    @sink.setter
    def sink(self, sink: QuestionSink) -> None:
        self._sink = sink

    @property
    def pending_count(self) -> int:
        """Number of questions waiting for an answer."""
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._pending

    # =========================================================================
    # Question lifecycle
    # =========================================================================

    def create_question(self, prompt_text: str, choice_spec: ChoiceSpec | None = None) -> PendingQuestion:
        """Register a new pending question.

        Args:
            prompt_text: Question text as received.
            choice_spec: Optional suggested answers.

        Returns:
            PendingQuestion that can be waited on.
        """
        info = QuestionInfo(
            id=uuid.uuid4().hex,
            prompt_text=prompt_text,
            choice_spec=choice_spec,
            created_at=datetime.now(UTC),
        )
        question = PendingQuestion(info)

        was_empty = not self._pending
        self._pending[question.id] = question

        log_event(
            logging.INFO,
            SystemEvent(
                event="question_received",
                message=f"Question received: {_shorten(prompt_text)}",
                question_id=question.id,
                details={"has_choices": choice_spec is not None},
            ),
        )

        self._notify_changed(shown=was_empty)
        return question

    async def ask(self, prompt_text: str, choice_spec: ChoiceSpec | None = None) -> str:
        """Ask a question and wait until it is answered or cancelled.

        If the calling task is cancelled, the question stays pending and
        CancelledError propagates to the caller.

        Args:
            prompt_text: Question text as received.
            choice_spec: Optional suggested answers.

        Returns:
            The answer text, or the cancel_all() reason on teardown.
        """
        question = self.create_question(prompt_text, choice_spec)
        return await question.wait()

    def resolve(self, question_id: str, answer_text: str) -> bool:
        """Resolve a pending question.

        Unknown ids (already resolved, cancelled, never created) are a
        silent no-op: duplicate or late UI messages are expected.

        Args:
            question_id: The pending question ID.
            answer_text: Answer delivered to the waiting caller.

        Returns:
            True if the question was found and resolved, False otherwise.
        """
        question = self._pending.pop(question_id, None)
        if question is None:
            log_event(
                logging.DEBUG,
                SystemEvent(
                    event="question_unknown",
                    message=f"Ignoring answer for unknown question {question_id}",
                    question_id=question_id,
                ),
            )
            return False

        question.resolve(answer_text)

        log_event(
            logging.INFO,
            SystemEvent(
                event="question_resolved",
                message=f"Answer sent: {_shorten(answer_text)}",
                question_id=question_id,
            ),
        )

        self._notify_changed(hidden=not self._pending)
        return True

    def cancel_all(self, reason_text: str) -> int:
        """Complete every pending question with a synthetic answer.

        Used on teardown so no caller waits forever. Clears the set.

        Args:
            reason_text: Answer delivered to every waiting caller.

        Returns:
            Number of questions cancelled.
        """
        if not self._pending:
            return 0

        questions = list(self._pending.values())
        self._pending.clear()
        for question in questions:
            question.resolve(reason_text)

        log_event(
            logging.INFO,
            SystemEvent(
                event="questions_cancelled",
                message=f"Cancelled {len(questions)} pending question(s): {reason_text}",
                details={"count": len(questions), "reason": reason_text},
            ),
        )

        self._notify_changed(hidden=True)
        return len(questions)

    # =========================================================================
    # Read-only views
    # =========================================================================

    def snapshot(self) -> list[QuestionInfo]:
        """Get all pending questions in presentation order."""
        return [question.info for question in self._pending.values()]

    def get(self, question_id: str) -> QuestionInfo | None:
        """Get a single pending question by ID."""
        question = self._pending.get(question_id)
        return question.info if question else None

    def latest(self) -> QuestionInfo | None:
        """Get the most recently asked pending question."""
        if not self._pending:
            return None
        return next(reversed(self._pending.values())).info

    # =========================================================================
    # Sink notifications
    # =========================================================================

    def _notify_changed(self, *, shown: bool = False, hidden: bool = False) -> None:
        """Push the current list (and edge events) to the sink.

        A failing sink must not break resolution, so errors are logged
        and dropped.
        """
        try:
            if shown:
                self._sink.questions_shown()
            self._sink.questions_changed(self.snapshot())
            if hidden:
                self._sink.questions_hidden()
        except Exception as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="sink_notification_failed",
                    message=f"UI sink raised while receiving questions: {e}",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
