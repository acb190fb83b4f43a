"""Terminal UI sink for the serve command.

Prints each new question with its id and suggested answers, plus the
command to answer it from another terminal. Status transitions are
printed as one line each.
"""

from __future__ import annotations

__all__ = ["ConsoleSink"]

import click

from ask_human_mcp.constants import APP_NAME
from ask_human_mcp.models import QuestionInfo, ServiceState, ServiceStatus

from .styling import style_dim, style_header, style_label, style_success


class ConsoleSink:
    """QuestionSink that writes to the terminal.

    Questions are only printed once: the sink remembers the ids it has
    already shown and forgets them when they leave the pending set.
    """

    def __init__(self, port: int | None = None) -> None:
        self._port = port
        self._shown: set[str] = set()

    def questions_changed(self, questions: list[QuestionInfo]) -> None:
        current = {q.id for q in questions}
        for question in questions:
            if question.id not in self._shown:
                self._print_question(question)
        self._shown = current

    def questions_shown(self) -> None:
        click.echo()

    def questions_hidden(self) -> None:
        click.echo(style_dim("No pending questions."))

    def status_changed(self, status: ServiceStatus) -> None:
        if status.state == ServiceState.RUNNING:
            click.echo(style_success(status.message or f"Listening on port {status.port}"))
        elif status.message:
            click.echo(style_dim(status.message))

    def disposed(self) -> None:
        click.echo(style_dim("Stopped."))

    def _print_question(self, question: QuestionInfo) -> None:
        click.echo(style_header(f"Question {question.id}"))
        click.echo(question.prompt_text)
        if question.choice_spec is not None:
            label = "Choices (pick one or more)" if question.choice_spec.multiple else "Choices"
            click.echo(style_label(label))
            for choice in question.choice_spec.choices:
                line = f"  - {choice.label}"
                if choice.description:
                    line += style_dim(f"  {choice.description}")
                click.echo(line)
        port_arg = f" --port {self._port}" if self._port is not None else ""
        click.echo(style_dim(f'Answer with: {APP_NAME} answer{port_arg} {question.id} "<text>"'))
        click.echo()
