"""Question commands for ask-human-mcp CLI.

List the pending questions of a running instance and answer them.
"""

from __future__ import annotations

__all__ = ["answer", "questions"]

import json
import sys

import click

from ask_human_mcp.constants import QUESTIONS_API_PATH

from ..api_client import api_request
from ..options import port_option, resolve_port
from ..styling import style_dim, style_label, style_success, style_warning


@click.command()
@port_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def questions(port: int | None, as_json: bool) -> None:
    """List pending questions, oldest first."""
    effective_port = resolve_port(port)
    response = api_request("GET", QUESTIONS_API_PATH, port=effective_port)
    pending = response if isinstance(response, list) else []

    if as_json:
        click.echo(json.dumps(pending, indent=2))
        return

    if not pending:
        click.echo(style_dim("No pending questions."))
        return

    click.echo(style_label("Pending questions") + f" {len(pending)}")
    click.echo()
    for item in pending:
        click.echo(f"  {click.style(item['id'], bold=True)}  {item['prompt_text']}")
        choice_spec = item.get("choice_spec")
        if choice_spec:
            labels = ", ".join(choice["label"] for choice in choice_spec.get("choices", []))
            click.echo(style_dim(f"      choices: {labels}"))


@click.command()
@port_option
@click.argument("question_id")
@click.argument("answer_text", metavar="ANSWER")
def answer(port: int | None, question_id: str, answer_text: str) -> None:
    """Answer a pending question.

    Examples:
        ask-human-mcp answer 3f2c... "Yes, go ahead"
    """
    effective_port = resolve_port(port)
    response = api_request(
        "POST",
        f"{QUESTIONS_API_PATH}/{question_id}/answer",
        port=effective_port,
        json_data={"answer": answer_text},
    )

    if isinstance(response, dict) and response.get("resolved"):
        click.echo(style_success(f"Answer sent for {question_id}"))
        return

    click.echo(style_warning(f"No pending question with id {question_id}"))
    sys.exit(1)
