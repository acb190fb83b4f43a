"""Config command group for ask-human-mcp CLI."""

from __future__ import annotations

__all__ = ["config"]

import json
from pathlib import Path

import click

from ask_human_mcp.config import get_config_path, get_system_log_path, load_config

from ..styling import style_dim, style_header


def _load_raw_config(config_path: Path) -> dict[str, object]:
    """Load raw JSON from config file without Pydantic defaults."""
    try:
        with open(config_path, encoding="utf-8") as f:
            result = json.load(f)
    except (OSError, json.JSONDecodeError):
        return {}
    return result if isinstance(result, dict) else {}


def _default_marker() -> str:
    return click.style(" (default)", dim=True)


@click.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_show(as_json: bool) -> None:
    """Display the effective configuration.

    Values marked (default) are not in the config file.
    """
    config_file_path = get_config_path()
    loaded_config = load_config(config_file_path)

    if as_json:
        config_dict = loaded_config.model_dump(mode="json")
        config_dict["_computed"] = {
            "config_file": str(config_file_path),
            "system_log": str(get_system_log_path(loaded_config)),
        }
        click.echo(json.dumps(config_dict, indent=2))
        return

    raw_config = _load_raw_config(config_file_path)

    click.echo(f"\nConfig file: {config_file_path}")
    if not config_file_path.exists():
        click.echo(style_dim("  (not found, using defaults)"))
    click.echo()

    click.echo(style_header("Service"))
    for key, value in loaded_config.model_dump(mode="json").items():
        marker = "" if key in raw_config else _default_marker()
        click.echo(f"  {key}: {value}{marker}")
    click.echo()
    click.echo(f"  system log: {get_system_log_path(loaded_config)}")


@config.command("path")
def config_path() -> None:
    """Print the config file path."""
    click.echo(str(get_config_path()))
