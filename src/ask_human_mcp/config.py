"""Configuration for ask-human-mcp.

Defines the configuration model for the coordination service.
Config is stored at the OS-appropriate location (platformdirs).

Example usage:
    # Load from config file (defaults if missing or invalid)
    config = load_config()

    # Override the port for one run
    config = config.model_copy(update={"port": 12000})

    # Save configuration
    save_config(config)
"""

from __future__ import annotations

__all__ = [
    "BrokerConfig",
    "DEFAULT_LOG_DIR",
    "get_config_dir",
    "get_config_path",
    "get_log_dir",
    "get_system_log_path",
    "load_config",
    "load_config_strict",
    "save_config",
]

import json
import logging
import os
import sys
from pathlib import Path

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError

from ask_human_mcp.constants import (
    APP_NAME,
    DEFAULT_PORT,
    DEFAULT_QUESTION_DESCRIPTION,
    DEFAULT_TOOL_DESCRIPTION,
    DEFAULT_TOOL_NAME,
    DEFAULT_TOOL_TITLE,
    MAX_PORT,
    MIN_PORT,
)
from ask_human_mcp.exceptions import ConfigurationError

_logger = logging.getLogger(f"{APP_NAME}.config")


def _get_platform_log_dir() -> str:
    """Get platform-appropriate base log directory following OS conventions.

    Returns:
        Platform-specific base log directory path (unexpanded).
        Logs go in <base>/ask-human-mcp/.

    Platform conventions:
        - macOS: ~/Library/Logs
        - Linux: ~/.local/state (XDG_STATE_HOME)
        - Windows: ~/AppData/Local
    """
    if sys.platform == "darwin":
        return "~/Library/Logs"
    elif sys.platform == "win32":
        return "~/AppData/Local"
    else:
        return os.environ.get("XDG_STATE_HOME", "~/.local/state")


DEFAULT_LOG_DIR = _get_platform_log_dir()


class BrokerConfig(BaseModel):
    """Coordination service configuration.

    The tool strings are passed through to the MCP tool definition and have
    no effect on the core.

    Attributes:
        port: Loopback port the service binds (default: 11911).
        tool_name: MCP tool name.
        tool_title: MCP tool title.
        tool_description: MCP tool description shown to the agent.
        question_description: Description of the question parameter.
        log_dir: Base directory for logs. Logs stored in <log_dir>/ask-human-mcp/.
        log_level: Console log level.
    """

    port: int = Field(
        default=DEFAULT_PORT,
        ge=MIN_PORT,
        le=MAX_PORT,
        description="Loopback port for the coordination service",
    )
    tool_name: str = Field(default=DEFAULT_TOOL_NAME, min_length=1)
    tool_title: str = Field(default=DEFAULT_TOOL_TITLE)
    tool_description: str = Field(default=DEFAULT_TOOL_DESCRIPTION)
    question_description: str = Field(default=DEFAULT_QUESTION_DESCRIPTION)
    log_dir: str = Field(
        default=DEFAULT_LOG_DIR,
        min_length=1,
        description="Base directory for logs",
    )
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR)$")

    model_config = {"extra": "ignore"}  # Ignore unknown fields for forward compat


def get_config_dir() -> Path:
    """Get the OS-appropriate configuration directory."""
    return Path(user_config_dir(APP_NAME))


def get_config_path() -> Path:
    """Get the full path to the config file.

    Returns:
        Path to config.json in the config directory.
    """
    return get_config_dir() / "config.json"


def get_log_dir(config: BrokerConfig) -> Path:
    """Get log directory (<log_dir>/ask-human-mcp/)."""
    return Path(config.log_dir).expanduser() / APP_NAME


def get_system_log_path(config: BrokerConfig) -> Path:
    """Get full path to the system log file (<log_dir>/ask-human-mcp/system.jsonl)."""
    return get_log_dir(config) / "system.jsonl"


def load_config(config_path: Path | None = None) -> BrokerConfig:
    """Load configuration from file.

    If the config file doesn't exist, returns default configuration.
    Invalid JSON or validation errors return default config with a warning.

    Args:
        config_path: Override for the config file location.

    Returns:
        BrokerConfig: Loaded or default configuration.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return BrokerConfig()

    try:
        with config_path.open(encoding="utf-8") as f:
            data = json.load(f)
        return BrokerConfig.model_validate(data)
    except json.JSONDecodeError as e:
        _logger.warning(
            {
                "event": "config_invalid_json",
                "message": f"Invalid JSON in config, using defaults: {e}",
                "error_type": type(e).__name__,
                "error_message": str(e),
                "details": {"config_path": str(config_path)},
            }
        )
        return BrokerConfig()
    except ValidationError as e:
        _logger.warning(
            {
                "event": "config_validation_failed",
                "message": f"Invalid config values, using defaults: {e}",
                "error_type": type(e).__name__,
                "error_message": str(e),
                "details": {"config_path": str(config_path)},
            }
        )
        return BrokerConfig()
    except OSError as e:
        _logger.warning(
            {
                "event": "config_read_failed",
                "message": f"Failed to read config file, using defaults: {e}",
                "error_type": type(e).__name__,
                "error_message": str(e),
                "details": {"config_path": str(config_path)},
            }
        )
        return BrokerConfig()


def load_config_strict(config_path: Path | None = None) -> BrokerConfig:
    """Load configuration, raising on any error.

    Unlike load_config(), a missing file, invalid JSON or failed validation
    raises ConfigurationError.

    Args:
        config_path: Override for the config file location.

    Returns:
        BrokerConfig: Validated configuration.

    Raises:
        ConfigurationError: If config is missing or invalid.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_path}: {e}") from e

    try:
        return BrokerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {config_path}: {e}") from e


def save_config(config: BrokerConfig, config_path: Path | None = None) -> Path:
    """Save configuration to file.

    Creates the config directory if it doesn't exist.
    Sets owner-only file permissions (0600).

    Args:
        config: Configuration to save.
        config_path: Override for the config file location.

    Returns:
        Path the configuration was written to.

    Raises:
        OSError: If unable to write config file.
    """
    config_path = config_path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with config_path.open("w", encoding="utf-8") as f:
        json.dump(config.model_dump(), f, indent=2)
        f.write("\n")

    if sys.platform != "win32":
        config_path.chmod(0o600)

    return config_path
