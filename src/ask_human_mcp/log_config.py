"""Logging configuration.

Owns the application logger configuration (handlers, formatters).
Other modules log through log_event(), or get a child logger via:
    _logger = logging.getLogger(f"{APP_NAME}.<component>")

Python loggers are singletons by name, so all modules share the same
logger tree. This module owns the configuration; others just log.
"""

from __future__ import annotations

__all__ = [
    "ISO8601Formatter",
    "configure_logging",
    "log_event",
    "silence_uvicorn",
]

import json
import logging
from datetime import datetime, timezone

from ask_human_mcp.config import BrokerConfig, get_system_log_path
from ask_human_mcp.constants import APP_NAME
from ask_human_mcp.models import SystemEvent

# Root application logger - initially with stderr only
# File handler added via configure_logging() after config is loaded
_logger = logging.getLogger(APP_NAME)
_logger.setLevel(logging.DEBUG)
_logger.propagate = False

_file_handler_configured: bool = False


class ISO8601Formatter(logging.Formatter):
    """Formatter with ISO 8601 timestamps (UTC) for JSONL output.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2025-12-04T10:48:37.123Z
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSONL with ISO 8601 timestamp."""
        timestamp = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        if isinstance(record.msg, dict):
            log_data = record.msg
        else:
            log_data = {"message": record.getMessage()}

        log_entry = {"time": timestamp, "level": record.levelname, **log_data}
        return json.dumps(log_entry, default=str)


class _ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


# Initialize with stderr-only until config is loaded
if not _logger.handlers:
    _stderr_handler = logging.StreamHandler()
    _stderr_handler.setLevel(logging.INFO)
    _stderr_handler.setFormatter(_ConsoleFormatter())
    _logger.addHandler(_stderr_handler)


def silence_uvicorn() -> None:
    """Suppress uvicorn's own logging (the request middleware logs instead)."""
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)


def configure_logging(config: BrokerConfig) -> None:
    """Configure logging with console and file handlers.

    Sets up:
    - stderr handler: config.log_level and above
    - file handler: WARNING+ only, JSONL at <log_dir>/ask-human-mcp/system.jsonl

    Calling again after the file handler is in place is a no-op.

    Args:
        config: Configuration with log directory and level.
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    for handler in _logger.handlers:
        handler.close()
    _logger.handlers.clear()

    stderr_handler = logging.StreamHandler()
    stderr_handler.setLevel(getattr(logging, config.log_level, logging.INFO))
    stderr_handler.setFormatter(_ConsoleFormatter())
    _logger.addHandler(stderr_handler)

    silence_uvicorn()

    log_path = get_system_log_path(config)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass  # stderr will still work

    try:
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(ISO8601Formatter())
        _logger.addHandler(file_handler)
        _file_handler_configured = True
    except OSError as e:
        log_event(
            logging.WARNING,
            SystemEvent(
                event="file_logging_failed",
                message="Failed to configure file logging",
                error_type=type(e).__name__,
                error_message=str(e),
                details={"log_path": str(log_path)},
            ),
        )


def log_event(level: int, event: SystemEvent) -> None:
    """Log a SystemEvent at the specified level.

    Serializes the event to a dict (excluding None values) and logs it.
    The ISO8601Formatter adds the timestamp during serialization.

    Args:
        level: Logging level (e.g., logging.INFO, logging.WARNING).
        event: The event to log.
    """
    _logger.log(level, event.model_dump(exclude_none=True))
