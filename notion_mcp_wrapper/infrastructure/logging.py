"""
Centralized Logging

Architectural Intent:
- One place that configures the notion_mcp_wrapper logger tree
- Human-readable or structured JSON output on stderr; stdout stays free for
  command output
- Log level is driven by CLI flags (--verbose, --debug) or the config file
"""

import json
import logging
import sys
from datetime import datetime, UTC

ROOT_LOGGER = "notion_mcp_wrapper"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Wrapper context passed through `extra=`; copied into JSON entries when set.
CONTEXT_FIELDS = ("operation", "tool", "pid", "exit_code")


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def level_from_name(name: str, default: int = logging.WARNING) -> int:
    """Translate a level name from config ("info", "DEBUG", ...) to a logging level."""
    return _LEVELS.get(name.strip().upper(), default) if name else default


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
) -> None:
    """Configure logging for the wrapper.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, etc.)
        json_format: If True, use JSON structured output. Otherwise human-readable.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root.addHandler(handler)
