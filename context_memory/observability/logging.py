"""
Structured logging for the memory store.

Provides a formatter with JSON or text output. Modules log through
the standard ``logging`` module; structured fields travel in the
``attributes`` extra:

    logger.info("Loaded snapshot", extra={"attributes": {"entries": 12}})
"""

import json
import logging
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, TextIO, Union


ROOT_LOGGER_NAME = "context_memory"


class LogLevel(str, Enum):
    """Log levels matching Python logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level."""
        return getattr(logging, self.value)


class StructuredFormatter(logging.Formatter):
    """
    Formatter for the package's log output.

    JSON output is one object per line with ``timestamp``, ``level``,
    ``message`` and ``logger`` keys, plus ``attributes`` and
    ``exception`` when present. Text output puts the attributes in
    brackets after the message.
    """

    def __init__(self, json_output: bool = True):
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        """Format log record."""
        timestamp = datetime.fromtimestamp(record.created)
        attributes: Dict[str, Any] = getattr(record, "attributes", None) or {}
        exception: Optional[str] = (
            self.formatException(record.exc_info) if record.exc_info else None
        )

        if self.json_output:
            payload = {
                "timestamp": timestamp.isoformat(),
                "level": record.levelname,
                "message": record.getMessage(),
                "logger": record.name,
            }
            if attributes:
                payload["attributes"] = attributes
            if exception:
                payload["exception"] = exception
            return json.dumps(payload, default=str)

        text = " ".join([
            timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
            f"[{record.levelname}]",
            record.name,
            "-",
            record.getMessage(),
        ])
        if attributes:
            text += " [" + " ".join(f"{k}={v}" for k, v in attributes.items()) + "]"
        if exception:
            text += f"\n{exception}"
        return text


def configure_logging(
    level: Union[LogLevel, str] = LogLevel.INFO,
    json_output: bool = True,
    output: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Configure and return the package's root logger.

    Replaces any handler installed by a previous call, so it is safe
    to call more than once.

    Args:
        level: Log level
        json_output: Whether to output JSON
        output: Output stream, stderr by default

    Returns:
        The configured ``context_memory`` logger
    """
    if not isinstance(level, LogLevel):
        level = LogLevel(str(level).upper())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.to_python_level())

    for handler in list(logger.handlers):
        if getattr(handler, "_context_memory_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(StructuredFormatter(json_output))
    handler._context_memory_handler = True
    logger.addHandler(handler)

    return logger
