"""Structured logging for the ABR selection service.

Every record becomes one key=value line. Decision context passed through
``extra`` (session, chunk, latency) is appended when present.
"""

import json
import logging
import sys
from typing import Any, Optional

from service.config import get_config

# Optional record attributes emitted after the standard fields
CONTEXT_FIELDS = ("session_id", "chunk_index", "latency_ms")

# Loggers that follow the configured level
PROJECT_LOGGERS = ("abr", "service")


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() or ch in '="' for ch in text):
        return json.dumps(text)
    return text


class StructuredFormatter(logging.Formatter):
    """key=value formatter; values with spaces are JSON-quoted."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as key=value pairs.

        Args:
            record: Log record to format

        Returns:
            Single-line key=value string
        """
        fields: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                fields[name] = value

        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        return " ".join(f"{key}={_format_value(value)}" for key, value in fields.items())


def setup_logging(level: Optional[str] = None) -> None:
    """Route all logging to stdout through the structured formatter.

    Args:
        level: Level name overriding ``ABR_LOG_LEVEL``
    """
    level_name = level or get_config().log_level
    numeric_level = getattr(logging, level_name)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(StructuredFormatter(datefmt="%Y-%m-%dT%H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    for name in PROJECT_LOGGERS:
        logging.getLogger(name).setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
