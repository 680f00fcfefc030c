"""Logging configuration for mcp-toolset.

Library modules only call ``get_logger``; applications opt in to console or
file output with ``setup_logging``. Records logged with ``extra={"peer": ...}``
carry the peer name into both formatters.
"""

import json
import logging
import sys
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogEntry(BaseModel):
    """Structured log entry.

    Attributes:
        timestamp: Log timestamp
        level: Log level
        message: Log message
        logger: Logger name
        peer: Peer the record is about, if any
        context: Additional context
    """

    timestamp: str
    level: str
    message: str
    logger: str
    peer: str | None = None
    context: dict[str, Any] = {}


class StructuredFormatter(logging.Formatter):
    """Formatter for structured log output.

    Outputs logs in JSON format for parsing and analysis.
    """

    def __init__(self, format_type: str = "json") -> None:
        """Initialize the structured formatter.

        Args:
            format_type: Output format ("json" or "text")
        """
        super().__init__()
        self.format_type = format_type

    def format(self, record: logging.LogRecord) -> str:
        log_entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created).isoformat(),
            level=record.levelname,
            message=record.getMessage(),
            logger=record.name,
            peer=getattr(record, "peer", None),
            context={
                "function": record.funcName,
                "line": record.lineno,
                "module": record.module,
            },
        )

        if record.exc_info:
            log_entry.context["exception"] = self.formatException(record.exc_info)

        if self.format_type == "json":
            return json.dumps(log_entry.model_dump(exclude_none=True))

        prefix = f"[{log_entry.peer}] " if log_entry.peer else ""
        return f"{log_entry.timestamp} [{log_entry.level}] {log_entry.logger}: {prefix}{log_entry.message}"


class ColoredFormatter(logging.Formatter):
    """Colored console formatter using ANSI color codes."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, "")
        reset_color = self.COLORS["RESET"]

        level_name = f"{level_color}{record.levelname}{reset_color}"
        peer = getattr(record, "peer", None)
        prefix = f"[{peer}] " if peer else ""
        return f"[{level_name}] {record.name}: {prefix}{record.getMessage()}"


def setup_logging(
    level: str | LogLevel = "INFO",
    format_type: str = "text",
    use_colors: bool = True,
    log_file: str | None = None,
) -> None:
    """Set up logging for the ``mcp_toolset`` logger hierarchy.

    Console output goes to stderr so that it never mixes with a stdio
    protocol channel owned by the host process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ("json", "text")
        use_colors: Whether to use colors in console output
        log_file: Optional file to write logs to
    """
    package_logger = logging.getLogger("mcp_toolset")
    package_logger.setLevel(getattr(logging, level.upper() if isinstance(level, str) else level.value))
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)

    if use_colors and format_type == "text":
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(StructuredFormatter(format_type=format_type))

    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(format_type=format_type))
        package_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (usually __name__ of the module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
