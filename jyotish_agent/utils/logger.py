"""
Logger Utility
==============

Context-aware console logging shared by every component of the agent.

Each module creates its own logger with a context prefix, so a single
request can be followed through the facade, the loop, the tools and the
retrieval store:

    [2025-01-31T10:30:00] [INFO] [Agent] Processing message (42 chars)
    [2025-01-31T10:30:01] [INFO] [Loop] Dispatching 2 tool call(s)
    [2025-01-31T10:30:02] [WARN] [CalculationClient] Service warming up, retrying in 2.0s

Colours are used only when the stream is a terminal and NO_COLOR is unset.

Usage:
    from jyotish_agent.utils.logger import Logger

    logger = Logger("Indexer")
    logger.info("Indexed book", {"file": "bphs.pdf"})

    upload_logger = logger.child("Upload")
    upload_logger.debug("Polling operation")
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Numeric levels, higher is more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def parse_level(value: str | None) -> LogLevel:
    """
    Parse a level name such as "debug" or "WARN".

    Args:
        value: The level name, case-insensitive

    Returns:
        The matching LogLevel, INFO when unknown or empty
    """
    if not value:
        return LogLevel.INFO
    return _LEVEL_NAMES.get(value.strip().upper(), LogLevel.INFO)


def _use_color(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Logger:
    """
    A logger bound to a component name.

    The minimum level is read from LOG_LEVEL when the logger is created.
    Structured data passed as a dict is printed as indented JSON below the
    message line.

    Example:
        logger = Logger("Loop")
        logger.info("Round complete", {"iteration": 2, "calls": 3})
        logger.error("Model call failed", error)
    """

    def __init__(self, context: str = "", level: LogLevel | None = None):
        """
        Create a logger.

        Args:
            context: Prefix shown in brackets on every line (e.g., "Agent")
            level: Explicit minimum level, overrides LOG_LEVEL
        """
        self.context = context
        self._min_level = level if level is not None else parse_level(os.getenv("LOG_LEVEL"))

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is nested under this one ("Agent:Recovery")."""
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context, self._min_level)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._min_level

    def _format(self, level_name: str, message: str, color: str, colored: bool) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""
        if not colored:
            return f"[{timestamp}] [{level_name}] {context_str}{message}"
        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level_name}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if level < self._min_level:
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        colored = _use_color(stream)
        print(self._format(level_name, message, color, colored), file=stream)

        if data:
            data_str = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{data_str}{Colors.RESET}" if colored else data_str, file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Detailed tracing, shown only with LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Normal operational events."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Recovered problems: a failed tool, a skipped document, a retry."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(
        self,
        message: str,
        error: BaseException | None = None,
        data: dict[str, Any] | None = None
    ) -> None:
        """
        Log an error, optionally with the exception that caused it.

        Args:
            message: What failed
            error: The exception, its type and message are added to the data
            data: Extra structured fields
        """
        payload = dict(data) if data else {}
        if error is not None:
            payload["error_type"] = type(error).__name__
            payload["error_message"] = str(error)
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, payload or None)


# Default logger for code that does not belong to a component
logger = Logger("JyotishAgent")
