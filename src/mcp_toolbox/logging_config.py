"""Logging infrastructure for tool definition and dispatch.

Provides configurable levels, tool-call tracking and a shared format
across all modules.
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

# Name of the tool being dispatched, for per-call correlation
tool_name_ctx: ContextVar[str | None] = ContextVar("tool_name", default=None)


def get_tool_name() -> str | None:
    """Get the name of the tool currently being dispatched, if any."""
    return tool_name_ctx.get()


class _ToolNameFilter(logging.Filter):
    """Give every record a ``tool`` attribute so the format never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tool"):
            record.tool = get_tool_name() or "-"
        return True


def setup_logging(
    level: int | str | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """Configure logging for the application.

    Args:
        level: Logging level (e.g., 'DEBUG', 'INFO', 'ERROR').
               Defaults to LOGGING_LEVEL env var or 'INFO'.
        format_string: Custom log format string. Defaults to a structured format.

    Returns:
        The root logger configured for the application.
    """
    if level is None:
        level = os.environ.get("LOGGING_LEVEL", "INFO")

    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] [%(name)s] [tool=%(tool)s] %(message)s"

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    # stdout carries the protocol for stdio servers, so logs go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    console_handler.addFilter(_ToolNameFilter())
    logger.addHandler(console_handler)

    # Disable noisy third-party loggers
    for noisy in ("asyncio", "httpx", "mcp.server.lowlevel.server"):
        logging.getLogger(noisy).setLevel("WARNING")

    return logger


class ToolLoggerAdapter(logging.LoggerAdapter[Any]):
    """Logger adapter that automatically adds the current tool name to log records."""

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        extra = kwargs.get("extra")
        if extra is None:
            extra = {}
        tool_name = get_tool_name()
        if tool_name is not None:
            extra["tool"] = tool_name
        kwargs["extra"] = extra
        return msg, kwargs


def create_logger(name: str) -> ToolLoggerAdapter:
    """Create and return a logger for a module.

    Args:
        name: The module name (typically __name__).

    Returns:
        A configured logger instance.
    """
    return ToolLoggerAdapter(logging.getLogger(name), {})
