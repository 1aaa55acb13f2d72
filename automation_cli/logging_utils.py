"""Logging setup for the automation CLI."""

from __future__ import annotations

import json
import logging
from logging import Logger
from pathlib import Path
from typing import Any, Dict, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "automation_cli"


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    *,
    json_output: bool = False,
    log_file: Optional[Path] = None,
) -> Logger:
    """Configure the package logger for one CLI invocation.

    Args:
        level: Logging level (name or number) applied to the package logger.
        json_output: Emit JSON lines on stderr instead of Rich formatted text.
        log_file: Optional path that additionally receives JSON lines.

    Returns:
        The configured package logger.
    """

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    if json_output:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(StructuredJsonFormatter())
    else:
        console = Console(stderr=True)
        handler = RichHandler(console=console, show_time=False, show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredJsonFormatter())
        logger.addHandler(file_handler)

    logger.debug("Logging initialised", extra={"event": "logging"})
    return logger


class StructuredJsonFormatter(logging.Formatter):
    """Formatter that emits one JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        if hasattr(record, "event"):
            base["event"] = getattr(record, "event")
        if hasattr(record, "data"):
            base["data"] = getattr(record, "data")
        return json.dumps(base, default=str)


__all__ = ["LOGGER_NAME", "StructuredJsonFormatter", "configure_logging"]
