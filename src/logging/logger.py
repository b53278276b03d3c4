# src/logging/logger.py — v1
"""Formatters and handler setup for the ``codebrief`` logger tree.

Modules log through ``logging.getLogger(__name__)``; setup_logging()
attaches handlers once, at the ``codebrief`` root. Run, round and wave
identifiers come from codebrief.logging.context, so concurrent round
tasks each stamp their own records.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from codebrief.logging.context import get_context

ROOT_LOGGER = "codebrief"


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, suitable for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line output for terminals, round and wave shown inline."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        prefix = f"{_timestamp(record):%Y-%m-%d %H:%M:%S} [{record.levelname:8s}] {record.name}"
        if ctx.round_id is not None:
            prefix += f" [round {ctx.round_id}]"
        if ctx.wave is not None:
            prefix += f" (wave {ctx.wave})"
        line = f"{prefix}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """Attach console and optional file handlers to the codebrief logger.

    Calling it again replaces the previous handlers.

    Args:
        level: Log level name; unknown names fall back to INFO.
        log_format: "json" or "text".
        log_file: Rotating log file path, or None for stderr only.
        rotation: Size that triggers rotation, e.g. "10MB".
        retention: Rotated files kept.

    Returns:
        The configured ``codebrief`` logger.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = _FORMATTERS.get(log_format, TextFormatter)()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from codebrief.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return root
