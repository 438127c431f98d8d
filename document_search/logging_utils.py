from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, Optional, TextIO

LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


class _PlainFormatter(logging.Formatter):
    """Single-line human formatter; adds timestamps and source location at DEBUG."""

    default_fmt = "%(levelname)s %(name)s - %(message)s"
    verbose_fmt = "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    def __init__(self, debug: bool = False) -> None:
        super().__init__(fmt=self.verbose_fmt if debug else self.default_fmt, datefmt=self.datefmt)


class _JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "file": record.filename,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def coerce_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        upper = level.strip().upper()
        if upper in LEVELS:
            return getattr(logging, upper)
    return logging.INFO


def setup_logging(
    level: str | int | None = None,
    json_logs: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the root logger once for the process.

    The explicit ``level`` wins over the ``LOG_LEVEL`` environment variable,
    which wins over INFO. Output goes to stderr unless ``stream`` is given, so
    search results on stdout stay clean.
    """
    final_level = coerce_level(level or os.getenv("LOG_LEVEL") or logging.INFO)

    root = logging.getLogger()
    root.setLevel(final_level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    if json_logs:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(_PlainFormatter(debug=final_level <= logging.DEBUG))
    root.addHandler(handler)
