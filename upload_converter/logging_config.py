"""
Logging for the converter CLI and upload server.

Log lines go to stderr, so ``--json`` command output on stdout stays
parseable. Two formats:

    text  13:05:22 INFO    [convert        ] Converted: 4000x3000 (image/jpeg) → ...
    json  {"ts": "...", "level": "INFO", "logger": "...", "message": "...", "status": "converted"}

LOG_LEVEL (default INFO) and LOG_FORMAT (text|json, default text) are read
when ``setup_logging`` gets no explicit values.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# ``extra=`` keys the converter attaches to its records
EXTRA_FIELDS = ("file_path", "status", "mime_type")

# Third-party loggers that are noisy below WARNING
QUIET_LOGGERS = ("PIL", "werkzeug")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including the converter's extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {name: getattr(record, name) for name in EXTRA_FIELDS if hasattr(record, name)}
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class HumanFormatter(logging.Formatter):
    """Short console lines; the level is coloured when stderr is a terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:7}"
        if sys.stderr.isatty():
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        source = record.name.rsplit(".", 1)[-1][:15]
        line = f"{datetime.now():%H:%M:%S} {level} [{source:15}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str | None = None, format_type: str | None = None) -> None:
    """Install a single stderr handler on the root logger (replacing any others)."""
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).lower()
    numeric_level = getattr(logging, log_level, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if log_format == "json" else HumanFormatter())
    handler.setLevel(numeric_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging: level={log_level}, format={log_format}")
