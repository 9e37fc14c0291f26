"""Logging setup for the tile-stitcher CLI."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LogOptions:
    verbose: int = 0
    quiet: bool = False
    log_file: Path | None = None


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for the optional log file."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(options: LogOptions) -> logging.Logger:
    """Configure the root logger from ``options`` and return it."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    if options.quiet:
        level = logging.WARNING
    elif options.verbose > 0:
        level = logging.DEBUG
    else:
        level = logging.INFO
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root.addHandler(console_handler)

    if options.log_file:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(options.log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        root.addHandler(file_handler)

    # keep request-level chatter out of the console
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return root
