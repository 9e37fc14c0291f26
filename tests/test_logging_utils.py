from __future__ import annotations

import json
import logging
from pathlib import Path

from tile_stitcher.logging_utils import LogOptions, configure_logging


def test_configure_logging_writes_json(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "tile-stitcher.jsonl"
    configure_logging(LogOptions(log_file=log_path))
    logger = logging.getLogger("tile_stitcher.test")
    logger.debug("hello %s", "tiles")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "hello tiles"
    assert payload["level"] == "debug"
    assert payload["logger"] == "tile_stitcher.test"


def test_console_level_follows_options() -> None:
    assert configure_logging(LogOptions(quiet=True)).handlers[0].level == logging.WARNING
    assert configure_logging(LogOptions(verbose=1)).handlers[0].level == logging.DEBUG
    assert configure_logging(LogOptions()).handlers[0].level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
