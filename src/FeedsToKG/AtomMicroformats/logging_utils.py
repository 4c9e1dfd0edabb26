"""Structured logging helpers shared across Atom microformat components."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .settings import LogFormat, LogLevel

__all__ = ["LOGGER_NAME", "JSONFormatter", "get_logger", "setup_logging"]

LOGGER_NAME = "FeedsToKG.AtomMicroformats"


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON log entries with feed-specific fields."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string."""

        now = datetime.now(timezone.utc)
        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "stage": getattr(record, "stage", None),
            "entry_id": getattr(record, "entry_id", None),
        }
        error = getattr(record, "error", None)
        if error is not None:
            payload["error"] = error
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger or one of its children."""

    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def setup_logging(
    *,
    level: Union[str, LogLevel] = LogLevel.INFO,
    fmt: Union[str, LogFormat] = LogFormat.CONSOLE,
    log_dir: Optional[Path] = None,
    max_log_size_mb: int = 10,
    propagate: bool = False,
) -> logging.Logger:
    """Configure package logging with a console handler and optional JSONL file."""

    level_name = level.value if isinstance(level, LogLevel) else str(level)
    fmt_value = LogFormat(fmt.value if isinstance(fmt, LogFormat) else str(fmt))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_atommf_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler):
                stream = getattr(handler, "stream", None)
                if stream in (sys.stdout, sys.stderr):
                    continue
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if fmt_value is LogFormat.JSON:
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._atommf_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            log_dir / f"atommf-{today}.jsonl",
            maxBytes=int(max_log_size_mb * 1024 * 1024),
            backupCount=5,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._atommf_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
