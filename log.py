"""Structured logging for Taihua.

One JSON object per line on stderr. TAIHUA_LOG_LEVEL picks the verbosity
(DEBUG/INFO/WARNING/ERROR); TAIHUA_LOG_FORMAT=text gives plain lines with
the extras appended as key=value.
"""
import logging
import json
import os
import sys
from typing import Any

# Attributes copied from `extra=` into the entry
EXTRA_FIELDS = (
    "component", "feature", "model", "detail", "duration_ms", "count",
    "endpoint", "status_code", "session_id", "category", "difficulty",
)


def _extras(record: logging.LogRecord) -> dict:
    return {k: getattr(record, k) for k in EXTRA_FIELDS if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    def __init__(self, with_traceback: bool = False):
        super().__init__()
        self.with_traceback = with_traceback

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            entry["error"] = str(exc)
            entry["error_type"] = type(exc).__name__
            if self.with_traceback:
                entry["traceback"] = self.formatException(record.exc_info)
        entry.update(_extras(record))
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def _handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if os.environ.get("TAIHUA_LOG_FORMAT", "json") == "text":
        handler.setFormatter(TextFormatter())
    else:
        handler.setFormatter(JSONFormatter(with_traceback=level <= logging.DEBUG))
    return handler


def get_logger(name: str = "taihua") -> logging.Logger:
    """Get or create a structured logger.

    Usage:
        from log import get_logger
        logger = get_logger("taihua.vocab")
        logger.info("Batch generated", extra={"component": "vocab", "count": 10})
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        level = getattr(logging, os.environ.get("TAIHUA_LOG_LEVEL", "INFO").upper(), logging.INFO)
        logger.setLevel(level)
        logger.addHandler(_handler(level))
        logger.propagate = False
    return logger
