"""Logging configuration for similarity_md.

Provides a human-readable formatter for terminal use, a JSON formatter for
machine consumption, and a helper that logs pipeline phase timings.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

PACKAGE_LOGGER = "similarity_md"

# Attributes present on every LogRecord; anything else came in through `extra`
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed with logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for terminal output."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def setup_logger(
    name: Optional[str] = PACKAGE_LOGGER,
    level: str = "INFO",
    json_format: bool = False
) -> logging.Logger:
    """Configure a logger with a single stderr handler.

    Log output goes to stderr so that reports written to stdout stay clean.

    Args:
        name: Logger name (default: package logger)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (True) or human-readable (False)

    Returns:
        Configured logger instance

    Raises:
        ValueError: If level is not a known logging level name

    Example:
        logger = setup_logger(level="DEBUG")
        logger = setup_logger(json_format=True)
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else HumanReadableFormatter())
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the package namespace.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name or PACKAGE_LOGGER)


@contextmanager
def log_phase(logger: logging.Logger, phase: str, **fields: Any) -> Iterator[Dict[str, Any]]:
    """Log start, completion and duration of a pipeline phase.

    The yielded dict may be filled with result counters; they are logged
    together with the duration when the phase completes.

    Example:
        with log_phase(logger, "score", pairs=len(candidates)) as result:
            result["qualifying"] = len(qualifying)
    """
    logger.debug("Phase %s started", phase, extra={"phase": phase, **fields})
    result: Dict[str, Any] = {}
    started = time.perf_counter()
    yield result
    elapsed = time.perf_counter() - started
    logger.info(
        "Phase %s completed in %.3fs",
        phase,
        elapsed,
        extra={"phase": phase, "duration_seconds": round(elapsed, 6), **fields, **result},
    )
