"""JSON logging for deduplication and merge runs."""

import json
import logging
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Fields attached by log_context, per thread
_context = threading.local()

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "getMessage", "exc_info", "exc_text",
    "stack_info", "taskName", "message", "asctime",
}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with contact details redacted."""

    # Substrings of extra field names whose values never reach a log file
    SENSITIVE_FIELDS = {
        "email", "phone", "note", "birthday", "address",
        "password", "token", "secret", "api_key",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        log_data.update(current_context())

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            log_data[key] = "[REDACTED]" if self._is_sensitive_field(key) else value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


def setup_logging(
    format: str = "json",
    level: str = "INFO",
    log_file: Optional[str] = None
) -> None:
    """Route the root logger to stdout, and optionally a file.

    Takes the fields of ``LoggingConfig``, so callers can write
    ``setup_logging(**config.logging.model_dump())``.

    Args:
        format: "json" for StructuredFormatter, "text" for a plain line format
        level: Level name, case-insensitive
        log_file: Extra file to append records to
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if format == "json":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def log_performance(logger_name: str, operation: str, duration_ms: float, **fields) -> None:
    """Log how long an operation took, with extra fields."""
    fields["duration_ms"] = duration_ms
    logging.getLogger(logger_name).info(
        f"{operation} completed in {duration_ms:.1f}ms", extra=fields
    )


def current_context() -> Dict[str, Any]:
    """Fields currently attached by ``log_context``."""
    return dict(getattr(_context, "data", {}))


@contextmanager
def log_context(**fields):
    """Attach fields such as a run id to every record logged in the block.

    Nested blocks add to the outer fields; leaving a block restores them.
    """
    previous = current_context()
    _context.data = {**previous, **fields}
    try:
        yield
    finally:
        _context.data = previous


class Timer:
    """Wall-clock duration of a ``with`` block, in ``duration_ms``."""

    def __init__(self):
        self.start_time = None
        self.end_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        self.duration_ms = (self.end_time - self.start_time) * 1000
