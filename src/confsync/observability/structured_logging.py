"""
Structured logging for confsync.

JSON-formatted logging with correlation IDs so that the retry loop and the
listener threads of one sync session can be followed across log lines.

Usage:
    from confsync.observability import setup_structured_logging, add_correlation_id

    # Enable structured logging
    setup_structured_logging(level="INFO", json_format=True)

    # Add correlation ID to logs
    with add_correlation_id("a1b2c3d4"):
        logger.info("Fetching config")  # Will include correlation_id in log
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from confsync.utils.logging import get_logger

logger = get_logger("confsync.observability.logging")

# Context variable for correlation ID
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
        "thread",
        "threadName",
        "taskName",
    )
)


def new_correlation_id() -> str:
    """Generate a short correlation ID."""
    return str(uuid.uuid4())[:8]


def get_correlation_id() -> str | None:
    """
    Get current correlation ID.

    Returns:
        Correlation ID or None if not set
    """
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set correlation ID for current context.

    Args:
        correlation_id: Correlation ID to set
    """
    _correlation_id.set(correlation_id)


@contextmanager
def add_correlation_id(correlation_id: str | None = None) -> Any:
    """
    Context manager to add correlation ID to logs.

    Args:
        correlation_id: Correlation ID (auto-generated if not provided)

    Yields:
        The correlation ID

    Usage:
        with add_correlation_id(session.session_id) as cid:
            logger.info("Applying")  # Logs will include correlation_id
    """
    cid = correlation_id or new_correlation_id()
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class StructuredFormatter(logging.Formatter):
    """
    JSON-formatted log formatter with structured fields.

    Includes:
    - Timestamp (ISO 8601)
    - Level
    - Logger name
    - Message
    - Correlation ID (if set)
    - Exception info (if present)
    - Extra fields
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_correlation_id: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_correlation_id = include_correlation_id
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(UTC).isoformat()

        if self.include_level:
            log_data["level"] = record.levelname

        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        if self.include_correlation_id:
            correlation_id = get_correlation_id()
            if correlation_id:
                log_data["correlation_id"] = correlation_id

        log_data["location"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter with optional correlation ID.

    Format: [timestamp] [level] [logger] [correlation_id] message
    """

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable string."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        parts = [f"[{timestamp}]", f"[{level}]", f"[{record.name}]"]

        if self.include_correlation_id:
            correlation_id = get_correlation_id()
            if correlation_id:
                parts.append(f"[{correlation_id}]")

        parts.append(record.getMessage())
        message = " ".join(parts)

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = False,
    stream: Any = None,
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Setup structured logging for confsync.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True) or human-readable (False)
        stream: Output stream (defaults to sys.stderr)
        extra_fields: Extra fields to include in all logs (JSON format only)
    """
    confsync_logger = logging.getLogger("confsync")
    confsync_logger.setLevel(getattr(logging, level.upper()))

    for handler in confsync_logger.handlers[:]:
        confsync_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(getattr(logging, level.upper()))

    formatter: logging.Formatter
    if json_format:
        formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    confsync_logger.addHandler(handler)

    logger.debug(f"Structured logging configured: level={level}, json={json_format}")


def log_state_transition(namespace: str, key: str, old_state: str, new_state: str) -> None:
    """
    Log a sync session state transition.

    Args:
        namespace: Session namespace
        key: Session key
        old_state: State being left
        new_state: State being entered
    """
    log = logging.getLogger("confsync.session")
    log.info(
        f"[conf] {namespace}/{key}: {old_state} -> {new_state}",
        extra={
            "event": "session.state",
            "namespace": namespace,
            "key": key,
            "from_state": old_state,
            "to_state": new_state,
        },
    )
