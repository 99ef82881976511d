"""
Structured logging for Shipflow.

JSON-formatted logging with a correlation ID, so every line produced while a
worker handles one job can be traced back to that job.

Usage:
    from shipflow.observability import setup_structured_logging, add_correlation_id

    setup_structured_logging(level="INFO", json_format=True)

    with add_correlation_id(job_id):
        logger.info("Building")  # includes correlation_id
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from shipflow.utils.logging import _parse_level, get_logger

logger = get_logger("shipflow.observability.logging")

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are not user-supplied "extra" fields
_RECORD_ATTRS = frozenset(
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
        "correlation_id",
    )
)


def get_correlation_id() -> str | None:
    """Get the correlation ID of the current context, if any."""
    return _correlation_id.get()


@contextmanager
def add_correlation_id(correlation_id: str | None = None) -> Any:
    """
    Context manager to add a correlation ID to logs.

    Args:
        correlation_id: Correlation ID (auto-generated if not provided)

    Yields:
        The correlation ID
    """
    cid = correlation_id or str(uuid.uuid4())[:8]
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Copies the current correlation ID onto each record as ``correlation_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class StructuredFormatter(logging.Formatter):
    """
    JSON log formatter.

    Emits timestamp, level, logger, message, correlation ID (when set),
    exception info and any ``extra`` fields passed to the logging call.
    """

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        log_data.update(self.extra_fields)
        return json.dumps(log_data, default=str)


def setup_structured_logging(
    level: str | int = "INFO",
    json_format: bool = True,
    stream: Any = None,
    extra_fields: dict[str, Any] | None = None,
) -> logging.Logger:
    """
    Configure the ``shipflow`` logger for machine-readable output.

    Replaces any handlers previously installed by ``setup_logging``.
    """
    level_int = _parse_level(level)
    shipflow_logger = logging.getLogger("shipflow")
    shipflow_logger.handlers.clear()
    shipflow_logger.setLevel(level_int)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level_int)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter(extra_fields=extra_fields))
    else:
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] [%(levelname)-8s] [%(name)s] [%(correlation_id)s] %(message)s")
        )
    shipflow_logger.addHandler(handler)

    logger.debug(f"Structured logging configured: level={level}, json={json_format}")
    return shipflow_logger


def log_job_event(event: str, job_id: str, **fields: Any) -> None:
    """Log a job lifecycle event (``job.received``, ``job.deployed``, ``job.failed``)."""
    log = logging.getLogger("shipflow.jobs")
    extra = {"event": event, "job_id": job_id, **fields}
    if event.endswith("failed"):
        log.error(f"Job {job_id}: {event}", extra=extra)
    else:
        log.info(f"Job {job_id}: {event}", extra=extra)
