"""Structured logging with correlation IDs.

Every log line carries a correlation ID: the request's X-Correlation-ID on the
API side, the moderation job ID inside a worker. Lines emitted inside a span
also carry its trace and span IDs.
"""

import json
import logging
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Iterator, Optional

from screener.core.tracing import span_ids

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are not caller-supplied `extra` fields
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "correlation_id",
}


def get_correlation_id() -> str:
    """Current correlation ID; falls back to the trace ID, then a fresh uuid."""
    cid = correlation_id_var.get()
    if cid is not None:
        return cid
    trace_id, _ = span_ids()
    if trace_id:
        return trace_id
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[None]:
    """Bind a correlation ID for the duration of a block.

    Used by the worker pool so that every line logged while a job is
    processed carries that job's ID.
    """
    token = correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        correlation_id_var.reset(token)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, include_stack_trace: bool = True):
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        trace_id, span_id = span_ids()
        if trace_id:
            entry["trace_id"] = trace_id
            entry["span_id"] = span_id

        if record.exc_info and record.exc_info[0] is not None:
            error = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }
            if self.include_stack_trace:
                error["stack_trace"] = traceback.format_exception(*record.exc_info)
            entry["exception"] = error

        extra = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamps the correlation ID on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_stack_trace: bool = True,
) -> None:
    """Configure the root logger for the API or a worker process.

    Args:
        level: Log level name
        json_format: Emit JSON lines instead of plain text
        include_stack_trace: Include formatted tracebacks in JSON output
    """
    log_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(StructuredFormatter(include_stack_trace=include_stack_trace))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
        ))
    root_logger.addHandler(handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx", "celery.worker.strategy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    **extra: Any,
) -> None:
    """Log an error with optional exception and context fields."""
    logger.error(message, exc_info=exception, extra=extra)
