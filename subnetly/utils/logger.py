"""Structured logging for the IPAM service.

Records pick up the current request and operation context (request_id,
action, subnet_id, device_id) plus the active trace ids, and are rendered
as JSON lines or, for local development, as coloured text.
"""

import inspect
import logging
import sys
import time
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Optional

from pythonjsonlogger import jsonlogger

from subnetly.config import settings
from subnetly.utils.context import get_context, get_trace_context

CONTEXT_FIELDS = ("request_id", "action", "subnet_id", "device_id", "trace_id", "span_id")

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "opentelemetry")


class ContextInjectionFilter(logging.Filter):
    """Copy request, operation and trace context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in {**get_context(), **get_trace_context()}.items():
            setattr(record, key, value)
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that always emits level, logger and context fields."""

    def add_fields(
        self, log_record: dict, record: logging.LogRecord, message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", record.created)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


class ColoredConsoleFormatter(logging.Formatter):
    """Plain-text formatter that colours the level name."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # Colour a copy so other handlers see the bare level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}\033[0m"
        return super().format(colored)


def _build_formatter() -> logging.Formatter:
    if settings.LOG_FORMAT == "json":
        return CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s", timestamp=True
        )
    return ColoredConsoleFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.addFilter(ContextInjectionFilter())
    handler.setFormatter(_build_formatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


@contextmanager
def log_timer(operation_name: str, logger: Optional[logging.Logger] = None):
    """Log how long the wrapped block took.

    Example:
        with log_timer("subnet_plan", logger):
            plan = build_plan(subnet, records, ranges)
    """
    logger = logger or logging.getLogger(__name__)
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"Operation completed: {operation_name}",
            extra={"operation": operation_name, "duration_ms": _elapsed_ms(start)},
        )


def log_duration(operation_name: Optional[str] = None):
    """Decorator logging the duration and outcome of a call.

    Failures are logged at ERROR with the exception type and re-raised.
    """

    def decorator(func: Callable) -> Callable:
        name = operation_name or func.__name__
        func_logger = logging.getLogger(func.__module__)

        def report(start: float, error: Optional[Exception] = None) -> None:
            extra = {"function": name, "duration_ms": _elapsed_ms(start)}
            if error is None:
                func_logger.info(f"Function completed: {name}", extra=extra)
            else:
                extra.update(error=str(error), error_type=type(error).__name__)
                func_logger.error(f"Function failed: {name}", extra=extra)

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(start, e)
                    raise
                report(start)
                return result

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(start, e)
                raise
            report(start)
            return result

        return sync_wrapper

    return decorator
