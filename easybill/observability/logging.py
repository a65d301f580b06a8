# ==== STRUCTURED LOGGING WITH LOGURU ==== #

"""
Structured logging with loguru for EasyBill.

This module provides JSON structured logging, stdlib interception, log
rotation and automatic tenant, user and trace context on every record.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger
from opentelemetry import trace
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from easybill.tenancy.context import get_current_tenant, get_current_user_id


# ==== STDLIB INTERCEPTION ==== #


class InterceptHandler(logging.Handler):
    """Route standard library log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


# ==== INITIALIZATION ==== #


def init_logging(level: str = "INFO", log_to_files: bool = True) -> None:
    """Initialize structured logging with loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_files: Whether to add rotating JSON file sinks
    """
    logger.remove()

    # Console handler with JSON formatting for production
    logger.add(
        sys.stdout,
        format="{message}",
        serialize=True,
        level=level.upper(),
        enqueue=True,
        colorize=False,
        backtrace=True,
        diagnose=False,
    )

    if log_to_files:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        logger.add(
            logs_dir / "easybill_{time:YYYY-MM-DD}.log",
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            serialize=True,
            level="DEBUG",
            enqueue=True,
        )

        # Errors kept longer for audits
        logger.add(
            logs_dir / "easybill_errors_{time:YYYY-MM-DD}.log",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            serialize=True,
            level="ERROR",
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # --► THIRD-PARTY NOISE REDUCTION
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    try:
        LoggingInstrumentor().instrument(set_logging_format=False)
    except Exception as e:
        logger.warning(f"Failed to setup OpenTelemetry logging: {e}")

    logger.info("Structured logging initialized", level=level)


# ==== CONTEXTUAL LOGGER ==== #


class ContextualLogger:
    """Loguru wrapper that injects tenant, user and trace ids.

    Context is read at call time, so a logger created at import time still
    reports the tenant of the request being served.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logger.bind(logger_name=name)

    def _add_context(self, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
        context: Dict[str, Any] = {"logger_name": self.name}

        tenant_id = get_current_tenant()
        if tenant_id:
            context["tenant_id"] = tenant_id
        user_id = get_current_user_id()
        if user_id:
            context["user_id"] = user_id

        if extra:
            context.update(extra)

        span = trace.get_current_span()
        if span and span.is_recording():
            span_context = span.get_span_context()
            if span_context.is_valid:
                context['trace_id'] = format(span_context.trace_id, '032x')
                context['span_id'] = format(span_context.span_id, '016x')

        return context

    def _emit(self, level: str, msg: str, fields: Dict[str, Any]) -> None:
        bound = self.logger.opt(depth=2).bind(**self._add_context(fields))
        getattr(bound, level)(msg)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._emit("debug", msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._emit("info", msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._emit("warning", msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._emit("error", msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._emit("critical", msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._emit("exception", msg, kwargs)


# ==== LOGGING UTILITIES ==== #


def get_logger(name: str) -> ContextualLogger:
    """Get a contextual logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        ContextualLogger bound to ``name``
    """
    return ContextualLogger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """Log operation duration, escalating the level for slow operations.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context fields
    """
    perf_logger = logger.bind(
        operation=operation,
        duration_seconds=round(duration, 3),
        performance_log=True,
        **context
    )

    if duration > 10.0:
        perf_logger.warning(f"Slow operation detected: {operation}")
    elif duration > 2.0:
        perf_logger.info(f"Operation completed: {operation}")
    else:
        perf_logger.debug(f"Operation completed: {operation}")


def log_business_event(event_type: str, tenant: str, **context: Any) -> None:
    """Log a domain event such as an invoice completion or tenant onboarding.

    Args:
        event_type: Type of business event
        tenant: Tenant identifier
        **context: Additional business context
    """
    logger.bind(
        event_type=event_type,
        tenant=tenant,
        business_event=True,
        **context
    ).info(f"Business event: {event_type}")
