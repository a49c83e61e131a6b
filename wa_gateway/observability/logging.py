"""
Structured Logging Module

JSON logging through structlog. Two context variables are stamped onto
every event:

- correlation_id: set per HTTP request by RequestLoggingMiddleware
- session_id: set by session_context() around a session's worker, so
  everything a session does is attributable without passing ids around

Pattern: Singleton configuration (configure once at startup)
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor

_configured: bool = False

_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)
_session_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "session_id", default=None
)


# =============================================================================
# Request and Session Context
# =============================================================================


def set_correlation_id(correlation_id: str) -> None:
    """Bind a request correlation id to the current context."""
    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def get_session_id() -> Optional[str]:
    """Session id bound by the innermost session_context(), or None."""
    return _session_id_var.get()


@contextmanager
def session_context(session_id: str) -> Generator[None, None, None]:
    """
    Bind a session id to every log event emitted inside the block.

    Tasks spawned inside the block inherit the binding, so a session's
    worker and retry timer keep logging under the right id.

    Example:
        >>> with session_context("shop-42"):
        ...     logger.info("pairing code received")
    """
    token = _session_id_var.set(session_id)
    try:
        yield
    finally:
        _session_id_var.reset(token)


# =============================================================================
# Processors
# =============================================================================


def add_context_ids(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp correlation and session ids; explicit keys on the event win."""
    for key, value in (("correlation_id", get_correlation_id()), ("session_id", get_session_id())):
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def add_timestamp(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_fields(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    """JSON lines use `level` and `logger` for structlog's log_level and logger_name."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    if "logger_name" in event_dict:
        event_dict["logger"] = event_dict.pop("logger_name")
    return event_dict


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Configure structlog for the whole process.

    Only the first call takes effect unless force=True. Loggers returned by
    get_logger() resolve the configuration on every call, so module-level
    loggers pick up a later forced reconfiguration.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: sys.stdout)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_context_ids,
        rename_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )
    _configured = True


def reset_logging() -> None:
    """Forget that logging was configured. Tests only."""
    global _configured
    _configured = False


def get_logger(name: str) -> Any:
    """
    Structured logger whose events carry `logger=name`.

    Applies the default configuration if nothing has configured logging yet.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("session created", state="initializing")
    """
    configure_logging()
    # structlog reserves `logger` as a wrap_logger parameter.
    return structlog.get_logger(logger_name=name)


def _level_to_int(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO
