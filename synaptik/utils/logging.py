"""Structured logging for the task core.

Loggers take keyword fields, which the JSON formatter emits as attributes of
the record. An operation id held in a contextvar ties together every record
written during one capture, search or dependency edit, across awaits.
"""

import inspect
import logging
import re
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional

from synaptik.utils.logging_config import LoggingConfig, get_logger

_operation_id: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)

EMAIL_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
SECRET_PATTERN = re.compile(r"(?i)\b(api[_-]?key|token|secret|password)[\s:=]+[A-Za-z0-9_-]{16,}")


def new_operation_id() -> str:
    return f"op_{uuid.uuid4().hex[:12]}"


def current_operation_id() -> Optional[str]:
    return _operation_id.get()


@contextmanager
def operation_context(operation_id: Optional[str] = None) -> Iterator[str]:
    """Tag every record logged inside the block with one operation id."""
    token = _operation_id.set(operation_id or new_operation_id())
    try:
        yield _operation_id.get()
    finally:
        _operation_id.reset(token)


def redact(text: str) -> str:
    """Replace e-mail addresses and credential-looking values."""
    if not text or not LoggingConfig.LOG_REDACT:
        return text
    text = EMAIL_PATTERN.sub("[email]", text)
    return SECRET_PATTERN.sub(lambda match: f"{match.group(1)}=[redacted]", text)


def preview_input(text: Optional[str], limit: int = 120) -> Optional[str]:
    """Shortened, redacted copy of user input, or None when previews are off."""
    if not text or not LoggingConfig.LOG_INPUT_PREVIEW:
        return None
    if len(text) > limit:
        text = f"{text[:limit]}..."
    return redact(text)


class StructuredLogger:
    """Wraps a stdlib logger; keyword arguments become record fields."""

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None):
        self.logger = logger
        self.fields = dict(fields or {})

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Logger that adds ``fields`` to every record."""
        return StructuredLogger(self.logger, {**self.fields, **fields})

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        extra = {**self.fields, **fields}
        operation_id = _operation_id.get()
        if operation_id:
            extra["operation_id"] = operation_id
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=True, **fields)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(
    operation: str,
    logger: Optional[StructuredLogger] = None,
    **fields: Any,
) -> Iterator[Dict[str, Any]]:
    """
    Time the enclosed block and log the duration.

    Yields a dict the block may add result fields to (e.g. a row count); they
    are logged with the timing. Blocks slower than ``LOG_SLOW_MS`` also log a
    warning.
    """
    log = logger or get_structured_logger(__name__)
    result: Dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield result
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        log.debug(f"{operation} finished", operation=operation, elapsed_ms=elapsed_ms, **fields, **result)
        if elapsed_ms > LoggingConfig.LOG_SLOW_MS:
            log.warning(
                f"{operation} was slow",
                operation=operation,
                elapsed_ms=elapsed_ms,
                slow_threshold_ms=LoggingConfig.LOG_SLOW_MS,
                **fields,
            )


def timed(operation: Optional[str] = None, logger: Optional[StructuredLogger] = None):
    """Decorator form of ``log_timing`` for plain and async functions."""
    def decorator(func: Callable) -> Callable:
        name = operation or func.__qualname__
        log = logger or get_structured_logger(func.__module__)

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def run_async(*args, **kwargs):
                with log_timing(name, logger=log):
                    return await func(*args, **kwargs)
            return run_async

        @wraps(func)
        def run(*args, **kwargs):
            with log_timing(name, logger=log):
                return func(*args, **kwargs)
        return run

    return decorator
