"""Task-local logging context for adding fields to log records."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_log_fields: ContextVar[dict[str, Any] | None] = ContextVar("booking_log_fields", default=None)


class LogContext:
    """Context-variable storage for log context fields.

    Backed by a ContextVar so each asyncio task sees the fields of the
    booking flow that spawned it.
    """

    @classmethod
    def set(cls, **kwargs: Any) -> None:
        _log_fields.set({**cls.get(), **kwargs})

    @classmethod
    def get(cls) -> dict[str, Any]:
        return dict(_log_fields.get() or {})

    @classmethod
    def clear(cls) -> None:
        _log_fields.set(None)


class ContextFilter(logging.Filter):
    """Injects LogContext fields into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Context manager that sets logging context fields.

    Fields are injected into log records via ContextFilter, which must
    be attached to the handler (see setup_logging).
    """
    token = _log_fields.set({**LogContext.get(), **kwargs})
    try:
        yield
    finally:
        _log_fields.reset(token)


@contextmanager
def log_booking_context(booking_id: str, **kwargs: Any) -> Iterator[None]:
    """Convenience context manager for booking-flow operations."""
    correlation_id = kwargs.pop("correlation_id", booking_id)
    with log_context(booking_id=booking_id, correlation_id=correlation_id, **kwargs):
        yield
