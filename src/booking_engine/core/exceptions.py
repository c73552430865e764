"""Standardized exception hierarchy for the booking engine."""

from typing import Any


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(BookingEngineError):
    """Errors that may succeed on retry."""

    pass


class NetworkError(TransientError):
    """Network-related transient errors (timeout, connection refused)."""

    pass


class ServiceUnavailableError(TransientError):
    """External service temporarily unavailable (5xx responses)."""

    pass


class PermanentError(BookingEngineError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input or data format."""

    pass


class NotFoundError(PermanentError):
    """Requested entity does not exist."""

    pass


class UnknownTransferTypeError(ValidationError):
    """Transfer-type label outside the bookable vocabulary."""

    def __init__(self, label: str):
        super().__init__(f"Unknown transfer type: {label!r}", {"label": label})
        self.label = label


class IncompleteBookingError(ValidationError):
    """Booking cannot be assembled while validation failures remain."""

    def __init__(self, failures: frozenset[str]):
        ordered = sorted(str(f) for f in failures)
        super().__init__(
            f"Booking has {len(ordered)} validation failure(s): {', '.join(ordered)}",
            {"failures": ordered},
        )
        self.failures = failures
