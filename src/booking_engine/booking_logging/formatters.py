"""Log formatters for JSON and human-readable output."""

import json
import logging
from datetime import UTC, datetime

# Booking fields bound through log_context(); rendered when present on the record
BOOKING_FIELDS = ("booking_id", "reservation_id", "leg_role", "generation")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, carrying whatever booking context is bound."""

    def __init__(self, environment: str = "development"):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "env": self.environment,
        }

        for field in (*BOOKING_FIELDS, "correlation_id"):
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.levelno >= logging.WARNING:
            log_data["source"] = f"{record.module}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevFormatter(logging.Formatter):
    """Single-line console format; bound booking fields are appended in braces."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s [%(levelname)8s] [corr=%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        bound = [
            f"{field}={getattr(record, field)}"
            for field in BOOKING_FIELDS
            if field != "booking_id" and getattr(record, field, None) is not None
        ]
        if not bound:
            return line
        # Exception text follows the first line
        first, sep, rest = line.partition("\n")
        return f"{first} {{{' '.join(bound)}}}{sep}{rest}"
