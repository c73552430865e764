from .context import log_booking_context, log_context
from .setup import setup_logging

__all__ = ["log_booking_context", "log_context", "setup_logging"]
