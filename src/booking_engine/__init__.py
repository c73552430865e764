"""Fare computation and trip validation engine for chauffeured trip bookings."""

__version__ = "0.1.0"
