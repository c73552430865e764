import os

# The directions key has no default (clients must fail without it).
# Provide a test value so Settings() can be constructed in tests.
os.environ.setdefault("DIRECTIONS_API_KEY", "test-directions-key")

from unittest.mock import AsyncMock

import pytest

from booking_engine.booking_logging.context import LogContext
from booking_engine.models.reservation import ReservationResult
from booking_engine.providers import RouteMetrics
from tests.factories import make_quote, make_vehicle


@pytest.fixture(autouse=True)
def clear_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def route_metrics() -> RouteMetrics:
    return RouteMetrics(distance_meters=12_500, duration_seconds=1_260)


@pytest.fixture
def mock_directions(route_metrics: RouteMetrics) -> AsyncMock:
    """Directions provider that always resolves the same route."""
    directions = AsyncMock()
    directions.get_route.return_value = route_metrics
    return directions


@pytest.fixture
def mock_rate_provider() -> AsyncMock:
    """Rate provider returning a Base_Rate=100 quote with a Base_Rate=80 return leg."""
    provider = AsyncMock()
    provider.get_rates.return_value = make_quote(100.0, return_base_rate=80.0)
    return provider


@pytest.fixture
def mock_reservations() -> AsyncMock:
    reservations = AsyncMock()
    reservations.create.return_value = ReservationResult(reservation_id=9001, order_id=77)
    reservations.update.return_value = ReservationResult(reservation_id=4242)
    return reservations


@pytest.fixture
def vehicle():
    return make_vehicle()

