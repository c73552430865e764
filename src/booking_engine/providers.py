"""Collaborator interfaces consumed by the engine."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from .models.rates import RateQuote
from .models.reservation import BookingRequest, ReservationResult
from .models.trip import Airline, Airport, Coordinate, TripLeg


class RouteMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance_meters: int = Field(ge=0)
    duration_seconds: int = Field(ge=0)
    straight_line: bool = False


@runtime_checkable
class DirectionsProvider(Protocol):
    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Sequence[Coordinate] = (),
    ) -> RouteMetrics: ...


@runtime_checkable
class RateQuoteProvider(Protocol):
    async def get_rates(
        self,
        leg: TripLeg,
        return_leg: TripLeg | None = None,
        *,
        distance_meters: int = 0,
        return_distance_meters: int = 0,
    ) -> RateQuote: ...


@runtime_checkable
class ReservationProvider(Protocol):
    async def create(self, request: BookingRequest) -> ReservationResult: ...

    async def update(self, reservation_id: int, request: BookingRequest) -> ReservationResult: ...


class ReferenceDataProvider(Protocol):
    """Read-only airport, airline and meet-and-greet lookups (searchable, paged)."""

    async def airports(self, search: str = "", page: int = 1) -> list[Airport]: ...

    async def airlines(self, search: str = "", page: int = 1) -> list[Airline]: ...

    async def meet_greet_choices(self) -> list[str]: ...
