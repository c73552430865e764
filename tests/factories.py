"""Builders for trip legs, quotes and reference data used across tests."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from booking_engine.models.rates import (
    RateArray,
    RateItem,
    RateQuote,
    StaticRateBreakdown,
    TaxItem,
    Vehicle,
)
from booking_engine.models.trip import (
    Airline,
    Airport,
    AirportEndpoint,
    CityEndpoint,
    Coordinate,
    CruiseEndpoint,
    EndpointKind,
    Passenger,
    ServiceType,
    TransferType,
    TripLeg,
)

# Manhattan and Brooklyn, far enough apart for extra-stop proximity checks
MIDTOWN = Coordinate(latitude=40.7549, longitude=-73.9840)
BROOKLYN = Coordinate(latitude=40.6782, longitude=-73.9442)
QUEENS = Coordinate(latitude=40.7282, longitude=-73.7949)
PORT_OF_NY = Coordinate(latitude=40.7651, longitude=-73.9992)

JFK = Airport(
    id=101,
    code="JFK",
    name="John F. Kennedy International Airport",
    city="New York",
    country="United States",
    coordinate=Coordinate(latitude=40.6413, longitude=-73.7781),
)
LGA = Airport(
    id=102,
    code="LGA",
    name="LaGuardia Airport",
    city="New York",
    country="United States",
    coordinate=Coordinate(latitude=40.7769, longitude=-73.8740),
)
DELTA = Airline(id=7, code="DL", name="Delta Air Lines")

PASSENGER = Passenger(name="Ana Souza", email="ana.souza@example.com", mobile="+1 212 555 0100")

PICKUP_AT = datetime(2026, 11, 20, 14, 30)


def city_endpoint(address: str = "350 5th Ave, New York, NY, USA", coordinate=MIDTOWN) -> CityEndpoint:
    return CityEndpoint(address=address, coordinate=coordinate)


def airport_endpoint(
    airport: Airport = JFK, origin_airport_city: str = "Chicago"
) -> AirportEndpoint:
    return AirportEndpoint(
        airport=airport,
        airline=DELTA,
        flight_number="DL 1234",
        origin_airport_city=origin_airport_city,
    )


def cruise_endpoint() -> CruiseEndpoint:
    return CruiseEndpoint(
        address="711 12th Ave, New York, NY, USA",
        coordinate=PORT_OF_NY,
        cruise_port="Manhattan Cruise Terminal",
        ship_name="Norwegian Breakaway",
        ship_arrival_time="07:00",
    )


def complete_endpoint(kind: EndpointKind, side: str):
    if kind is EndpointKind.AIRPORT:
        return airport_endpoint(JFK if side == "pickup" else LGA)
    if kind is EndpointKind.CRUISE:
        return cruise_endpoint()
    if side == "pickup":
        return city_endpoint()
    return city_endpoint("Atlantic Ave, Brooklyn, NY, USA", BROOKLYN)


def make_leg(
    pickup: EndpointKind = EndpointKind.CITY,
    dropoff: EndpointKind = EndpointKind.CITY,
    /,
    **overrides: Any,
) -> TripLeg:
    """A fully filled-in leg of the given shape; overrides replace any field."""
    defaults: dict[str, Any] = {
        "service_type": ServiceType.ONE_WAY,
        "transfer_type": TransferType(pickup=pickup, dropoff=dropoff),
        "pickup": complete_endpoint(pickup, "pickup"),
        "dropoff": complete_endpoint(dropoff, "dropoff"),
        "pickup_at": PICKUP_AT,
        "passenger": PASSENGER,
    }
    defaults.update(overrides)
    return TripLeg(**defaults)


def make_return_leg(outbound: TripLeg, **overrides: Any) -> TripLeg:
    defaults: dict[str, Any] = {
        "service_type": outbound.service_type,
        "transfer_type": outbound.transfer_type.reversed() if outbound.transfer_type else None,
        "pickup": outbound.dropoff,
        "dropoff": outbound.pickup,
        "pickup_at": datetime(2026, 11, 22, 10, 0),
        "passenger": outbound.passenger,
        "vehicle_count": outbound.vehicle_count,
        "charter_hours": outbound.charter_hours,
    }
    defaults.update(overrides)
    return TripLeg(**defaults)


def make_rate_array(
    base_rate: float = 100.0,
    amenities: dict[str, float] | None = None,
    taxes: dict[str, float] | None = None,
    misc: dict[str, float] | None = None,
    **all_inclusive: float,
) -> RateArray:
    """Rate array with a Base_Rate item plus any named all-inclusive items."""
    items = {"Base_Rate": base_rate, **all_inclusive}
    return RateArray(
        all_inclusive_rates={
            name: RateItem(rate_label=name, baserate=value) for name, value in items.items()
        },
        amenities={
            name: RateItem(rate_label=name, baserate=value)
            for name, value in (amenities or {}).items()
        },
        taxes={
            name: TaxItem(rate_label=name, baserate=0.0, amount=value)
            for name, value in (taxes or {}).items()
        },
        misc={
            name: RateItem(rate_label=name, baserate=value) for name, value in (misc or {}).items()
        },
    )


def make_quote(
    base_rate: float = 100.0,
    return_base_rate: float | None = None,
    min_rate_involved: bool = False,
    **rate_array_kwargs: Any,
) -> RateQuote:
    return RateQuote(
        rate_array=make_rate_array(base_rate, **rate_array_kwargs),
        return_rate_array=(
            make_rate_array(return_base_rate) if return_base_rate is not None else None
        ),
        min_rate_involved=min_rate_involved,
    )


def make_vehicle(**overrides: Any) -> Vehicle:
    defaults: dict[str, Any] = {
        "id": 55,
        "name": "Lincoln Navigator",
        "is_master_vehicle": False,
        "rate_breakdown_one_way": StaticRateBreakdown(sub_total=90.0, total=100.0, grand_total=110.0),
        "rate_breakdown_round_trip": StaticRateBreakdown(total=180.0),
        "rate_breakdown_charter_tour": None,
    }
    defaults.update(overrides)
    return Vehicle(**defaults)
