from .rates import (
    RateArray,
    RateItem,
    RateQuote,
    SharesArray,
    StaticRateBreakdown,
    TaxItem,
    Vehicle,
)
from .reservation import (
    BookingRequest,
    ExtraStopPayload,
    LegPayload,
    ReservationResult,
    SubmitResult,
)
from .trip import (
    Airline,
    Airport,
    AirportEndpoint,
    CityEndpoint,
    Coordinate,
    CruiseEndpoint,
    Endpoint,
    EndpointKind,
    ExtraStop,
    LegRole,
    Passenger,
    ServiceType,
    TransferType,
    TripLeg,
)

__all__ = [
    "Airline",
    "Airport",
    "AirportEndpoint",
    "BookingRequest",
    "CityEndpoint",
    "Coordinate",
    "CruiseEndpoint",
    "Endpoint",
    "EndpointKind",
    "ExtraStop",
    "ExtraStopPayload",
    "LegPayload",
    "LegRole",
    "Passenger",
    "RateArray",
    "RateItem",
    "RateQuote",
    "ReservationResult",
    "ServiceType",
    "SharesArray",
    "StaticRateBreakdown",
    "SubmitResult",
    "TaxItem",
    "TransferType",
    "TripLeg",
    "Vehicle",
]
