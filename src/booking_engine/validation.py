"""Required-field derivation and leg validation.

The rule set is a pure function of (service type, transfer type, leg role).
Validation re-derives the whole failure set from the current leg value on
every call, so a fixed field can never leave a stale failure behind.
"""

import re
from enum import Enum

from .geo.distance import coordinates_approximately_equal
from .models.trip import (
    AirportEndpoint,
    CityEndpoint,
    CruiseEndpoint,
    EndpointKind,
    ExtraStop,
    LegRole,
    ServiceType,
    TransferType,
    TripLeg,
)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)+$")
MIN_MOBILE_DIGITS = 4


class FieldId(str, Enum):
    """Input fields a leg can be required to fill."""

    TRANSFER_TYPE = "transfer_type"
    PICKUP_LOCATION = "pickup_location"
    PICKUP_AIRPORT = "pickup_airport"
    PICKUP_AIRLINE = "pickup_airline"
    PICKUP_FLIGHT_NUMBER = "pickup_flight_number"
    ORIGIN_AIRPORT_CITY = "origin_airport_city"
    PICKUP_CRUISE_PORT = "pickup_cruise_port"
    PICKUP_CRUISE_SHIP = "pickup_cruise_ship"
    PICKUP_SHIP_ARRIVAL = "pickup_ship_arrival"
    DROPOFF_LOCATION = "dropoff_location"
    DROPOFF_AIRPORT = "dropoff_airport"
    DROPOFF_AIRLINE = "dropoff_airline"
    DROPOFF_FLIGHT_NUMBER = "dropoff_flight_number"
    DROPOFF_CRUISE_PORT = "dropoff_cruise_port"
    DROPOFF_CRUISE_SHIP = "dropoff_cruise_ship"
    DROPOFF_SHIP_ARRIVAL = "dropoff_ship_arrival"
    CHARTER_HOURS = "charter_hours"
    PASSENGER_NAME = "passenger_name"
    PASSENGER_EMAIL = "passenger_email"
    PASSENGER_MOBILE = "passenger_mobile"


# A failure key is the field id, prefixed with "return_" on the return leg.
ValidationFailure = str

RETURN_LEG_MISSING: ValidationFailure = "return_leg"

PASSENGER_FIELDS = frozenset(
    {FieldId.PASSENGER_NAME, FieldId.PASSENGER_EMAIL, FieldId.PASSENGER_MOBILE}
)

_PICKUP_FIELDS: dict[EndpointKind, frozenset[FieldId]] = {
    EndpointKind.CITY: frozenset({FieldId.PICKUP_LOCATION}),
    EndpointKind.AIRPORT: frozenset(
        {
            FieldId.PICKUP_AIRPORT,
            FieldId.PICKUP_AIRLINE,
            FieldId.PICKUP_FLIGHT_NUMBER,
            FieldId.ORIGIN_AIRPORT_CITY,
        }
    ),
    EndpointKind.CRUISE: frozenset(
        {
            FieldId.PICKUP_LOCATION,
            FieldId.PICKUP_CRUISE_PORT,
            FieldId.PICKUP_CRUISE_SHIP,
            FieldId.PICKUP_SHIP_ARRIVAL,
        }
    ),
}

_DROPOFF_FIELDS: dict[EndpointKind, frozenset[FieldId]] = {
    EndpointKind.CITY: frozenset({FieldId.DROPOFF_LOCATION}),
    EndpointKind.AIRPORT: frozenset(
        {
            FieldId.DROPOFF_AIRPORT,
            FieldId.DROPOFF_AIRLINE,
            FieldId.DROPOFF_FLIGHT_NUMBER,
        }
    ),
    EndpointKind.CRUISE: frozenset(
        {
            FieldId.DROPOFF_CRUISE_PORT,
            FieldId.DROPOFF_CRUISE_SHIP,
            FieldId.DROPOFF_SHIP_ARRIVAL,
        }
    ),
}


def required_fields(
    service_type: ServiceType,
    transfer_type: TransferType | None,
    leg_role: LegRole = LegRole.OUTBOUND,
) -> frozenset[FieldId]:
    """Fields that must be filled for a leg of this shape."""
    fields: set[FieldId] = set()

    if transfer_type is None:
        fields.add(FieldId.TRANSFER_TYPE)
    else:
        fields |= _PICKUP_FIELDS[transfer_type.pickup]
        fields |= _DROPOFF_FIELDS[transfer_type.dropoff]

    if service_type is ServiceType.CHARTER_TOUR:
        fields.add(FieldId.CHARTER_HOURS)

    # The return leg shares the outbound passenger
    if leg_role is LegRole.OUTBOUND:
        fields |= PASSENGER_FIELDS

    return frozenset(fields)


def _has_location(endpoint: CityEndpoint | CruiseEndpoint) -> bool:
    return bool(endpoint.address.strip()) and endpoint.coordinate is not None


def _is_filled(leg: TripLeg, field: FieldId) -> bool:
    pickup, dropoff = leg.pickup, leg.dropoff

    match field:
        case FieldId.TRANSFER_TYPE:
            return leg.transfer_type is not None
        case FieldId.PICKUP_LOCATION:
            return isinstance(pickup, CityEndpoint | CruiseEndpoint) and _has_location(pickup)
        case FieldId.DROPOFF_LOCATION:
            return isinstance(dropoff, CityEndpoint | CruiseEndpoint) and _has_location(dropoff)
        case FieldId.PICKUP_AIRPORT:
            return isinstance(pickup, AirportEndpoint) and pickup.airport is not None
        case FieldId.PICKUP_AIRLINE:
            return isinstance(pickup, AirportEndpoint) and pickup.airline is not None
        case FieldId.PICKUP_FLIGHT_NUMBER:
            return isinstance(pickup, AirportEndpoint) and bool(pickup.flight_number.strip())
        case FieldId.ORIGIN_AIRPORT_CITY:
            return isinstance(pickup, AirportEndpoint) and bool(pickup.origin_airport_city.strip())
        case FieldId.DROPOFF_AIRPORT:
            return isinstance(dropoff, AirportEndpoint) and dropoff.airport is not None
        case FieldId.DROPOFF_AIRLINE:
            return isinstance(dropoff, AirportEndpoint) and dropoff.airline is not None
        case FieldId.DROPOFF_FLIGHT_NUMBER:
            return isinstance(dropoff, AirportEndpoint) and bool(dropoff.flight_number.strip())
        case FieldId.PICKUP_CRUISE_PORT:
            return isinstance(pickup, CruiseEndpoint) and bool(pickup.cruise_port.strip())
        case FieldId.PICKUP_CRUISE_SHIP:
            return isinstance(pickup, CruiseEndpoint) and bool(pickup.ship_name.strip())
        case FieldId.PICKUP_SHIP_ARRIVAL:
            return isinstance(pickup, CruiseEndpoint) and bool(pickup.ship_arrival_time.strip())
        case FieldId.DROPOFF_CRUISE_PORT:
            return isinstance(dropoff, CruiseEndpoint) and bool(dropoff.cruise_port.strip())
        case FieldId.DROPOFF_CRUISE_SHIP:
            return isinstance(dropoff, CruiseEndpoint) and bool(dropoff.ship_name.strip())
        case FieldId.DROPOFF_SHIP_ARRIVAL:
            return isinstance(dropoff, CruiseEndpoint) and bool(dropoff.ship_arrival_time.strip())
        case FieldId.CHARTER_HOURS:
            return leg.charter_hours is not None and leg.charter_hours > 0
        case FieldId.PASSENGER_NAME:
            return bool(leg.passenger.name.strip())
        case FieldId.PASSENGER_EMAIL:
            return EMAIL_PATTERN.match(leg.passenger.email.strip()) is not None
        case FieldId.PASSENGER_MOBILE:
            digits = sum(c.isdigit() for c in leg.passenger.mobile)
            return digits >= MIN_MOBILE_DIGITS

    raise AssertionError(f"unhandled field {field}")


def failure_key(field: FieldId, leg_role: LegRole) -> ValidationFailure:
    return f"return_{field.value}" if leg_role is LegRole.RETURN else field.value


def validate(
    leg: TripLeg,
    leg_role: LegRole = LegRole.OUTBOUND,
    fallback_transfer_type: TransferType | None = None,
) -> frozenset[ValidationFailure]:
    """Failure keys for every requirement the leg does not meet."""
    transfer_type = leg.transfer_type or fallback_transfer_type
    if transfer_type is not None and leg.transfer_type is None:
        leg = leg.with_transfer_type(transfer_type)

    required = required_fields(leg.service_type, transfer_type, leg_role)
    return frozenset(
        failure_key(field, leg_role) for field in required if not _is_filled(leg, field)
    )


def validate_booking(
    outbound: TripLeg, return_leg: TripLeg | None = None
) -> frozenset[ValidationFailure]:
    """Union of outbound and (for round trips) return-leg failures."""
    failures = set(validate(outbound, LegRole.OUTBOUND))

    if outbound.service_type is ServiceType.ROUND_TRIP:
        if return_leg is None:
            failures.add(RETURN_LEG_MISSING)
        else:
            fallback = outbound.transfer_type.reversed() if outbound.transfer_type else None
            failures |= validate(return_leg, LegRole.RETURN, fallback_transfer_type=fallback)

    return frozenset(failures)


# Extra stops closer than this (in degrees, ~222 m) to pickup or dropoff are rejected
EXTRA_STOP_TOLERANCE_DEGREES = 0.002

_COUNTRY_SYNONYMS = {
    "USA": "UNITED STATES",
    "US": "UNITED STATES",
    "UK": "UNITED KINGDOM",
}


def normalize_location_text(text: str) -> str:
    return " ".join(re.sub(r"[,;]", " ", text).split()).upper()


def check_extra_stop(stop: ExtraStop, leg: TripLeg) -> str | None:
    """Reason the stop duplicates the pickup or dropoff, or None if it is acceptable."""
    pickup_coord = leg.pickup.effective_coordinate
    dropoff_coord = leg.dropoff.effective_coordinate

    if stop.coordinate is not None:
        if pickup_coord is not None and coordinates_approximately_equal(
            stop.coordinate, pickup_coord, EXTRA_STOP_TOLERANCE_DEGREES
        ):
            return "Extra stop cannot be the same as pickup location."
        if dropoff_coord is not None and coordinates_approximately_equal(
            stop.coordinate, dropoff_coord, EXTRA_STOP_TOLERANCE_DEGREES
        ):
            return "Extra stop cannot be the same as drop-off location."

    stop_text = normalize_location_text(stop.address)
    if stop_text and stop_text == normalize_location_text(leg.pickup.display_text):
        return "Extra stop cannot be the same as pickup location."
    if stop_text and stop_text == normalize_location_text(leg.dropoff.display_text):
        return "Extra stop cannot be the same as drop-off location."
    return None


def _extract_country(address: str) -> str | None:
    components = [c.strip() for c in re.split(r"[,;]", address) if c.strip()]
    for component in reversed(components):
        if any(ch.isalpha() for ch in component):
            return component
    return None


def _normalize_country(country: str | None) -> str | None:
    if not country or not country.strip():
        return None
    normalized = " ".join(country.replace(".", "").replace(",", "").split()).upper()
    return _COUNTRY_SYNONYMS.get(normalized, normalized)


def countries_differ(pickup_text: str, dropoff_text: str) -> bool:
    """True when both addresses name a country and the countries differ."""
    pickup = _normalize_country(_extract_country(pickup_text))
    dropoff = _normalize_country(_extract_country(dropoff_text))
    if pickup is None or dropoff is None:
        return False
    return pickup != dropoff
