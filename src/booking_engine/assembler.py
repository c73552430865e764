"""Builds the reservation payload from validated trip legs."""

import logging
from collections.abc import Iterable

from .core.exceptions import IncompleteBookingError
from .fare import FareBreakdown
from .models.rates import RateQuote, Vehicle
from .models.reservation import BookingRequest, ExtraStopPayload, LegPayload
from .models.trip import (
    AirportEndpoint,
    CruiseEndpoint,
    EndpointKind,
    ExtraStop,
    ServiceType,
    TripLeg,
)
from .validation import validate_booking

logger = logging.getLogger(__name__)

DEFAULT_EXTRA_STOP_RATE = "out_town"

_DRIVER_CONFIRMATION = (
    "Text the client a day before to confirm driver name , cell phone and booking details. "
    "Text client with ETA when en route"
)

DEFAULT_SPECIAL_INSTRUCTIONS: dict[EndpointKind, str] = {
    EndpointKind.CITY: f"1. Driver - Text on location. {_DRIVER_CONFIRMATION}",
    EndpointKind.CRUISE: (
        f"1. Pax - Text driver when docked.  2. Driver - {_DRIVER_CONFIRMATION}. "
        "Text pax with pickup instructions when ship has arrived."
    ),
    EndpointKind.AIRPORT: (
        f"1. Pax - Text driver when landing.  2. Driver - {_DRIVER_CONFIRMATION}. "
        "Text pax with pickup instructions when plane has arrived."
    ),
}

CITY_MEET_GREET = "Driver - Text/call when on location"
AIRPORT_MEET_GREET = "Driver -  Airport - Text/call after plane lands with curbside meet location"


def default_special_instructions(pickup_kind: EndpointKind) -> str:
    return DEFAULT_SPECIAL_INSTRUCTIONS[pickup_kind]


def default_meet_greet(pickup_kind: EndpointKind) -> str:
    return CITY_MEET_GREET if pickup_kind is EndpointKind.CITY else AIRPORT_MEET_GREET


def extra_stop_payloads(stops: Iterable[ExtraStop]) -> list[ExtraStopPayload]:
    """Confirmed stops with coordinates, in order; anything else is not sent."""
    return [
        ExtraStopPayload(
            address=stop.address,
            latitude=stop.coordinate.latitude,
            longitude=stop.coordinate.longitude,
            rate=DEFAULT_EXTRA_STOP_RATE,
            booking_instructions=stop.instructions,
        )
        for stop in stops
        if stop.routable and stop.coordinate is not None
    ]


def _leg_payload(leg: TripLeg) -> LegPayload:
    if leg.transfer_type is None:
        raise ValueError("Cannot build a leg payload without a transfer type")

    pickup, dropoff = leg.pickup, leg.dropoff
    pickup_coord = pickup.effective_coordinate
    dropoff_coord = dropoff.effective_coordinate
    fields: dict[str, object] = {
        "transfer_type": leg.transfer_type.token,
        "pickup": pickup.display_text,
        "dropoff": dropoff.display_text,
        "pickup_latitude": pickup_coord.latitude if pickup_coord else None,
        "pickup_longitude": pickup_coord.longitude if pickup_coord else None,
        "dropoff_latitude": dropoff_coord.latitude if dropoff_coord else None,
        "dropoff_longitude": dropoff_coord.longitude if dropoff_coord else None,
        "extra_stops": extra_stop_payloads(leg.extra_stops),
        "booking_instructions": leg.special_instructions
        or default_special_instructions(pickup.kind),
        "meet_greet_choice": leg.meet_greet_choice or default_meet_greet(pickup.kind),
    }

    if leg.pickup_at is not None:
        fields["pickup_date"] = leg.pickup_at.strftime("%Y-%m-%d")
        fields["pickup_time"] = leg.pickup_at.strftime("%H:%M:%S")

    if isinstance(pickup, AirportEndpoint):
        fields["pickup_airport"] = pickup.airport.id if pickup.airport else None
        fields["pickup_airport_name"] = pickup.display_text
        fields["pickup_airline"] = pickup.airline.id if pickup.airline else None
        fields["pickup_airline_name"] = pickup.airline.name if pickup.airline else ""
        fields["pickup_flight"] = pickup.flight_number
        fields["origin_airport_city"] = pickup.origin_airport_city

    if isinstance(dropoff, AirportEndpoint):
        fields["dropoff_airport"] = dropoff.airport.id if dropoff.airport else None
        fields["dropoff_airport_name"] = dropoff.display_text
        fields["dropoff_airline"] = dropoff.airline.id if dropoff.airline else None
        fields["dropoff_airline_name"] = dropoff.airline.name if dropoff.airline else ""
        fields["dropoff_flight"] = dropoff.flight_number

    # At most one endpoint is a cruise port
    cruise = next((e for e in (pickup, dropoff) if isinstance(e, CruiseEndpoint)), None)
    if cruise is not None:
        fields["cruise_port"] = cruise.cruise_port
        fields["cruise_name"] = cruise.ship_name
        fields["cruise_time"] = cruise.ship_arrival_time

    return LegPayload.model_validate(fields)


class BookingRequestAssembler:
    """Merges the outbound and return legs into one reservation request."""

    def assemble(
        self,
        outbound: TripLeg,
        return_leg: TripLeg | None = None,
        fare: FareBreakdown | None = None,
        vehicle: Vehicle | None = None,
        quote: RateQuote | None = None,
        min_rate_involved: bool | None = None,
    ) -> BookingRequest:
        """Merge legs, fare and the accepted quote; raises IncompleteBookingError if invalid.

        ``min_rate_involved`` defaults to the quote's flag.
        """
        failures = validate_booking(outbound, return_leg)
        if failures:
            raise IncompleteBookingError(failures)

        is_round_trip = outbound.service_type is ServiceType.ROUND_TRIP
        return_payload = None
        if is_round_trip and return_leg is not None:
            if return_leg.transfer_type is None and outbound.transfer_type is not None:
                return_leg = return_leg.with_transfer_type(outbound.transfer_type.reversed())
            return_payload = _leg_payload(return_leg)

        passenger = outbound.passenger
        request = BookingRequest(
            service_type=outbound.service_type.value,
            number_of_hours=outbound.charter_hours or 0,
            number_of_vehicles=outbound.vehicle_count,
            total_passengers=outbound.passenger_count,
            luggage_count=outbound.luggage_count,
            passenger_name=passenger.name.strip(),
            passenger_email=passenger.email.strip(),
            passenger_cell=passenger.mobile.strip(),
            vehicle_id=vehicle.id if vehicle else None,
            outbound=_leg_payload(outbound),
            return_leg=return_payload,
            sub_total=fare.subtotal if fare else None,
            grand_total=fare.grand_total if fare else None,
            return_sub_total=fare.return_subtotal if fare and is_round_trip else None,
            return_grand_total=fare.return_grand_total if fare and is_round_trip else None,
            rate_array=quote.rate_array if quote else None,
            return_rate_array=quote.return_rate_array if quote and is_round_trip else None,
            min_rate_involved=(
                min_rate_involved
                if min_rate_involved is not None
                else bool(quote and quote.min_rate_involved)
            ),
            shares_array=fare.shares if fare else None,
            return_shares_array=fare.return_shares if fare and is_round_trip else None,
        )
        logger.debug(
            f"Assembled {request.service_type} booking "
            f"({outbound.transfer_type.token if outbound.transfer_type else '-'})"
        )
        return request
