"""Rebuilding trip legs from a saved reservation (edit and repeat flows)."""

import json
import logging
from datetime import datetime
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from .core.exceptions import UnknownTransferTypeError
from .models.trip import (
    Airline,
    Airport,
    AirportEndpoint,
    CityEndpoint,
    Coordinate,
    CruiseEndpoint,
    EndpointKind,
    ExtraStop,
    Passenger,
    ServiceType,
    TransferType,
    TripLeg,
)
from .transfer import resolve

logger = logging.getLogger(__name__)

_EMPTY_MARKERS = {"", "[]", "null"}


class ReservationSnapshot(BaseModel):
    """Saved reservation as returned by the backend's edit endpoint.

    The backend sends most numbers as strings and uses "" or "null" for
    missing values; both are normalized before validation.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    reservation_id: int | None = None
    service_type: str = ServiceType.ONE_WAY.value
    transfer_type: str | None = None
    return_transfer_type: str | None = None
    min_rate_involved: bool = False

    pickup_date: str | None = None
    pickup_time: str | None = None
    pickup: str = ""
    pickup_latitude: float | None = None
    pickup_longitude: float | None = None
    pickup_airport: int | None = None
    pickup_airport_name: str = ""
    pickup_airport_latitude: float | None = None
    pickup_airport_longitude: float | None = None
    pickup_airline: int | None = None
    pickup_airline_name: str = ""
    pickup_flight: str = ""
    origin_airport_city: str = ""
    cruise_port: str = ""
    cruise_name: str = ""
    cruise_time: str = ""
    dropoff: str = ""
    dropoff_latitude: float | None = None
    dropoff_longitude: float | None = None
    dropoff_airport: int | None = None
    dropoff_airport_name: str = ""
    dropoff_airport_latitude: float | None = None
    dropoff_airport_longitude: float | None = None
    dropoff_airline: int | None = None
    dropoff_airline_name: str = ""
    dropoff_flight: str = ""
    extra_stops: str | list[dict[str, Any]] | None = None
    booking_instructions: str = ""
    meet_greet_choice_name: str = ""

    return_pickup_date: str | None = None
    return_pickup_time: str | None = None
    return_pickup: str = ""
    return_pickup_latitude: float | None = None
    return_pickup_longitude: float | None = None
    return_pickup_airport: int | None = None
    return_pickup_airport_name: str = ""
    return_pickup_airport_latitude: float | None = None
    return_pickup_airport_longitude: float | None = None
    return_pickup_airline: int | None = None
    return_pickup_airline_name: str = ""
    return_pickup_flight: str = ""
    return_origin_airport_city: str = ""
    return_cruise_port: str = ""
    return_cruise_name: str = ""
    return_cruise_time: str = ""
    return_dropoff: str = ""
    return_dropoff_latitude: float | None = None
    return_dropoff_longitude: float | None = None
    return_dropoff_airport: int | None = None
    return_dropoff_airport_name: str = ""
    return_dropoff_airport_latitude: float | None = None
    return_dropoff_airport_longitude: float | None = None
    return_dropoff_airline: int | None = None
    return_dropoff_airline_name: str = ""
    return_dropoff_flight: str = ""
    return_extra_stops: str | list[dict[str, Any]] | None = None
    return_booking_instructions: str = ""
    return_meet_greet_choice_name: str = ""

    number_of_hours: int | None = None
    number_of_vehicles: int | None = None
    total_passengers: int | None = None
    luggage_count: int | None = None
    vehicle_id: int | None = None

    passenger_name: str = ""
    passenger_email: str = ""
    passenger_cell: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def normalize_blank(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or (isinstance(v, str) and v.strip() in ("", "null")):
            annotation = cls.model_fields[info.field_name].annotation
            if annotation is str:
                return ""
            if annotation is bool:
                return False
            return None
        return v


def parse_extra_stops(raw: str | list[dict[str, Any]] | None) -> tuple[ExtraStop, ...]:
    """Extra stops from a JSON array of {address, latitude, longitude} or a comma-separated string."""
    if raw is None:
        return ()

    if isinstance(raw, str):
        text = raw.strip()
        if text in _EMPTY_MARKERS:
            return ()
        if not text.startswith("["):
            return tuple(
                ExtraStop(address=address.strip(), location_confirmed=True)
                for address in text.split(",")
                if address.strip()
            )
        try:
            items = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Could not parse extra stops JSON; ignoring them")
            return ()
    else:
        items = raw

    stops = []
    for item in items:
        if not isinstance(item, dict):
            continue
        address = str(item.get("address") or "").strip()
        if not address:
            continue
        stops.append(
            ExtraStop(
                address=address,
                coordinate=_coordinate(item.get("latitude"), item.get("longitude")),
                location_confirmed=True,
                instructions=str(item.get("booking_instructions") or ""),
            )
        )
    return tuple(stops)


def _coordinate(latitude: Any, longitude: Any) -> Coordinate | None:
    try:
        lat, lng = float(latitude), float(longitude)
    except (TypeError, ValueError):
        return None
    if lat == 0.0 and lng == 0.0:
        return None
    try:
        return Coordinate(latitude=lat, longitude=lng)
    except pydantic.ValidationError:
        return None


def _pickup_at(date: str | None, time: str | None) -> datetime | None:
    if not date:
        return None
    try:
        return datetime.fromisoformat(f"{date}T{time or '00:00:00'}")
    except ValueError:
        logger.warning(f"Unparseable pickup date/time {date!r} {time!r}")
        return None


def _transfer_type(label: str | None) -> TransferType | None:
    if not label:
        return None
    try:
        return resolve(label)
    except UnknownTransferTypeError as e:
        logger.warning(e.message)
        return None


def _endpoint(
    snapshot: ReservationSnapshot, kind: EndpointKind, prefix: str, side: str
) -> CityEndpoint | AirportEndpoint | CruiseEndpoint:
    def field(name: str) -> Any:
        return getattr(snapshot, f"{prefix}{side}{name}")

    if kind is EndpointKind.AIRPORT:
        airport_id = field("_airport")
        airline_id = field("_airline")
        airport = None
        if airport_id is not None:
            airport = Airport(
                id=airport_id,
                code="",
                name=field("_airport_name") or field(""),
                coordinate=_coordinate(field("_airport_latitude"), field("_airport_longitude")),
            )
        airline = None
        if airline_id is not None:
            airline = Airline(id=airline_id, code="", name=field("_airline_name"))
        origin_city = getattr(snapshot, f"{prefix}origin_airport_city") if side == "pickup" else ""
        return AirportEndpoint(
            airport=airport,
            airline=airline,
            flight_number=field("_flight"),
            origin_airport_city=origin_city,
        )

    coordinate = _coordinate(field("_latitude"), field("_longitude"))
    if kind is EndpointKind.CRUISE:
        return CruiseEndpoint(
            address=field(""),
            coordinate=coordinate,
            cruise_port=getattr(snapshot, f"{prefix}cruise_port"),
            ship_name=getattr(snapshot, f"{prefix}cruise_name"),
            ship_arrival_time=getattr(snapshot, f"{prefix}cruise_time"),
        )
    return CityEndpoint(address=field(""), coordinate=coordinate)


def _leg(
    snapshot: ReservationSnapshot,
    service_type: ServiceType,
    transfer_type: TransferType | None,
    prefix: str,
    keep_schedule: bool,
) -> TripLeg:
    pickup_kind = transfer_type.pickup if transfer_type else EndpointKind.CITY
    dropoff_kind = transfer_type.dropoff if transfer_type else EndpointKind.CITY
    pickup_at = None
    if keep_schedule:
        pickup_at = _pickup_at(
            getattr(snapshot, f"{prefix}pickup_date"), getattr(snapshot, f"{prefix}pickup_time")
        )

    return TripLeg(
        service_type=service_type,
        transfer_type=transfer_type,
        pickup=_endpoint(snapshot, pickup_kind, prefix, "pickup"),
        dropoff=_endpoint(snapshot, dropoff_kind, prefix, "dropoff"),
        pickup_at=pickup_at,
        charter_hours=snapshot.number_of_hours or None,
        vehicle_count=max(snapshot.number_of_vehicles or 1, 1),
        passenger_count=max(snapshot.total_passengers or 1, 1),
        luggage_count=max(snapshot.luggage_count or 0, 0),
        extra_stops=parse_extra_stops(getattr(snapshot, f"{prefix}extra_stops")),
        special_instructions=getattr(snapshot, f"{prefix}booking_instructions"),
        meet_greet_choice=getattr(snapshot, f"{prefix}meet_greet_choice_name"),
        passenger=Passenger(
            name=snapshot.passenger_name,
            email=snapshot.passenger_email,
            mobile=snapshot.passenger_cell,
        ),
    )


def legs_from_snapshot(
    snapshot: ReservationSnapshot, keep_schedule: bool = True
) -> tuple[TripLeg, TripLeg | None]:
    """Outbound and (for round trips) return legs of a saved reservation.

    Repeat flows pass ``keep_schedule=False`` so the user must pick a new
    pickup date and time.
    """
    try:
        service_type = ServiceType.parse(snapshot.service_type)
    except ValueError:
        logger.warning(f"Unknown service type {snapshot.service_type!r}; using one way")
        service_type = ServiceType.ONE_WAY

    transfer_type = _transfer_type(snapshot.transfer_type)
    outbound = _leg(snapshot, service_type, transfer_type, "", keep_schedule)

    if service_type is not ServiceType.ROUND_TRIP:
        return outbound, None

    return_transfer_type = _transfer_type(snapshot.return_transfer_type)
    if return_transfer_type is None and transfer_type is not None:
        return_transfer_type = transfer_type.reversed()
    return_leg = _leg(snapshot, service_type, return_transfer_type, "return_", keep_schedule)
    return outbound, return_leg
