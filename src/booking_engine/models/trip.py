"""Trip leg models: service/transfer types, endpoints and extra stops."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ServiceType(str, Enum):
    """Booking service types."""

    ONE_WAY = "one_way"
    ROUND_TRIP = "round_trip"
    CHARTER_TOUR = "charter_tour"

    @property
    def label(self) -> str:
        return _SERVICE_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "ServiceType":
        """Accept wire tokens ("charter_tour") and display labels ("Charter Tour")."""
        normalized = value.strip().lower().replace("/", "_").replace(" ", "_")
        return cls(normalized)


_SERVICE_LABELS = {
    ServiceType.ONE_WAY: "One Way",
    ServiceType.ROUND_TRIP: "Round Trip",
    ServiceType.CHARTER_TOUR: "Charter Tour",
}


class EndpointKind(str, Enum):
    """Category of a pickup or dropoff point."""

    CITY = "city"
    AIRPORT = "airport"
    CRUISE = "cruise"

    @property
    def label(self) -> str:
        return "Cruise Port" if self is EndpointKind.CRUISE else self.value.capitalize()


class LegRole(str, Enum):
    OUTBOUND = "outbound"
    RETURN = "return"


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class TransferType(BaseModel):
    """Ordered (pickup kind, dropoff kind) pair."""

    model_config = ConfigDict(frozen=True)

    pickup: EndpointKind
    dropoff: EndpointKind

    @property
    def label(self) -> str:
        return f"{self.pickup.label} to {self.dropoff.label}"

    @property
    def token(self) -> str:
        return f"{self.pickup.value}_to_{self.dropoff.value}"

    def reversed(self) -> "TransferType":
        return TransferType(pickup=self.dropoff, dropoff=self.pickup)


class Airport(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    code: str
    name: str
    city: str = ""
    country: str = ""
    coordinate: Coordinate | None = None

    @property
    def display_name(self) -> str:
        return f"{self.code} - {self.name}" if self.code else self.name


class Airline(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    code: str
    name: str


class CityEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[EndpointKind.CITY] = EndpointKind.CITY
    address: str = ""
    coordinate: Coordinate | None = None

    @property
    def display_text(self) -> str:
        return self.address

    @property
    def effective_coordinate(self) -> Coordinate | None:
        return self.coordinate


class AirportEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[EndpointKind.AIRPORT] = EndpointKind.AIRPORT
    airport: Airport | None = None
    airline: Airline | None = None
    flight_number: str = ""
    # Only meaningful when the airport is the pickup endpoint
    origin_airport_city: str = ""

    @property
    def display_text(self) -> str:
        return self.airport.display_name if self.airport else ""

    @property
    def effective_coordinate(self) -> Coordinate | None:
        return self.airport.coordinate if self.airport else None


class CruiseEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[EndpointKind.CRUISE] = EndpointKind.CRUISE
    address: str = ""
    coordinate: Coordinate | None = None
    cruise_port: str = ""
    ship_name: str = ""
    ship_arrival_time: str = ""

    @property
    def display_text(self) -> str:
        return self.address or self.cruise_port

    @property
    def effective_coordinate(self) -> Coordinate | None:
        return self.coordinate


Endpoint = Annotated[
    CityEndpoint | AirportEndpoint | CruiseEndpoint,
    Field(discriminator="kind"),
]


def blank_endpoint(kind: EndpointKind) -> CityEndpoint | AirportEndpoint | CruiseEndpoint:
    if kind is EndpointKind.AIRPORT:
        return AirportEndpoint()
    if kind is EndpointKind.CRUISE:
        return CruiseEndpoint()
    return CityEndpoint()


def convert_endpoint(
    endpoint: CityEndpoint | AirportEndpoint | CruiseEndpoint, kind: EndpointKind
) -> CityEndpoint | AirportEndpoint | CruiseEndpoint:
    """Rebuild an endpoint for a new kind, keeping the address where both kinds have one."""
    if endpoint.kind is kind:
        return endpoint
    if kind is EndpointKind.AIRPORT:
        return AirportEndpoint()
    address = getattr(endpoint, "address", "")
    coordinate = getattr(endpoint, "coordinate", None)
    if kind is EndpointKind.CRUISE:
        return CruiseEndpoint(address=address, coordinate=coordinate)
    return CityEndpoint(address=address, coordinate=coordinate)


class ExtraStop(BaseModel):
    """Intermediate waypoint between pickup and dropoff."""

    model_config = ConfigDict(frozen=True)

    address: str = ""
    coordinate: Coordinate | None = None
    location_confirmed: bool = False
    instructions: str = ""

    @property
    def routable(self) -> bool:
        return self.location_confirmed and self.coordinate is not None


class Passenger(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    mobile: str = ""


class TripLeg(BaseModel):
    """One directional journey segment, replaced wholesale on every edit."""

    model_config = ConfigDict(frozen=True)

    service_type: ServiceType = ServiceType.ONE_WAY
    transfer_type: TransferType | None = None
    pickup: Endpoint = Field(default_factory=CityEndpoint)
    dropoff: Endpoint = Field(default_factory=CityEndpoint)
    pickup_at: datetime | None = None
    charter_hours: int | None = None
    vehicle_count: int = Field(default=1, ge=1)
    passenger_count: int = Field(default=1, ge=1)
    luggage_count: int = Field(default=0, ge=0)
    extra_stops: tuple[ExtraStop, ...] = ()
    special_instructions: str = ""
    meet_greet_choice: str = ""
    passenger: Passenger = Field(default_factory=Passenger)

    @model_validator(mode="after")
    def validate_endpoint_kinds(self) -> "TripLeg":
        if self.transfer_type is None:
            return self
        if self.pickup.kind is not self.transfer_type.pickup:
            raise ValueError(
                f"Pickup endpoint is {self.pickup.kind.value} but transfer type "
                f"requires {self.transfer_type.pickup.value}"
            )
        if self.dropoff.kind is not self.transfer_type.dropoff:
            raise ValueError(
                f"Dropoff endpoint is {self.dropoff.kind.value} but transfer type "
                f"requires {self.transfer_type.dropoff.value}"
            )
        return self

    def with_transfer_type(self, transfer_type: TransferType) -> "TripLeg":
        return self.model_copy(
            update={
                "transfer_type": transfer_type,
                "pickup": convert_endpoint(self.pickup, transfer_type.pickup),
                "dropoff": convert_endpoint(self.dropoff, transfer_type.dropoff),
            }
        )

    def routable_waypoints(self) -> tuple[Coordinate, ...]:
        return tuple(stop.coordinate for stop in self.extra_stops if stop.routable)  # type: ignore[misc]

    def route_key(self) -> tuple[Coordinate | None, Coordinate | None, tuple[Coordinate, ...]]:
        return (
            self.pickup.effective_coordinate,
            self.dropoff.effective_coordinate,
            self.routable_waypoints(),
        )
