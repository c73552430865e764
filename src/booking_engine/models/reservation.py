"""Reservation payload and result models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .rates import RateArray, SharesArray


class ExtraStopPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    latitude: float
    longitude: float
    rate: str = "out_town"
    booking_instructions: str = ""


class LegPayload(BaseModel):
    """Wire fields describing one leg of a reservation."""

    model_config = ConfigDict(frozen=True)

    transfer_type: str
    pickup_date: str = ""
    pickup_time: str = ""
    pickup: str = ""
    pickup_latitude: float | None = None
    pickup_longitude: float | None = None
    pickup_airport: int | None = None
    pickup_airport_name: str = ""
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
    dropoff_airline: int | None = None
    dropoff_airline_name: str = ""
    dropoff_flight: str = ""
    extra_stops: list[ExtraStopPayload] = Field(default_factory=list)
    booking_instructions: str = ""
    meet_greet_choice: str = ""


class BookingRequest(BaseModel):
    """Canonical payload for the create/update reservation endpoints."""

    model_config = ConfigDict(frozen=True)

    service_type: str
    number_of_hours: int = 0
    number_of_vehicles: int = 1
    total_passengers: int = 1
    luggage_count: int = 0
    passenger_name: str
    passenger_email: str
    passenger_cell: str
    vehicle_id: int | None = None
    outbound: LegPayload
    return_leg: LegPayload | None = None
    sub_total: float | None = None
    grand_total: float | None = None
    return_sub_total: float | None = None
    return_grand_total: float | None = None
    rate_array: RateArray | None = Field(default=None, serialization_alias="rateArray")
    return_rate_array: RateArray | None = Field(
        default=None, serialization_alias="returnRateArray"
    )
    min_rate_involved: bool = False
    shares_array: SharesArray | None = None
    return_shares_array: SharesArray | None = None

    def payload(self) -> dict[str, Any]:
        """Flatten into the backend's field naming (return fields prefixed ``return_``)."""
        data = self.model_dump(
            mode="json", by_alias=True, exclude={"outbound", "return_leg"}, exclude_none=True
        )
        data.update(self.outbound.model_dump(mode="json"))
        if self.return_leg is not None:
            for key, value in self.return_leg.model_dump(mode="json").items():
                data[f"return_{key}"] = value
        return data


class ReservationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    reservation_id: int | None = None
    return_reservation_id: int | None = None
    order_id: int | None = None
    message: str = ""


class SubmitResult(BaseModel):
    """Outcome of BookingSession.submit(); failures never raise."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: bool
    reservation: ReservationResult | None = None
    error: Exception | None = None

    @classmethod
    def success(cls, reservation: ReservationResult) -> "SubmitResult":
        return cls(ok=True, reservation=reservation)

    @classmethod
    def failure(cls, error: Exception) -> "SubmitResult":
        return cls(ok=False, error=error)
