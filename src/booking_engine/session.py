"""Host-facing booking flow: owns the legs, validation and recalculation."""

import logging
import uuid
from datetime import datetime
from typing import Any

from .assembler import BookingRequestAssembler
from .booking_logging import log_booking_context, setup_logging
from .clients.booking_api import BookingApiClient, VehicleRateProvider
from .clients.directions import DirectionsClient
from .coordinator import CoordinatorState, RecalculationCoordinator, Trigger
from .core.exceptions import IncompleteBookingError
from .fare import FareBreakdown, FareCalculator
from .geo.formatting import format_travel_info
from .geo.route_cache import DistanceCache
from .models.rates import RateQuote, Vehicle
from .models.reservation import SubmitResult
from .models.trip import (
    Airline,
    Airport,
    AirportEndpoint,
    CityEndpoint,
    Coordinate,
    CruiseEndpoint,
    ExtraStop,
    LegRole,
    Passenger,
    ServiceType,
    TransferType,
    TripLeg,
)
from .prefill import ReservationSnapshot, legs_from_snapshot
from .providers import DirectionsProvider, RateQuoteProvider, ReservationProvider
from .settings import Settings
from .transfer import resolve_or_keep
from .validation import (
    ValidationFailure,
    check_extra_stop,
    countries_differ,
    validate_booking,
)

logger = logging.getLogger(__name__)

_LOCATION_TRIGGERS = {
    (LegRole.OUTBOUND, "pickup"): Trigger.PICKUP_LOCATION,
    (LegRole.OUTBOUND, "dropoff"): Trigger.DROPOFF_LOCATION,
    (LegRole.RETURN, "pickup"): Trigger.RETURN_PICKUP_LOCATION,
    (LegRole.RETURN, "dropoff"): Trigger.RETURN_DROPOFF_LOCATION,
}


def _for_role(role: LegRole, outbound: Trigger, inbound: Trigger) -> Trigger:
    return inbound if role is LegRole.RETURN else outbound


def configure_logging(settings: Settings) -> None:
    """Install the engine's log handler using the configured level and format."""
    setup_logging(
        level=settings.engine.log_level,
        json_output=settings.engine.log_format == "json",
        environment=settings.engine.environment,
        quiet_loggers=settings.engine.quiet_loggers,
    )


def default_collaborators(settings: Settings, vehicle: Vehicle) -> dict[str, Any]:
    """Keyword arguments wiring a session to the HTTP clients configured in settings."""
    api = BookingApiClient(
        base_url=settings.booking_api.base_url,
        token=settings.booking_api.token,
        timeout=settings.booking_api.timeout,
        max_retries=settings.booking_api.max_retries,
        retry_base_delay=settings.booking_api.retry_base_delay,
    )
    return {
        "rate_provider": VehicleRateProvider(api, vehicle),
        "directions": DirectionsClient(
            base_url=settings.directions.base_url,
            api_key=settings.directions.api_key,
            timeout=settings.directions.timeout,
        ),
        "reservations": api,
        "vehicle": vehicle,
        "debounce_seconds": settings.engine.recalc_debounce_seconds,
    }


class BookingSession:
    """One booking flow (new, edit or repeat).

    Every setter replaces the affected leg value, re-derives the validation
    state synchronously and tells the coordinator what changed. Setters
    must be called from within the running event loop. Invalid arguments
    are logged and the last good value is kept.
    """

    def __init__(
        self,
        rate_provider: RateQuoteProvider,
        directions: DirectionsProvider,
        reservations: ReservationProvider,
        *,
        outbound: TripLeg | None = None,
        return_leg: TripLeg | None = None,
        vehicle: Vehicle | None = None,
        reservation_id: int | None = None,
        debounce_seconds: float = 0.3,
        calculator: FareCalculator | None = None,
        assembler: BookingRequestAssembler | None = None,
        booking_id: str | None = None,
        saved_min_rate_involved: bool = False,
    ):
        self.booking_id = booking_id or uuid.uuid4().hex[:12]
        self.reservation_id = reservation_id
        # Minimum-rate flag stored with the reservation being edited; a fresh quote overrides it
        self.saved_min_rate_involved = saved_min_rate_involved
        self.vehicle = vehicle
        self.reservations = reservations
        self.assembler = assembler or BookingRequestAssembler()
        self.distance_cache = DistanceCache(directions)

        self._outbound = outbound or TripLeg()
        self._return_leg = return_leg
        if self._outbound.service_type is ServiceType.ROUND_TRIP and self._return_leg is None:
            self._return_leg = self._default_return_leg()
        elif self._outbound.service_type is not ServiceType.ROUND_TRIP:
            self._return_leg = None

        self.coordinator = RecalculationCoordinator(
            rate_provider,
            self.distance_cache,
            self.legs,
            calculator=calculator,
            vehicle=vehicle,
            debounce_seconds=debounce_seconds,
        )
        self._validation = validate_booking(self._outbound, self._return_leg)

    @classmethod
    def new(
        cls,
        rate_provider: RateQuoteProvider,
        directions: DirectionsProvider,
        reservations: ReservationProvider,
        *,
        service_type: ServiceType = ServiceType.ONE_WAY,
        transfer_type: TransferType | None = None,
        passenger: Passenger | None = None,
        **kwargs: Any,
    ) -> "BookingSession":
        outbound = TripLeg(service_type=service_type, passenger=passenger or Passenger())
        if transfer_type is not None:
            outbound = outbound.with_transfer_type(transfer_type)
        return cls(rate_provider, directions, reservations, outbound=outbound, **kwargs)

    @classmethod
    def from_edit(
        cls,
        reservation_id: int,
        snapshot: ReservationSnapshot,
        rate_provider: RateQuoteProvider,
        directions: DirectionsProvider,
        reservations: ReservationProvider,
        **kwargs: Any,
    ) -> "BookingSession":
        outbound, return_leg = legs_from_snapshot(snapshot, keep_schedule=True)
        return cls(
            rate_provider,
            directions,
            reservations,
            outbound=outbound,
            return_leg=return_leg,
            reservation_id=reservation_id,
            saved_min_rate_involved=snapshot.min_rate_involved,
            **kwargs,
        )

    @classmethod
    def from_repeat(
        cls,
        snapshot: ReservationSnapshot,
        rate_provider: RateQuoteProvider,
        directions: DirectionsProvider,
        reservations: ReservationProvider,
        **kwargs: Any,
    ) -> "BookingSession":
        outbound, return_leg = legs_from_snapshot(snapshot, keep_schedule=False)
        return cls(
            rate_provider,
            directions,
            reservations,
            outbound=outbound,
            return_leg=return_leg,
            **kwargs,
        )

    def start(self) -> None:
        """Finish setup and request the first quote."""
        with log_booking_context(self.booking_id):
            logger.info(f"Booking session started ({'edit' if self.is_edit else 'create'})")
            self.coordinator.mark_ready()
            self.coordinator.notify(Trigger.SETUP_COMPLETE)

    async def close(self) -> None:
        await self.coordinator.close()

    # Read side

    @property
    def outbound(self) -> TripLeg:
        return self._outbound

    @property
    def return_leg(self) -> TripLeg | None:
        return self._return_leg

    def legs(self) -> tuple[TripLeg, TripLeg | None]:
        return self._outbound, self._return_leg

    @property
    def is_edit(self) -> bool:
        return self.reservation_id is not None

    @property
    def validation_state(self) -> frozenset[ValidationFailure]:
        return self._validation

    @property
    def is_valid(self) -> bool:
        return not self._validation

    @property
    def fare_breakdown(self) -> FareBreakdown:
        return self.coordinator.fare_breakdown()

    @property
    def coordinator_state(self) -> CoordinatorState:
        return self.coordinator.state

    @property
    def quote(self) -> RateQuote | None:
        return self.coordinator.quote

    @property
    def min_rate_involved(self) -> bool:
        quote = self.coordinator.quote
        return quote.min_rate_involved if quote is not None else self.saved_min_rate_involved

    @property
    def last_error(self) -> Exception | None:
        return self.coordinator.last_error

    @property
    def crosses_border(self) -> bool:
        """Pickup and dropoff addresses name different countries."""
        return countries_differ(
            self._outbound.pickup.display_text, self._outbound.dropoff.display_text
        )

    def travel_info(self, role: LegRole = LegRole.OUTBOUND) -> str | None:
        """Duration and distance of the leg's last resolved route, e.g. "42 mins / 12.3 km"."""
        metrics = self.distance_cache.peek(role)
        if metrics is None:
            return None
        return format_travel_info(metrics.distance_meters, metrics.duration_seconds)

    # Internals

    def _leg(self, role: LegRole) -> TripLeg | None:
        return self._return_leg if role is LegRole.RETURN else self._outbound

    def _default_return_leg(self) -> TripLeg:
        outbound = self._outbound
        transfer_type = outbound.transfer_type.reversed() if outbound.transfer_type else None
        return outbound.model_copy(
            update={
                "transfer_type": transfer_type,
                "pickup": outbound.dropoff,
                "dropoff": outbound.pickup,
                "pickup_at": None,
                "extra_stops": (),
                "special_instructions": "",
                "meet_greet_choice": "",
            }
        )

    def _commit(
        self, outbound: TripLeg, return_leg: TripLeg | None, trigger: Trigger | None
    ) -> None:
        self._outbound = outbound
        self._return_leg = return_leg
        self._validation = validate_booking(outbound, return_leg)
        if trigger is not None:
            with log_booking_context(self.booking_id):
                self.coordinator.notify(trigger)

    def _replace(self, role: LegRole, leg: TripLeg, trigger: Trigger | None) -> None:
        if role is LegRole.RETURN:
            self._commit(self._outbound, leg, trigger)
        else:
            self._commit(leg, self._return_leg, trigger)

    def _update_shared(self, trigger: Trigger | None, **changes: Any) -> None:
        """Apply changes that belong to the booking as a whole to both legs."""
        outbound = self._outbound.model_copy(update=changes)
        return_leg = self._return_leg.model_copy(update=changes) if self._return_leg else None
        self._commit(outbound, return_leg, trigger)

    def _require_leg(self, role: LegRole, action: str) -> TripLeg | None:
        leg = self._leg(role)
        if leg is None:
            logger.warning(f"Ignoring {action}: booking has no {role.value} leg")
        return leg

    def _update_endpoint(
        self,
        role: LegRole,
        side: str,
        expected: type | tuple[type, ...],
        trigger: Trigger | None,
        **fields: Any,
    ) -> None:
        if side not in ("pickup", "dropoff"):
            logger.warning(f"Ignoring update of unknown endpoint side {side!r}")
            return
        leg = self._require_leg(role, f"{side} update")
        if leg is None:
            return
        endpoint = getattr(leg, side)
        if not isinstance(endpoint, expected):
            logger.warning(
                f"Ignoring {side} update: {role.value} {side} is a {endpoint.kind.value} endpoint"
            )
            return
        updated = leg.model_copy(update={side: endpoint.model_copy(update=fields)})
        self._replace(role, updated, trigger)

    # Booking-wide setters

    def set_service_type(self, service_type: ServiceType | str) -> None:
        if isinstance(service_type, str) and not isinstance(service_type, ServiceType):
            try:
                service_type = ServiceType.parse(service_type)
            except ValueError:
                logger.warning(
                    f"Unknown service type {service_type!r}; keeping "
                    f"{self._outbound.service_type.label}"
                )
                return

        outbound = self._outbound.model_copy(update={"service_type": service_type})
        return_leg = None
        if service_type is ServiceType.ROUND_TRIP:
            if self._return_leg is None:
                self._outbound = outbound
                return_leg = self._default_return_leg()
            else:
                return_leg = self._return_leg.model_copy(update={"service_type": service_type})
        self._commit(outbound, return_leg, Trigger.SERVICE_TYPE)

    def set_charter_hours(self, hours: int | None) -> None:
        if hours is not None and hours < 0:
            logger.warning(f"Rejected negative charter hours {hours}")
            return
        self._update_shared(Trigger.CHARTER_HOURS, charter_hours=hours)

    def set_vehicle_count(self, count: int) -> None:
        if count < 1:
            logger.warning(
                f"Rejected vehicle count {count}; keeping {self._outbound.vehicle_count}"
            )
            return
        self._update_shared(Trigger.VEHICLE_COUNT, vehicle_count=count)

    def set_passenger_count(self, count: int) -> None:
        if count < 1:
            logger.warning(f"Rejected passenger count {count}")
            return
        self._update_shared(None, passenger_count=count)

    def set_luggage_count(self, count: int) -> None:
        if count < 0:
            logger.warning(f"Rejected luggage count {count}")
            return
        self._update_shared(None, luggage_count=count)

    def set_passenger(self, name: str, email: str, mobile: str) -> None:
        self._update_shared(None, passenger=Passenger(name=name, email=email, mobile=mobile))

    # Per-leg setters

    def set_transfer_type(
        self, transfer_type: TransferType | str, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        leg = self._require_leg(role, "transfer type change")
        if leg is None:
            return
        if isinstance(transfer_type, str):
            resolved = resolve_or_keep(transfer_type, leg.transfer_type)
            if resolved is None:
                return
            transfer_type = resolved
        if transfer_type == leg.transfer_type:
            return

        updated = leg.with_transfer_type(transfer_type)
        if role is LegRole.RETURN:
            self._commit(self._outbound, updated, Trigger.RETURN_TRANSFER_TYPE)
            return

        # The return leg follows the outbound in reverse
        return_leg = self._return_leg
        if return_leg is not None:
            return_leg = return_leg.with_transfer_type(transfer_type.reversed())
        self._commit(updated, return_leg, Trigger.TRANSFER_TYPE)

    def set_pickup_address(
        self, address: str, coordinate: Coordinate | None = None, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        self._update_endpoint(
            role,
            "pickup",
            (CityEndpoint, CruiseEndpoint),
            _LOCATION_TRIGGERS[(role, "pickup")],
            address=address,
            coordinate=coordinate,
        )

    def set_dropoff_address(
        self, address: str, coordinate: Coordinate | None = None, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        self._update_endpoint(
            role,
            "dropoff",
            (CityEndpoint, CruiseEndpoint),
            _LOCATION_TRIGGERS[(role, "dropoff")],
            address=address,
            coordinate=coordinate,
        )

    def set_pickup_airport(self, airport: Airport | None, role: LegRole = LegRole.OUTBOUND) -> None:
        self._update_endpoint(
            role,
            "pickup",
            AirportEndpoint,
            _for_role(role, Trigger.AIRPORT, Trigger.RETURN_AIRPORT),
            airport=airport,
        )

    def set_dropoff_airport(
        self, airport: Airport | None, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        self._update_endpoint(
            role,
            "dropoff",
            AirportEndpoint,
            _for_role(role, Trigger.AIRPORT, Trigger.RETURN_AIRPORT),
            airport=airport,
        )

    def set_pickup_airline(self, airline: Airline | None, role: LegRole = LegRole.OUTBOUND) -> None:
        self._update_endpoint(
            role,
            "pickup",
            AirportEndpoint,
            _for_role(role, Trigger.AIRLINE, Trigger.RETURN_AIRLINE),
            airline=airline,
        )

    def set_dropoff_airline(
        self, airline: Airline | None, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        self._update_endpoint(
            role,
            "dropoff",
            AirportEndpoint,
            _for_role(role, Trigger.AIRLINE, Trigger.RETURN_AIRLINE),
            airline=airline,
        )

    def set_flight_number(
        self, side: str, flight_number: str, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        self._update_endpoint(role, side, AirportEndpoint, None, flight_number=flight_number)

    def set_origin_airport_city(self, city: str, role: LegRole = LegRole.OUTBOUND) -> None:
        self._update_endpoint(role, "pickup", AirportEndpoint, None, origin_airport_city=city)

    def set_cruise_details(
        self,
        side: str,
        cruise_port: str,
        ship_name: str,
        ship_arrival_time: str,
        role: LegRole = LegRole.OUTBOUND,
    ) -> None:
        self._update_endpoint(
            role,
            side,
            CruiseEndpoint,
            None,
            cruise_port=cruise_port,
            ship_name=ship_name,
            ship_arrival_time=ship_arrival_time,
        )

    def set_pickup_datetime(
        self, pickup_at: datetime | None, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        leg = self._require_leg(role, "pickup time change")
        if leg is None:
            return
        trigger = _for_role(role, Trigger.PICKUP_DATE_TIME, Trigger.RETURN_PICKUP_DATE_TIME)
        self._replace(role, leg.model_copy(update={"pickup_at": pickup_at}), trigger)

    def set_special_instructions(self, text: str, role: LegRole = LegRole.OUTBOUND) -> None:
        leg = self._require_leg(role, "instructions change")
        if leg is not None:
            self._replace(role, leg.model_copy(update={"special_instructions": text}), None)

    def set_meet_greet_choice(self, choice: str, role: LegRole = LegRole.OUTBOUND) -> None:
        leg = self._require_leg(role, "meet and greet change")
        if leg is not None:
            self._replace(role, leg.model_copy(update={"meet_greet_choice": choice}), None)

    # Extra stops

    def _replace_stops(
        self, role: LegRole, leg: TripLeg, stops: tuple[ExtraStop, ...]
    ) -> None:
        trigger = _for_role(role, Trigger.EXTRA_STOP, Trigger.RETURN_EXTRA_STOP)
        self._replace(role, leg.model_copy(update={"extra_stops": stops}), trigger)

    def _stop_index_ok(self, leg: TripLeg, index: int) -> bool:
        if 0 <= index < len(leg.extra_stops):
            return True
        logger.warning(f"No extra stop at index {index}")
        return False

    def add_extra_stop(self, role: LegRole = LegRole.OUTBOUND) -> int | None:
        """Append an empty, unconfirmed stop and return its index."""
        leg = self._require_leg(role, "extra stop")
        if leg is None:
            return None
        self._replace_stops(role, leg, leg.extra_stops + (ExtraStop(),))
        return len(leg.extra_stops)

    def confirm_extra_stop(
        self,
        index: int,
        address: str,
        coordinate: Coordinate,
        role: LegRole = LegRole.OUTBOUND,
    ) -> str | None:
        """Confirm a stop's location. Returns the rejection reason, if any."""
        leg = self._require_leg(role, "extra stop")
        if leg is None or not self._stop_index_ok(leg, index):
            return "Extra stop not found."

        stop = leg.extra_stops[index].model_copy(
            update={"address": address, "coordinate": coordinate, "location_confirmed": True}
        )
        reason = check_extra_stop(stop, leg)
        if reason is not None:
            logger.info(f"Extra stop rejected: {reason}")
            return reason

        stops = leg.extra_stops[:index] + (stop,) + leg.extra_stops[index + 1 :]
        self._replace_stops(role, leg, stops)
        return None

    def remove_extra_stop(self, index: int, role: LegRole = LegRole.OUTBOUND) -> None:
        leg = self._require_leg(role, "extra stop")
        if leg is None or not self._stop_index_ok(leg, index):
            return
        self._replace_stops(role, leg, leg.extra_stops[:index] + leg.extra_stops[index + 1 :])

    def set_extra_stop_instructions(
        self, index: int, text: str, role: LegRole = LegRole.OUTBOUND
    ) -> None:
        leg = self._require_leg(role, "extra stop")
        if leg is None or not self._stop_index_ok(leg, index):
            return
        stop = leg.extra_stops[index].model_copy(update={"instructions": text})
        stops = leg.extra_stops[:index] + (stop,) + leg.extra_stops[index + 1 :]
        self._replace(role, leg.model_copy(update={"extra_stops": stops}), None)

    # Submission

    async def submit(self) -> SubmitResult:
        """Create (new/repeat) or update (edit) the reservation.

        Never raises; leg state is left untouched whatever the outcome.
        """
        with log_booking_context(self.booking_id):
            failures = validate_booking(self._outbound, self._return_leg)
            if failures:
                error = IncompleteBookingError(failures)
                logger.info(error.message)
                return SubmitResult.failure(error)

            try:
                request = self.assembler.assemble(
                    self._outbound,
                    self._return_leg,
                    fare=self.fare_breakdown,
                    vehicle=self.vehicle,
                    quote=self.quote,
                    min_rate_involved=self.min_rate_involved,
                )
                if self.reservation_id is None:
                    result = await self.reservations.create(request)
                else:
                    with log_booking_context(self.booking_id, reservation_id=self.reservation_id):
                        result = await self.reservations.update(self.reservation_id, request)
            except Exception as e:
                logger.warning(f"Reservation submit failed: {e}")
                return SubmitResult.failure(e)

            logger.info(f"Reservation submitted (id={result.reservation_id})")
            return SubmitResult.success(result)
