"""Debounced, generation-ordered rate recalculation.

Every trigger after setup restarts a short debounce timer. When it fires,
the current legs are snapshotted, stamped with the next generation number
and sent to the rate provider. Only the result of the most recently issued
generation is ever accepted; older results are dropped on arrival.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .booking_logging import log_context
from .fare import FareBreakdown, FareCalculator
from .geo.route_cache import DistanceCache
from .models.rates import RateQuote, Vehicle
from .models.trip import LegRole, TripLeg
from .providers import RateQuoteProvider

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    IDLE = "idle"
    PENDING_FETCH = "pending_fetch"
    FETCH_IN_FLIGHT = "fetch_in_flight"
    FETCH_FAILED = "fetch_failed"


class Trigger(str, Enum):
    """Kinds of leg edits the coordinator reacts to."""

    PICKUP_LOCATION = "pickup_location"
    DROPOFF_LOCATION = "dropoff_location"
    PICKUP_DATE_TIME = "pickup_date_time"
    TRANSFER_TYPE = "transfer_type"
    SERVICE_TYPE = "service_type"
    CHARTER_HOURS = "charter_hours"
    VEHICLE_COUNT = "vehicle_count"
    AIRPORT = "airport"
    AIRLINE = "airline"
    EXTRA_STOP = "extra_stop"
    RETURN_PICKUP_LOCATION = "return_pickup_location"
    RETURN_DROPOFF_LOCATION = "return_dropoff_location"
    RETURN_PICKUP_DATE_TIME = "return_pickup_date_time"
    RETURN_TRANSFER_TYPE = "return_transfer_type"
    RETURN_AIRPORT = "return_airport"
    RETURN_AIRLINE = "return_airline"
    RETURN_EXTRA_STOP = "return_extra_stop"
    SETUP_COMPLETE = "setup_complete"


@dataclass(frozen=True)
class QuoteUpdate:
    """What listeners receive after a quote is accepted, fails, or the fare changes locally."""

    generation: int
    state: CoordinatorState
    fare: FareBreakdown
    error: Exception | None = None


LegsSnapshot = Callable[[], tuple[TripLeg, TripLeg | None]]
Listener = Callable[[QuoteUpdate], None]


class RecalculationCoordinator:
    def __init__(
        self,
        rate_provider: RateQuoteProvider,
        distance_cache: DistanceCache,
        legs: LegsSnapshot,
        calculator: FareCalculator | None = None,
        vehicle: Vehicle | None = None,
        debounce_seconds: float = 0.3,
    ):
        self.rate_provider = rate_provider
        self.distance_cache = distance_cache
        self.calculator = calculator or FareCalculator()
        self.vehicle = vehicle
        self.debounce_seconds = debounce_seconds
        self._legs = legs

        self._ready = False
        self._state = CoordinatorState.IDLE
        self._generation = 0
        self._quote: RateQuote | None = None
        self._last_error: Exception | None = None
        self._timer: asyncio.Task[None] | None = None
        self._fetches: set[asyncio.Task[None]] = set()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def generation(self) -> int:
        """Generation number of the most recently issued fetch."""
        return self._generation

    @property
    def quote(self) -> RateQuote | None:
        return self._quote

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def ready(self) -> bool:
        return self._ready

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def mark_ready(self) -> None:
        """Setup (profile, edit or repeat data) has finished loading."""
        self._ready = True

    def notify(self, trigger: Trigger) -> None:
        """React to a leg edit. Must be called from within the running event loop."""
        if not self._ready:
            logger.debug(f"Ignoring {trigger.value} trigger before setup completed")
            return

        if trigger is Trigger.VEHICLE_COUNT:
            # Grand total scales locally against the cached quote
            self._publish()
            return

        self._state = CoordinatorState.PENDING_FETCH
        self._restart_timer()

    def fare_breakdown(self) -> FareBreakdown:
        outbound, _ = self._legs()
        return self.calculator.calculate(
            self._quote,
            outbound.service_type,
            outbound.charter_hours,
            outbound.vehicle_count,
            vehicle=self.vehicle,
        )

    async def drain(self) -> None:
        """Wait until no debounce timer or fetch is outstanding."""
        while self._timer_pending() or self._fetches:
            if self._timer is not None and not self._timer.done():
                with contextlib.suppress(asyncio.CancelledError):
                    await self._timer
            if self._fetches:
                await asyncio.gather(*list(self._fetches), return_exceptions=True)

    async def close(self) -> None:
        """Cancel a pending debounce timer and wait for in-flight fetches."""
        if self._timer is not None:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None
        if self._fetches:
            await asyncio.gather(*list(self._fetches), return_exceptions=True)
        if self._state is CoordinatorState.PENDING_FETCH:
            self._state = CoordinatorState.IDLE

    def _timer_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def _restart_timer(self) -> None:
        if self._timer_pending():
            self._timer.cancel()  # type: ignore[union-attr]
        self._timer = asyncio.create_task(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._issue_fetch()

    def _issue_fetch(self) -> None:
        outbound, return_leg = self._legs()
        self._generation += 1
        generation = self._generation
        self._state = CoordinatorState.FETCH_IN_FLIGHT

        task = asyncio.create_task(self._fetch(generation, outbound, return_leg))
        self._fetches.add(task)
        task.add_done_callback(self._fetches.discard)

    async def _resolve_distance(self, role: LegRole, leg: TripLeg | None) -> int:
        if leg is None:
            return 0
        pickup, dropoff, waypoints = leg.route_key()
        try:
            metrics = await self.distance_cache.distance_for(role, pickup, dropoff, waypoints)
        except Exception:
            metrics = self.distance_cache.peek(role)
            logger.info(
                f"Using {'stale' if metrics else 'zero'} distance for {role.value} leg"
            )
        return metrics.distance_meters if metrics is not None else 0

    async def _fetch(self, generation: int, outbound: TripLeg, return_leg: TripLeg | None) -> None:
        with log_context(generation=generation):
            distance = await self._resolve_distance(LegRole.OUTBOUND, outbound)
            return_distance = await self._resolve_distance(LegRole.RETURN, return_leg)

            logger.debug(
                f"Requesting rates (distance={distance}m, return_distance={return_distance}m)"
            )
            try:
                quote = await self.rate_provider.get_rates(
                    outbound,
                    return_leg,
                    distance_meters=distance,
                    return_distance_meters=return_distance,
                )
            except Exception as e:
                if generation != self._generation:
                    logger.info(f"Ignoring failure of superseded fetch (latest {self._generation})")
                    return
                self._state = (
                    CoordinatorState.PENDING_FETCH
                    if self._timer_pending()
                    else CoordinatorState.FETCH_FAILED
                )
                self._last_error = e
                logger.warning(f"Rate fetch failed: {e}")
                self._publish(e)
                return

            if generation != self._generation:
                logger.info(f"Discarding stale quote (latest generation {self._generation})")
                return

            self._quote = quote
            self._last_error = None
            self._state = (
                CoordinatorState.PENDING_FETCH if self._timer_pending() else CoordinatorState.IDLE
            )
            logger.debug("Accepted rate quote")
            self._publish()

    def _publish(self, error: Exception | None = None) -> None:
        update = QuoteUpdate(
            generation=self._generation,
            state=self._state,
            fare=self.fare_breakdown(),
            error=error,
        )
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                logger.exception("Quote listener raised")
