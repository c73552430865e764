import logging
from typing import Any

import httpx
import pydantic

from ..assembler import extra_stop_payloads
from ..core.exceptions import (
    NetworkError,
    NotFoundError,
    PermanentError,
    ServiceUnavailableError,
)
from ..core.retry import RetryConfig, with_retry
from ..models.rates import RateQuote, Vehicle
from ..models.reservation import BookingRequest, ReservationResult
from ..models.trip import TripLeg
from ..prefill import ReservationSnapshot

logger = logging.getLogger(__name__)

RATES_PATH = "api/admin/booking-rates-vehicle"
CREATE_RESERVATION_PATH = "api/individual/create-reservation"
EDIT_RESERVATION_PATH = "api/individual/edit-reservation"
EDIT_DATA_PATH = "api/individual/get-reservation/{reservation_id}/edit"


class BookingAPIServiceError(ServiceUnavailableError):
    """Booking backend error (5xx or transport failure). Retryable."""

    pass


class BookingAPITimeoutError(NetworkError):
    """Booking backend request timeout. Retryable."""

    pass


class BookingAPIConnectError(NetworkError):
    """Connection to the booking backend could not be opened; nothing was sent."""

    pass


class RateQuoteError(PermanentError):
    """Backend rejected the rate request or returned an unusable quote."""

    pass


class ReservationError(PermanentError):
    """Backend rejected the reservation."""

    pass


def _pickup_time(leg: TripLeg | None) -> str:
    if leg is None or leg.pickup_at is None:
        return ""
    return leg.pickup_at.strftime("%H:%M:%S")


def build_rates_request(
    vehicle: Vehicle,
    leg: TripLeg,
    return_leg: TripLeg | None,
    distance_meters: int,
    return_distance_meters: int,
) -> dict[str, Any]:
    transfer_token = leg.transfer_type.token if leg.transfer_type else "city_to_city"
    return {
        "vehicle_id": vehicle.id,
        "transfer_type": transfer_token,
        "service_type": leg.service_type.value,
        "number_of_vehicles": leg.vehicle_count,
        "distance": distance_meters,
        "return_distance": return_distance_meters,
        "no_of_hours": str(leg.charter_hours or 0),
        "is_master_vehicle": vehicle.is_master_vehicle,
        "extra_stops": [s.model_dump() for s in extra_stop_payloads(leg.extra_stops)],
        "return_extra_stops": [
            s.model_dump() for s in extra_stop_payloads(return_leg.extra_stops if return_leg else ())
        ],
        "pickup_time": _pickup_time(leg),
        "return_pickup_time": _pickup_time(return_leg),
        "return_vehicle_id": vehicle.id,
        "return_affiliate_type": "affiliate",
    }


def parse_rate_quote(body: dict[str, Any]) -> RateQuote:
    if not body.get("success", False):
        raise RateQuoteError(body.get("message") or "Rate request was rejected", {"body": body})

    data = dict(body.get("data") or {})
    data["min_rate_involved"] = bool(data.get("min_rate_involved") or False)
    currency = body.get("currency") or {}
    if currency.get("symbol"):
        data["currency_symbol"] = currency["symbol"]

    try:
        return RateQuote.model_validate(data)
    except pydantic.ValidationError as e:
        raise RateQuoteError(f"Malformed rate response: {e.error_count()} error(s)") from e


def parse_reservation_result(body: dict[str, Any]) -> ReservationResult:
    if not body.get("success", False):
        raise ReservationError(body.get("message") or "Reservation was rejected", {"body": body})

    data = body.get("data") or {}
    return ReservationResult(
        reservation_id=data.get("reservation_id") or body.get("bookingId"),
        return_reservation_id=data.get("return_reservation_id"),
        order_id=data.get("order_id"),
        message=body.get("message") or "",
    )


class BookingApiClient:
    """Thin httpx adapter for the booking backend's rate and reservation endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 15.0,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.retry_config = RetryConfig(
            max_attempts=max_retries + 1,
            base_delay=retry_base_delay,
        )
        # Reservation writes are not idempotent: only retry when the request never left
        self.write_retry_config = RetryConfig(
            max_attempts=max_retries + 1,
            base_delay=retry_base_delay,
            retryable_exceptions=(BookingAPIConnectError,),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request_once(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, url, json=payload, headers=self._headers()
                )
        except httpx.TimeoutException as e:
            raise BookingAPITimeoutError(f"Request timed out after {self.timeout}s") from e
        except httpx.ConnectError as e:
            raise BookingAPIConnectError(f"Connection failed: {e}") from e
        except httpx.TransportError as e:
            raise BookingAPIServiceError(f"Network error: {e}") from e

        if response.status_code >= 500:
            raise BookingAPIServiceError(f"Booking API server error: {response.status_code}")

        try:
            body: dict[str, Any] = response.json()
        except ValueError as e:
            raise PermanentError(f"Non-JSON response from {path} ({response.status_code})") from e
        return body

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        retry_config: RetryConfig | None = None,
    ) -> dict[str, Any]:
        return await with_retry(
            lambda: self._request_once(method, path, payload),
            config=retry_config or self.retry_config,
            operation_name=f"{method} {path}",
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", path, payload)

    async def _write(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", path, payload, retry_config=self.write_retry_config)

    async def fetch_rates(
        self,
        vehicle: Vehicle,
        leg: TripLeg,
        return_leg: TripLeg | None = None,
        distance_meters: int = 0,
        return_distance_meters: int = 0,
    ) -> RateQuote:
        payload = build_rates_request(
            vehicle, leg, return_leg, distance_meters, return_distance_meters
        )
        body = await self._post(RATES_PATH, payload)
        return parse_rate_quote(body)

    async def create(self, request: BookingRequest) -> ReservationResult:
        body = await self._write(CREATE_RESERVATION_PATH, request.payload())
        result = parse_reservation_result(body)
        logger.info(f"Created reservation {result.reservation_id}")
        return result

    async def update(self, reservation_id: int, request: BookingRequest) -> ReservationResult:
        payload = {"booking_id": reservation_id, **request.payload()}
        body = await self._write(EDIT_RESERVATION_PATH, payload)
        result = parse_reservation_result(body)
        if result.reservation_id is None:
            result = result.model_copy(update={"reservation_id": reservation_id})
        return result

    async def fetch_reservation(self, reservation_id: int) -> ReservationSnapshot:
        """Saved reservation used to prefill edit and repeat flows."""
        path = EDIT_DATA_PATH.format(reservation_id=reservation_id)
        body = await self._request("GET", path)
        if not body.get("success", False) or not body.get("data"):
            raise NotFoundError(
                body.get("message") or f"Reservation {reservation_id} not found",
                {"reservation_id": reservation_id},
            )
        try:
            return ReservationSnapshot.model_validate(body["data"])
        except pydantic.ValidationError as e:
            raise ReservationError(
                f"Malformed reservation {reservation_id}: {e.error_count()} error(s)"
            ) from e


class VehicleRateProvider:
    """RateQuoteProvider bound to the vehicle being booked."""

    def __init__(self, api: BookingApiClient, vehicle: Vehicle):
        self.api = api
        self.vehicle = vehicle

    async def get_rates(
        self,
        leg: TripLeg,
        return_leg: TripLeg | None = None,
        *,
        distance_meters: int = 0,
        return_distance_meters: int = 0,
    ) -> RateQuote:
        return await self.api.fetch_rates(
            self.vehicle,
            leg,
            return_leg,
            distance_meters=distance_meters,
            return_distance_meters=return_distance_meters,
        )
