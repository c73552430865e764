import logging
from collections.abc import Sequence

import httpx

from ..core.exceptions import NetworkError, ServiceUnavailableError
from ..geo.distance import straight_line_estimate
from ..models.trip import Coordinate
from ..providers import RouteMetrics

logger = logging.getLogger(__name__)


class DirectionsServiceError(ServiceUnavailableError):
    """Directions service error (5xx or transport failure). Retryable."""

    pass


class DirectionsTimeoutError(NetworkError):
    """Directions request timeout. Retryable."""

    pass


def _format_coordinate(coordinate: Coordinate) -> str:
    return f"{coordinate.latitude},{coordinate.longitude}"


def _is_null_island(coordinate: Coordinate) -> bool:
    return coordinate.latitude == 0.0 and coordinate.longitude == 0.0


class DirectionsClient:
    """Road distance/duration via a Google-Directions-compatible API.

    When the service answers but cannot produce a usable route (non-OK
    status, a zero-length leg) the result degrades to a straight-line
    estimate instead of failing.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _fallback(self, origin: Coordinate, destination: Coordinate, reason: str) -> RouteMetrics:
        meters, seconds = straight_line_estimate(origin, destination)
        logger.warning(f"Using straight-line distance ({meters} m): {reason}")
        return RouteMetrics(distance_meters=meters, duration_seconds=seconds, straight_line=True)

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Sequence[Coordinate] = (),
    ) -> RouteMetrics:
        """Get total road distance and duration through the waypoints, in order."""
        if _is_null_island(origin) or _is_null_island(destination):
            return self._fallback(origin, destination, "invalid (0, 0) coordinate")

        url = f"{self.base_url}/maps/api/directions/json"
        params = {
            "origin": _format_coordinate(origin),
            "destination": _format_coordinate(destination),
            "key": self.api_key,
        }
        if waypoints:
            params["waypoints"] = "|".join(_format_coordinate(w) for w in waypoints)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise DirectionsTimeoutError(f"Request timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise DirectionsServiceError(f"Network error: {e}") from e

        if response.status_code >= 500:
            raise DirectionsServiceError(f"Directions server error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise DirectionsServiceError(
                f"Non-JSON directions response ({response.status_code})"
            ) from e

        if not isinstance(data, dict):
            raise DirectionsServiceError("Unexpected directions response body")

        status = data.get("status")
        routes = data.get("routes") or []
        if status != "OK" or not routes:
            message = data.get("error_message") or "no route"
            return self._fallback(origin, destination, f"status={status}: {message}")

        try:
            legs = [
                (int(leg["distance"]["value"]), int(leg["duration"]["value"]))
                for leg in routes[0].get("legs") or []
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DirectionsServiceError(f"Malformed directions route: {e!r}") from e

        if not legs or any(meters == 0 for meters, _ in legs):
            return self._fallback(origin, destination, "route contains a zero-length leg")

        return RouteMetrics(
            distance_meters=sum(meters for meters, _ in legs),
            duration_seconds=sum(seconds for _, seconds in legs),
        )
