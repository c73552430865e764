import logging

from pydantic import BaseModel, ConfigDict

from ..models.trip import Coordinate, LegRole
from ..providers import DirectionsProvider, RouteMetrics

logger = logging.getLogger(__name__)

RouteKey = tuple[Coordinate, Coordinate, tuple[Coordinate, ...]]


class DistanceCacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: RouteKey
    metrics: RouteMetrics


class DistanceCache:
    """Per-leg-role memo of the last resolved route.

    One entry per role, swapped atomically when the route key changes. A
    failed lookup keeps the previous entry so callers can fall back to it.
    """

    def __init__(self, directions: DirectionsProvider):
        self.directions = directions
        self.entries: dict[LegRole, DistanceCacheEntry] = {}
        self.requests = 0
        self.hits = 0
        self.misses = 0

    def _generate_cache_key(
        self,
        pickup: Coordinate,
        dropoff: Coordinate,
        waypoints: tuple[Coordinate, ...],
    ) -> RouteKey:
        # Waypoint order is significant: a reordered stop list is a different route
        return (pickup, dropoff, tuple(waypoints))

    async def distance_for(
        self,
        role: LegRole,
        pickup: Coordinate | None,
        dropoff: Coordinate | None,
        waypoints: tuple[Coordinate, ...] = (),
    ) -> RouteMetrics | None:
        if pickup is None or dropoff is None:
            return None

        self.requests += 1
        cache_key = self._generate_cache_key(pickup, dropoff, waypoints)

        entry = self.entries.get(role)
        if entry is not None and entry.key == cache_key:
            self.hits += 1
            return entry.metrics

        self.misses += 1
        try:
            metrics = await self.directions.get_route(pickup, dropoff, waypoints)
        except Exception:
            logger.warning(
                f"Route lookup failed for {role.value} leg; keeping previous distance",
                exc_info=True,
            )
            raise

        self.entries[role] = DistanceCacheEntry(key=cache_key, metrics=metrics)
        return metrics

    def peek(self, role: LegRole) -> RouteMetrics | None:
        """Last successfully resolved metrics for the role, possibly stale."""
        entry = self.entries.get(role)
        return entry.metrics if entry is not None else None

    def invalidate(self, role: LegRole) -> None:
        self.entries.pop(role, None)

    def get_cache_stats(self) -> dict[str, float | int]:
        hit_rate = self.hits / self.requests if self.requests > 0 else 0.0
        return {
            "requests": self.requests,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
            "cache_size": len(self.entries),
        }

    def clear(self) -> None:
        self.entries.clear()
        self.requests = 0
        self.hits = 0
        self.misses = 0
