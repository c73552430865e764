"""Centralized geographic distance calculations.

Haversine distances back the straight-line fallback used when the
routing service cannot produce a road route, and the proximity check
that rejects extra stops duplicating a pickup or dropoff.
"""

from math import atan2, cos, radians, sin, sqrt

from ..models.trip import Coordinate

EARTH_RADIUS_M = 6_371_000  # Earth radius in meters

# Meters per degree of latitude, used to turn degree tolerances into meters
METERS_PER_DEGREE = 111_000

# Average speeds (meters per hour) for estimating straight-line durations
CITY_SPEED_M_PER_H = 60_000.0
HIGHWAY_SPEED_M_PER_H = 100_000.0
HIGHWAY_THRESHOLD_M = 50_000


def haversine_distance_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in meters.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance between the two points in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_M * c


def coordinate_distance_m(a: Coordinate, b: Coordinate) -> float:
    return haversine_distance_m(a.latitude, a.longitude, b.latitude, b.longitude)


def coordinates_approximately_equal(
    a: Coordinate, b: Coordinate, tolerance_degrees: float = 0.002
) -> bool:
    return coordinate_distance_m(a, b) < tolerance_degrees * METERS_PER_DEGREE


def straight_line_estimate(a: Coordinate, b: Coordinate) -> tuple[int, int]:
    """(meters, seconds) estimate for a straight-line trip between two points."""
    meters = int(coordinate_distance_m(a, b))
    speed = HIGHWAY_SPEED_M_PER_H if meters > HIGHWAY_THRESHOLD_M else CITY_SPEED_M_PER_H
    seconds = int(meters / speed * 3600)
    return meters, seconds
