"""Geographic calculations - Pure functions.

This module provides distance calculations between report locations,
user positions and favorite places. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass


# Earth's radius in meters
EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class Coordinate:
    """A point on the globe.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    latitude: float
    longitude: float


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Clamp against rounding drift for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_between(a: Coordinate, b: Coordinate) -> float:
    """Distance in meters between two coordinates.

    Pure function.
    """
    return calculate_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def is_within_radius(
    point: Coordinate,
    center: Coordinate,
    radius_m: float,
) -> bool:
    """Check if a point lies within a radius of a center point.

    Pure function. The boundary is inclusive.

    Args:
        point: Point to check
        center: Center of the circle
        radius_m: Radius in meters

    Returns:
        True if point is within radius
    """
    return distance_between(point, center) <= radius_m


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """Check that latitude/longitude are within their legal ranges."""
    return -90 <= latitude <= 90 and -180 <= longitude <= 180
