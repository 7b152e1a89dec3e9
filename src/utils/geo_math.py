"""
GeoMath - Geodesic and Angular Calculations

Provides great-circle distance and bearing between coordinates, plus the
circular-angle helpers used by the orientation tracker (heading wrap,
compass labels).
"""

import math
from dataclasses import dataclass
from typing import Tuple

# Mean Earth radius in kilometers
EARTH_RADIUS_KM = 6371.0

COMPASS_LABELS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
COMPASS_LABELS_LONG = (
    "North", "Northeast", "East", "Southeast",
    "South", "Southwest", "West", "Northwest"
)


@dataclass(frozen=True)
class Coordinate:
    """Latitude/longitude pair in degrees."""
    latitude: float
    longitude: float

    def is_origin(self) -> bool:
        return self.latitude == 0 and self.longitude == 0

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


def haversine_distance(lat1: float, lon1: float,
                       lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1: Latitude of point 1 (degrees)
        lon1: Longitude of point 1 (degrees)
        lat2: Latitude of point 2 (degrees)
        lon2: Longitude of point 2 (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bearing(lat1: float, lon1: float,
            lat2: float, lon2: float) -> float:
    """
    Calculate the initial bearing from point 1 to point 2.

    Identical points give 0.0 (atan2(0, 0) convention).

    Args:
        lat1: Latitude of point 1 (degrees)
        lon1: Longitude of point 1 (degrees)
        lat2: Latitude of point 2 (degrees)
        lon2: Longitude of point 2 (degrees)

    Returns:
        Bearing in degrees (0-360, where 0 is North)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)

    x = math.sin(delta_lon) * math.cos(lat2_rad)
    y = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lon))

    bearing_deg = math.degrees(math.atan2(x, y))
    return normalize_heading(bearing_deg)


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two coordinates, in kilometers."""
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Initial bearing from a to b, in [0, 360)."""
    return bearing(a.latitude, a.longitude, b.latitude, b.longitude)


def destination_point(origin: Coordinate, bearing_degrees: float,
                      distance: float) -> Coordinate:
    """
    Calculate destination point given start point, bearing and distance.

    Args:
        origin: Starting coordinate
        bearing_degrees: Bearing in degrees (0-360)
        distance: Distance in kilometers

    Returns:
        Destination coordinate
    """
    lat_rad = math.radians(origin.latitude)
    lon_rad = math.radians(origin.longitude)
    bearing_rad = math.radians(bearing_degrees)

    angular_distance = distance / EARTH_RADIUS_KM

    lat2 = math.asin(
        math.sin(lat_rad) * math.cos(angular_distance) +
        math.cos(lat_rad) * math.sin(angular_distance) * math.cos(bearing_rad)
    )

    lon2 = lon_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular_distance) * math.cos(lat_rad),
        math.cos(angular_distance) - math.sin(lat_rad) * math.sin(lat2)
    )

    return Coordinate(math.degrees(lat2), math.degrees(lon2))


def elevation_angle_deg(altitude_m: float, distance: float) -> float:
    """
    Elevation angle of an object at altitude_m seen from distance km away.

    Earth curvature is ignored.
    """
    return math.degrees(math.atan2(altitude_m, distance * 1000.0))


def wrap_angle(angle: float) -> float:
    """Wrap an angle difference into (-180, 180]."""
    wrapped = (angle + 180.0) % 360.0 - 180.0
    if wrapped == -180.0:
        return 180.0
    return wrapped


def normalize_heading(heading: float) -> float:
    """Normalize a heading into [0, 360)."""
    normalized = heading % 360.0
    # -1e-17 % 360.0 rounds to 360.0
    if normalized >= 360.0:
        return 0.0
    return normalized


def compass_label(heading: float, long_names: bool = False) -> str:
    """
    8-way compass label for a heading.

    Buckets are centred on multiples of 45 degrees with boundaries at the
    22.5 degree midpoints, so 337.5-22.5 maps to North.

    Args:
        heading: Heading in degrees (any range)
        long_names: Return 'Northeast' instead of 'NE'

    Returns:
        Direction label
    """
    index = int(normalize_heading(heading + 22.5) // 45.0) % 8
    labels = COMPASS_LABELS_LONG if long_names else COMPASS_LABELS
    return labels[index]
