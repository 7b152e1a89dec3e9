"""
HeadingGate - Field of View Queries

Combines the player's location (bearing to a target) with the device
heading and pitch to decide whether a sky target is in view. Holds no
state of its own beyond the field of view settings.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from src.tracking.location_tracker import LocationTracker
from src.tracking.orientation_tracker import OrientationTracker
from src.utils.geo_math import (
    Coordinate,
    distance_km,
    bearing_deg,
    compass_label,
    elevation_angle_deg,
)

logger = logging.getLogger(__name__)

DEFAULT_ALERT_RANGE_KM = 100.0


@dataclass(frozen=True)
class SkyTarget:
    """Something hovering in the sky at a geographic position."""
    target_id: str
    coordinate: Coordinate
    altitude_m: float = 0.0


@dataclass(frozen=True)
class TargetFix:
    """Where a target lies relative to the player."""
    target: SkyTarget
    distance_km: float
    bearing_deg: float
    direction: str          # 'North', 'Northeast', ...


class HeadingGate:
    """Visibility queries over a LocationTracker and an OrientationTracker."""

    def __init__(self, location: LocationTracker, orientation: OrientationTracker,
                 fov_degrees: float = 60.0, vertical_fov_degrees: float = 90.0):
        self.location = location
        self.orientation = orientation
        self.fov_degrees = fov_degrees
        self.vertical_fov_degrees = vertical_fov_degrees

    def bearing_to(self, target: Coordinate) -> float:
        return self.location.bearing_to(target)

    def relative_angle_to(self, target: Coordinate) -> float:
        """Signed angle from the current heading to the target, (-180, 180]."""
        return self.orientation.get_relative_angle(self.location.bearing_to(target))

    def is_target_in_view(self, target: Coordinate, fov_degrees: Optional[float] = None) -> bool:
        """Check if the target's bearing is inside the horizontal field of view."""
        fov = self.fov_degrees if fov_degrees is None else fov_degrees
        return self.orientation.is_bearing_in_view(self.location.bearing_to(target), fov)

    def apparent_elevation(self, target: SkyTarget) -> float:
        """
        Target elevation relative to the camera's view centre.

        The view centre sits (90 - pitch) degrees below the zenith.
        """
        distance = self.location.distance_to(target.coordinate)
        elevation = elevation_angle_deg(target.altitude_m, distance)
        return elevation - (90.0 - self.orientation.pitch)

    def is_sky_target_visible(self, target: SkyTarget) -> bool:
        """
        Check if a sky target is on screen.

        Requires the bearing inside the horizontal FOV, the player aiming at
        the sky, and the apparent elevation inside the vertical FOV.
        """
        if not self.is_target_in_view(target.coordinate):
            return False

        if not self.orientation.is_looking_at_sky:
            return False

        half_vertical = self.vertical_fov_degrees / 2.0
        return -half_vertical <= self.apparent_elevation(target) <= half_vertical

    def nearest_target(self, targets: Iterable[SkyTarget],
                       max_range_km: float = DEFAULT_ALERT_RANGE_KM) -> Optional[TargetFix]:
        """
        Find the closest target to the last known location.

        Works during signal loss, so an indoor player can be pointed outside.

        Args:
            targets: Candidate targets
            max_range_km: Ignore targets at or beyond this distance

        Returns:
            TargetFix for the nearest target, or None
        """
        if not self.location.has_last_known_location():
            return None

        origin = self.location.last_known_location()
        nearest: Optional[SkyTarget] = None
        nearest_distance = float('inf')

        for target in targets:
            distance = distance_km(origin, target.coordinate)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest = target

        if nearest is None or nearest_distance >= max_range_km:
            return None

        bearing = bearing_deg(origin, nearest.coordinate)
        logger.debug(f"Nearest target {nearest.target_id} at {nearest_distance:.1f}km, "
                     f"bearing {bearing:.0f}")
        return TargetFix(
            target=nearest,
            distance_km=nearest_distance,
            bearing_deg=bearing,
            direction=compass_label(bearing, long_names=True)
        )
