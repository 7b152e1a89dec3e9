# Base Layer - Platform Abstraction
"""
Capability interfaces for location and motion sensors, and their
MAVLink-backed implementations.

Modules:
    - providers: LocationProvider / OrientationProvider interfaces
    - mavlink_sensors: Providers fed from a MAVLink link
"""

from .providers import (
    LocationProvider,
    OrientationProvider,
    LocationSample,
    LocationError,
    LocationErrorKind,
    ProviderStatus,
)
from .mavlink_sensors import MavlinkLink, MavlinkLocationProvider, MavlinkOrientationProvider

__all__ = ["LocationProvider", "OrientationProvider", "LocationSample", "LocationError",
           "LocationErrorKind", "ProviderStatus", "MavlinkLink", "MavlinkLocationProvider",
           "MavlinkOrientationProvider"]
