"""
Providers - Platform Capability Interfaces

The trackers depend on these interfaces, not on any platform. Concrete
implementations (MAVLink link, simulation mocks) are selected at startup
from configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from src.utils.geo_math import Coordinate

# (x, y, z, w) unit quaternion, as reported by the gyroscope
Quaternion = Tuple[float, float, float, float]
# (x, y, z) in g
Vector3 = Tuple[float, float, float]


class ProviderStatus(Enum):
    """Location service status as reported by the platform."""
    INITIALIZING = "initializing"
    RUNNING = "running"
    FAILED = "failed"


class LocationErrorKind(Enum):
    """Reasons location acquisition can fail."""
    SERVICE_DISABLED = "service_disabled"
    PERMISSION_DENIED = "permission_denied"
    ACQUISITION_TIMEOUT = "acquisition_timeout"
    HARDWARE_UNAVAILABLE = "hardware_unavailable"
    PROVIDER_FAILURE = "provider_failure"


class LocationError(Exception):
    """
    Location acquisition failure.

    Terminal for the current attempt; recoverable through restart().
    """

    def __init__(self, kind: LocationErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value.replace('_', ' ')
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"LocationError({self.kind.name}, {self.message!r})"


@dataclass(frozen=True)
class LocationSample:
    """A raw location reading."""
    coordinate: Coordinate
    horizontal_accuracy_meters: float
    sample_time_seconds: float      # Monotonic clock


@dataclass(frozen=True)
class SensorAvailability:
    """Which orientation sensors the device has."""
    gyro: bool
    compass: bool


class LocationProvider(ABC):
    """Platform location service."""

    @abstractmethod
    def is_enabled(self) -> bool:
        """Whether the user has location services switched on."""

    @abstractmethod
    def request_permission(self) -> bool:
        """Ask for location permission. Returns True if granted."""

    @abstractmethod
    def start(self, desired_accuracy_meters: float, min_distance_meters: float):
        """Open the hardware subscription. Status starts at INITIALIZING."""

    @abstractmethod
    def current_status(self) -> ProviderStatus:
        """Current service status."""

    @abstractmethod
    def last_sample(self) -> Optional[LocationSample]:
        """Most recent reading, or None before the first one."""

    @abstractmethod
    def stop(self):
        """Release the hardware subscription."""


class OrientationProvider(ABC):
    """Platform motion sensors."""

    @abstractmethod
    def gyro_available(self) -> bool:
        """Whether a gyroscope attitude is available."""

    @abstractmethod
    def gyro_attitude(self) -> Quaternion:
        """Device attitude as an (x, y, z, w) quaternion."""

    @abstractmethod
    def accelerometer_vector(self) -> Vector3:
        """Gravity-dominated acceleration in g."""

    @abstractmethod
    def compass_available(self) -> bool:
        """Whether a compass heading is available."""

    @abstractmethod
    def compass_true_heading(self) -> float:
        """Heading relative to true north, degrees."""

    def close(self):
        """Release any hardware held by the provider."""
