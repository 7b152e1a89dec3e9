"""
Mock Components for Testing Without Hardware

Provides scripted location and orientation providers for unit testing
and desk runs without a phone, GPS receiver or IMU.
"""

import time
import logging
from typing import Optional
from dataclasses import dataclass

from scipy.spatial.transform import Rotation

from src.base.providers import (
    LocationProvider,
    LocationSample,
    OrientationProvider,
    ProviderStatus,
    Quaternion,
    Vector3,
)
from src.utils.geo_math import Coordinate, destination_point

logger = logging.getLogger(__name__)


@dataclass
class MockGPS:
    """Simulated GPS position."""
    lat: float = 40.7128
    lon: float = -74.0060
    accuracy: float = 5.0


class MockLocationProvider(LocationProvider):
    """
    Mock location service.

    Simulates permission, service startup and position readings. The
    status after start() is configurable so timeouts and failures can be
    reproduced.
    """

    def __init__(self, config: dict = None):
        self.config = config or {}
        self.enabled = self.config.get('enabled', True)
        self.permission_granted = self.config.get('permission_granted', True)
        self.start_status = ProviderStatus(self.config.get('start_status', 'running'))

        # Simulated state
        self.gps = MockGPS(
            lat=self.config.get('lat', MockGPS.lat),
            lon=self.config.get('lon', MockGPS.lon),
            accuracy=self.config.get('accuracy', MockGPS.accuracy)
        )
        self.status = ProviderStatus.INITIALIZING
        self.is_started = False
        self.start_args: Optional[tuple] = None
        self.start_calls = 0
        self.stop_calls = 0
        self._sample: Optional[LocationSample] = None

        logger.info(f"MockLocationProvider initialized at ({self.gps.lat:.4f}, {self.gps.lon:.4f})")

    def is_enabled(self) -> bool:
        return self.enabled

    def request_permission(self) -> bool:
        return self.permission_granted

    def start(self, desired_accuracy_meters: float, min_distance_meters: float):
        self.start_calls += 1
        self.start_args = (desired_accuracy_meters, min_distance_meters)
        self.is_started = True
        self.status = self.start_status
        if self._sample is None:
            self.set_position(self.gps.lat, self.gps.lon, self.gps.accuracy)
        logger.info(f"Mock: Location service started ({self.status.value})")

    def current_status(self) -> ProviderStatus:
        return self.status

    def last_sample(self) -> Optional[LocationSample]:
        return self._sample

    def stop(self):
        self.stop_calls += 1
        self.is_started = False
        self.status = ProviderStatus.INITIALIZING
        logger.info("Mock: Location service stopped")

    def set_status(self, status: ProviderStatus):
        self.status = status

    def set_position(self, lat: float, lon: float, accuracy: float = None,
                     sample_time: float = None) -> LocationSample:
        """Publish a new reading."""
        self.gps.lat = lat
        self.gps.lon = lon
        if accuracy is not None:
            self.gps.accuracy = accuracy

        self._sample = LocationSample(
            coordinate=Coordinate(lat, lon),
            horizontal_accuracy_meters=self.gps.accuracy,
            sample_time_seconds=time.monotonic() if sample_time is None else sample_time
        )
        return self._sample

    def walk(self, bearing_degrees: float, distance_km: float,
             sample_time: float = None) -> LocationSample:
        """Move the simulated player along a bearing."""
        destination = destination_point(Coordinate(self.gps.lat, self.gps.lon),
                                        bearing_degrees, distance_km)
        logger.debug(f"Mock: Walked {distance_km * 1000:.0f}m toward {bearing_degrees:.0f}")
        return self.set_position(destination.latitude, destination.longitude,
                                 sample_time=sample_time)


class MockOrientationProvider(OrientationProvider):
    """
    Mock motion sensors.

    Pitch is set in degrees and converted to both a gyroscope attitude and
    an accelerometer vector so either pitch path can be exercised.
    """

    def __init__(self, config: dict = None):
        self.config = config or {}
        self.has_gyro = self.config.get('gyro', True)
        self.has_compass = self.config.get('compass', True)

        self.attitude: Quaternion = (0.0, 0.0, 0.0, 1.0)
        self.acceleration: Vector3 = (0.0, -1.0, 0.0)
        self.heading = 0.0
        self.closed = False

        self.set_pitch(self.config.get('pitch', 0.0))
        self.set_heading(self.config.get('heading', 0.0))

        logger.info(f"MockOrientationProvider initialized: gyro={self.has_gyro}, "
                    f"compass={self.has_compass}")

    def gyro_available(self) -> bool:
        return self.has_gyro

    def gyro_attitude(self) -> Quaternion:
        return self.attitude

    def accelerometer_vector(self) -> Vector3:
        return self.acceleration

    def compass_available(self) -> bool:
        return self.has_compass

    def compass_true_heading(self) -> float:
        return self.heading

    def set_pitch(self, pitch_degrees: float):
        """Tilt the simulated device about its x axis."""
        x, y, z, w = Rotation.from_euler('x', pitch_degrees, degrees=True).as_quat()
        self.attitude = (float(x), float(y), float(z), float(w))

        rotated = Rotation.from_euler('x', pitch_degrees, degrees=True).apply([0.0, -1.0, 0.0])
        self.acceleration = (float(rotated[0]), float(rotated[1]), float(rotated[2]))

    def set_heading(self, heading_degrees: float):
        self.heading = heading_degrees % 360.0

    def close(self):
        self.closed = True
