"""
MavlinkSensors - Location and Orientation over a MAVLink Link

Feeds the trackers from any MAVLink source (phone sensor bridge, GPS/IMU
companion board, SITL) instead of platform location/motion APIs. All reads
are non-blocking: pending messages are drained into a cache and the latest
message of each type is used.
"""

import time
import logging
from typing import Optional, Dict, Any

from pymavlink import mavutil
from scipy.spatial.transform import Rotation

from src.base.providers import (
    LocationProvider,
    LocationSample,
    OrientationProvider,
    ProviderStatus,
    Quaternion,
    Vector3,
)
from src.utils.geo_math import Coordinate

logger = logging.getLogger(__name__)

# Typical GPS user-equivalent range error, converts HDOP to meters
UERE_METERS = 5.0
GPS_FIX_2D = 2
UNKNOWN_U16 = 65535


class MavlinkLink:
    """
    Shared MAVLink connection with a latest-message cache.

    Reference counted so the location and orientation providers can share
    one link and the last user closes it.
    """

    def __init__(self, connection_string: str, config: dict = None):
        """
        Initialize MavlinkLink.

        Args:
            connection_string: MAVLink connection string (e.g., 'udp:127.0.0.1:14550')
            config: Optional settings (heartbeat_timeout, source_system, max_drain)
        """
        self.connection_string = connection_string
        self.config = config or {}
        self.heartbeat_timeout = self.config.get('heartbeat_timeout', 5.0)
        self.source_system = self.config.get('source_system', 255)
        self.max_drain = self.config.get('max_drain', 200)

        self.mav = None
        self.failed = False
        self.users = 0
        self.messages: Dict[str, Any] = {}
        self.message_times: Dict[str, float] = {}

    def acquire(self) -> bool:
        """
        Open the connection if needed and register a user.

        Returns:
            True if the connection is open
        """
        if self.mav is None:
            try:
                logger.info(f"Connecting to {self.connection_string}...")
                self.mav = mavutil.mavlink_connection(self.connection_string,
                                                      source_system=self.source_system)
                self.failed = False
            except Exception as e:
                logger.error(f"Connection failed: {e}")
                self.failed = True
                return False

        self.users += 1
        return True

    def release(self):
        """Drop a user; closes the connection when none remain."""
        self.users = max(0, self.users - 1)
        if self.users == 0 and self.mav is not None:
            self.mav.close()
            self.mav = None
            self.messages.clear()
            self.message_times.clear()
            logger.info("Disconnected from MAVLink source")

    def pump(self):
        """Drain pending messages without blocking."""
        if self.mav is None:
            return

        for _ in range(self.max_drain):
            try:
                msg = self.mav.recv_match(blocking=False)
            except Exception as e:
                logger.error(f"MAVLink receive failed: {e}")
                self.failed = True
                return

            if msg is None:
                break

            msg_type = msg.get_type()
            if msg_type == 'BAD_DATA':
                continue
            self.messages[msg_type] = msg
            self.message_times[msg_type] = time.monotonic()

    def latest(self, msg_type: str):
        """Most recent message of a type, or None."""
        return self.messages.get(msg_type)

    def age(self, msg_type: str) -> float:
        """Seconds since a message type was last received (inf if never)."""
        received = self.message_times.get(msg_type)
        if received is None:
            return float('inf')
        return time.monotonic() - received

    @property
    def is_open(self) -> bool:
        return self.mav is not None


class MavlinkLocationProvider(LocationProvider):
    """
    Location service backed by GPS_RAW_INT / GLOBAL_POSITION_INT.

    Status is RUNNING while heartbeats are fresh and a 2D fix (or fused
    position) has been received.
    """

    def __init__(self, link: MavlinkLink, config: dict = None):
        self.link = link
        self.config = config or {}
        self.enabled = self.config.get('enabled', True)
        self._subscribed = False

    def is_enabled(self) -> bool:
        return self.enabled

    def request_permission(self) -> bool:
        # No OS permission gate on a telemetry link
        return True

    def start(self, desired_accuracy_meters: float, min_distance_meters: float):
        if self._subscribed:
            return
        self._subscribed = self.link.acquire()
        logger.info(f"MAVLink location started (desired accuracy {desired_accuracy_meters}m)")

    def current_status(self) -> ProviderStatus:
        if not self._subscribed or self.link.failed:
            return ProviderStatus.FAILED

        self.link.pump()

        if self.link.latest('HEARTBEAT') is None:
            return ProviderStatus.INITIALIZING
        if self.link.age('HEARTBEAT') > self.link.heartbeat_timeout:
            logger.warning("MAVLink heartbeat lost")
            return ProviderStatus.FAILED
        if self._position_message() is None:
            return ProviderStatus.INITIALIZING

        return ProviderStatus.RUNNING

    def _position_message(self):
        gps = self.link.latest('GPS_RAW_INT')
        if gps is not None and gps.fix_type >= GPS_FIX_2D:
            return gps
        return self.link.latest('GLOBAL_POSITION_INT')

    def _accuracy_meters(self) -> float:
        gps = self.link.latest('GPS_RAW_INT')
        if gps is None:
            return 0.0

        h_acc = getattr(gps, 'h_acc', 0) or 0
        if h_acc > 0:
            return h_acc / 1000.0       # mm -> m
        if gps.eph != UNKNOWN_U16:
            return gps.eph / 100.0 * UERE_METERS
        return 0.0

    def last_sample(self) -> Optional[LocationSample]:
        if not self._subscribed:
            return None

        self.link.pump()
        msg = self._position_message()
        if msg is None:
            return None

        return LocationSample(
            coordinate=Coordinate(msg.lat / 1e7, msg.lon / 1e7),
            horizontal_accuracy_meters=self._accuracy_meters(),
            sample_time_seconds=self.link.message_times[msg.get_type()]
        )

    def stop(self):
        if self._subscribed:
            self._subscribed = False
            self.link.release()


class MavlinkOrientationProvider(OrientationProvider):
    """
    Motion sensors backed by ATTITUDE, SCALED_IMU and VFR_HUD.

    ATTITUDE pitch (nose up positive) is re-expressed as an x-axis
    rotation so the trackers' gyroscope path reads it back unchanged.
    SCALED_IMU acceleration is remapped from FRD body axes to the device
    convention used by the accelerometer fallback.
    """

    def __init__(self, link: MavlinkLink, config: dict = None):
        self.link = link
        self.config = config or {}
        self.use_attitude = self.config.get('use_attitude', True)
        self.use_compass = self.config.get('use_compass', True)
        self._last_heading = 0.0
        self._acquired = self.link.acquire()

    def gyro_available(self) -> bool:
        return self._acquired and self.use_attitude

    def gyro_attitude(self) -> Quaternion:
        self.link.pump()
        msg = self.link.latest('ATTITUDE')
        if msg is None:
            return (0.0, 0.0, 0.0, 1.0)

        x, y, z, w = Rotation.from_euler('x', msg.pitch).as_quat()
        return (float(x), float(y), float(z), float(w))

    def accelerometer_vector(self) -> Vector3:
        self.link.pump()
        msg = self.link.latest('SCALED_IMU')
        if msg is None:
            return (0.0, -1.0, 0.0)

        # mG in FRD -> g as (right, up-ish, forward-negated)
        return (msg.yacc / 1000.0, msg.zacc / 1000.0, -msg.xacc / 1000.0)

    def compass_available(self) -> bool:
        return self._acquired and self.use_compass

    def compass_true_heading(self) -> float:
        self.link.pump()

        hud = self.link.latest('VFR_HUD')
        if hud is not None:
            self._last_heading = float(hud.heading)
            return self._last_heading

        pos = self.link.latest('GLOBAL_POSITION_INT')
        if pos is not None and pos.hdg != UNKNOWN_U16:
            self._last_heading = pos.hdg / 100.0

        return self._last_heading

    def close(self):
        if self._acquired:
            self._acquired = False
            self.link.release()
