"""
OrientationTracker - Device Pitch, Compass Heading and Sky Aim

Derives smoothed pitch (0 = horizontal, 90 = straight up) and compass
heading (0 = north) from raw gyroscope/accelerometer/compass readings and
tracks whether the player is aiming the device at the sky.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
from scipy.spatial.transform import Rotation

from src.base.providers import OrientationProvider, SensorAvailability, Quaternion, Vector3
from src.tracking.smoothing import DampedValue
from src.utils.config import OrientationConfig
from src.utils.events import Event
from src.utils.geo_math import wrap_angle, normalize_heading, compass_label
from src.utils.state_machine import StateMachine, SkyAimState, SKY_AIM_TRANSITIONS

logger = logging.getLogger(__name__)

FORWARD = np.array([0.0, 0.0, 1.0])

MIN_SKY_THRESHOLD = 10.0
MAX_SKY_THRESHOLD = 80.0


def pitch_from_attitude(attitude: Quaternion) -> float:
    """
    Pitch of the device forward axis from a gyroscope attitude.

    The sensor quaternion is converted to the world frame with the
    (x, y, -z, -w) fix before rotating the forward vector.

    Args:
        attitude: (x, y, z, w) quaternion

    Returns:
        Pitch in degrees, positive when tilted up
    """
    x, y, z, w = attitude
    rot_fix = Rotation.from_quat([x, y, -z, -w])
    forward = rot_fix.apply(FORWARD)
    return float(np.degrees(np.arcsin(np.clip(forward[1], -1.0, 1.0))))


def pitch_from_acceleration(acceleration: Vector3) -> float:
    """
    Pitch estimated from gravity when no gyroscope is present.

    The accelerometer reports the opposite tilt sign, hence the negation.
    """
    z = float(np.clip(acceleration[2], -1.0, 1.0))
    return -float(np.degrees(np.arcsin(z)))


class OrientationTracker:
    """
    Smoothed device orientation with sky-aim detection.

    Events:
        pitch_changed(float), heading_changed(float): smoothed value moved
            by at least change_threshold_degrees
        started_looking_at_sky(), stopped_looking_at_sky(): threshold crossings
    """

    def __init__(self, provider: Optional[OrientationProvider],
                 config: OrientationConfig = None):
        """
        Initialize OrientationTracker.

        Args:
            provider: Platform motion sensors (None when ticked with raw values only)
            config: Smoothing and sky-aim settings
        """
        self.provider = provider
        self.config = config or OrientationConfig()
        self.sky_view_threshold = MIN_SKY_THRESHOLD
        self.set_sky_view_threshold(self.config.sky_view_threshold)

        self._pitch = DampedValue(self.config.pitch_smooth_time)
        self._heading = DampedValue(self.config.compass_smooth_time)
        self.raw_pitch = 0.0
        self.raw_heading = 0.0

        self.availability = SensorAvailability(gyro=False, compass=False)
        self._sky = StateMachine(SkyAimState.GROUNDED, SKY_AIM_TRANSITIONS, name="Sky aim")

        self._last_emitted_pitch: Optional[float] = None
        self._last_emitted_heading: Optional[float] = None

        # Events
        self.started_looking_at_sky = Event("started_looking_at_sky")
        self.stopped_looking_at_sky = Event("stopped_looking_at_sky")
        self.pitch_changed = Event("pitch_changed")
        self.heading_changed = Event("heading_changed")

    def init_sensors(self) -> SensorAvailability:
        """
        Query which sensors the device has.

        Missing sensors are not errors: without a gyroscope pitch comes from
        the accelerometer, without a compass the heading holds its value.

        Returns:
            SensorAvailability
        """
        if self.provider is None:
            self.availability = SensorAvailability(gyro=False, compass=False)
            logger.warning("No orientation provider - raw readings must be ticked in")
            return self.availability

        self.availability = SensorAvailability(
            gyro=bool(self.provider.gyro_available()),
            compass=bool(self.provider.compass_available())
        )

        if self.availability.gyro:
            logger.info("Gyroscope enabled")
        else:
            logger.warning("Gyroscope not available - using accelerometer tilt")

        if self.availability.compass:
            logger.info("Compass enabled")
        else:
            logger.warning("Compass not available - heading will hold its last value")

        return self.availability

    def poll(self, dt: float):
        """Read the provider and advance by dt seconds."""
        if self.provider is None:
            return

        if self.availability.gyro:
            raw = self.provider.gyro_attitude()
        else:
            raw = self.provider.accelerometer_vector()

        heading = self.provider.compass_true_heading() if self.availability.compass else None
        self.tick(raw, heading, dt)

    def tick(self, raw_orientation: Optional[Union[Quaternion, Vector3, Sequence[float]]],
             compass_heading: Optional[float], dt: float):
        """
        Advance smoothing by dt seconds with new raw readings.

        With a provider attached, readings from sensors that init_sensors()
        did not report are ignored. Without one, every reading is used.

        Args:
            raw_orientation: (x, y, z, w) gyroscope attitude, (x, y, z)
                accelerometer vector, or None to keep the pitch target
            compass_heading: True heading in degrees, or None when unavailable
            dt: Seconds since the previous tick
        """
        raw_pitch = self._raw_pitch(raw_orientation)
        if raw_pitch is not None:
            self.raw_pitch = raw_pitch
        self._pitch.update(self.raw_pitch, dt)
        self._emit_pitch()

        if compass_heading is not None and self._accepts_compass():
            self._update_heading(compass_heading, dt)

        self._update_sky_state()

    def _accepts_gyro(self) -> bool:
        return self.provider is None or self.availability.gyro

    def _accepts_compass(self) -> bool:
        return self.provider is None or self.availability.compass

    def _raw_pitch(self, raw_orientation) -> Optional[float]:
        if raw_orientation is None:
            return None

        values = np.asarray(raw_orientation, dtype=float)
        try:
            if values.shape == (4,):
                if not self._accepts_gyro():
                    logger.debug("Ignoring attitude reading - no gyroscope reported")
                    return None
                pitch = pitch_from_attitude(values)
            elif values.shape == (3,):
                pitch = pitch_from_acceleration(values)
            else:
                raise ValueError(f"expected 3 or 4 components, got shape {values.shape}")
        except ValueError as e:
            logger.warning(f"Ignoring orientation reading: {e}")
            return None

        return float(np.clip(pitch, -90.0, 90.0))

    def _update_heading(self, raw_heading: float, dt: float):
        self.raw_heading = normalize_heading(raw_heading)

        # Approach along the short way round (359 -> 2 passes through 0)
        current = self._heading.value
        target = current + wrap_angle(self.raw_heading - current)
        self._heading.update(target, dt)
        self._heading.value = normalize_heading(self._heading.value)

        self._emit_heading()

    def _emit_pitch(self):
        pitch = self._pitch.value
        last = self._last_emitted_pitch
        if last is None or abs(pitch - last) >= self.config.change_threshold_degrees:
            self._last_emitted_pitch = pitch
            self.pitch_changed.emit(pitch)

    def _emit_heading(self):
        heading = self._heading.value
        last = self._last_emitted_heading
        if last is None or abs(wrap_angle(heading - last)) >= self.config.change_threshold_degrees:
            self._last_emitted_heading = heading
            self.heading_changed.emit(heading)

    def _update_sky_state(self):
        looking = self._pitch.value > self.sky_view_threshold

        if looking and self._sky.is_in(SkyAimState.GROUNDED):
            self._sky.transition_to(SkyAimState.LOOKING_AT_SKY,
                                    f"pitch {self._pitch.value:.1f}")
            self.started_looking_at_sky.emit()
        elif not looking and self._sky.is_in(SkyAimState.LOOKING_AT_SKY):
            self._sky.transition_to(SkyAimState.GROUNDED,
                                    f"pitch {self._pitch.value:.1f}")
            self.stopped_looking_at_sky.emit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def pitch(self) -> float:
        return self._pitch.value

    @property
    def heading(self) -> float:
        return self._heading.value

    @property
    def sky_state(self) -> SkyAimState:
        return self._sky.get_state()

    @property
    def is_looking_at_sky(self) -> bool:
        return self._sky.is_in(SkyAimState.LOOKING_AT_SKY)

    @property
    def gyro_available(self) -> bool:
        return self.availability.gyro

    @property
    def compass_available(self) -> bool:
        return self.availability.compass

    def get_heading_direction(self) -> np.ndarray:
        """Unit vector of the heading in the horizontal plane (north = +Z)."""
        rad = np.radians(self._heading.value)
        return np.array([np.sin(rad), 0.0, np.cos(rad)])

    def get_relative_angle(self, target_bearing: float) -> float:
        """Signed shortest angle from the current heading to target_bearing, (-180, 180]."""
        return wrap_angle(target_bearing - self._heading.value)

    def is_bearing_in_view(self, bearing: float, fov_degrees: float = 60.0) -> bool:
        """Check if a bearing is within the horizontal field of view."""
        return abs(self.get_relative_angle(bearing)) <= fov_degrees / 2.0

    def compass_direction_label(self) -> str:
        """N, NE, E, SE, S, SW, W or NW."""
        return compass_label(self._heading.value)

    def set_sky_view_threshold(self, threshold: float):
        """Set the sky view threshold, clamped to 10-80 degrees."""
        clamped = float(np.clip(threshold, MIN_SKY_THRESHOLD, MAX_SKY_THRESHOLD))
        if clamped != threshold:
            logger.warning(f"Sky view threshold {threshold} clamped to {clamped}")
        self.sky_view_threshold = clamped

    def snap_pitch(self, pitch: float):
        """Set the smoothed pitch directly (desk simulation)."""
        self.raw_pitch = float(np.clip(pitch, -90.0, 90.0))
        self._pitch.snap(self.raw_pitch)
        self._update_sky_state()

    def snap_heading(self, heading: float):
        """Set the smoothed heading directly (desk simulation)."""
        self.raw_heading = normalize_heading(heading)
        self._heading.snap(self.raw_heading)

    def get_status(self) -> dict:
        """Snapshot for debug overlays and logs."""
        return {
            'pitch': self._pitch.value,
            'heading': self._heading.value,
            'direction': self.compass_direction_label(),
            'looking_at_sky': self.is_looking_at_sky,
            'sky_view_threshold': self.sky_view_threshold,
            'gyro': self.availability.gyro,
            'compass': self.availability.compass,
        }
