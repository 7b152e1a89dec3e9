"""
TrackingSession - Owns and Drives the Trackers

Explicitly constructed context object holding the location tracker,
orientation tracker and heading gate. Collaborators receive the session
(or its trackers) instead of reaching for globals. One step() per frame:
orientation every frame, location sampling on its own schedule, signal
checks every signal_check_interval_seconds.
"""

import time
import logging
from typing import Optional, Tuple, Callable

from src.base.providers import LocationProvider, OrientationProvider
from src.base.mavlink_sensors import (
    MavlinkLink,
    MavlinkLocationProvider,
    MavlinkOrientationProvider,
)
from src.comms.event_publisher import EventPublisher
from src.tracking.heading_gate import HeadingGate
from src.tracking.location_tracker import LocationTracker
from src.tracking.orientation_tracker import OrientationTracker
from src.utils.config import TrackerConfig
from simulation.mock_components import MockLocationProvider, MockOrientationProvider

logger = logging.getLogger(__name__)


def build_providers(config: TrackerConfig) -> Tuple[LocationProvider, OrientationProvider]:
    """
    Create the platform providers named in the configuration.

    MAVLink providers share a single link.

    Args:
        config: Tracker configuration

    Returns:
        Tuple of (location_provider, orientation_provider)
    """
    kinds = config.providers
    link: Optional[MavlinkLink] = None

    if 'mavlink' in (kinds.location, kinds.orientation):
        link = MavlinkLink(kinds.mavlink_connection, {
            'source_system': kinds.mavlink_source_system,
            'heartbeat_timeout': kinds.mavlink_heartbeat_timeout,
        })

    if kinds.location == 'mavlink':
        location = MavlinkLocationProvider(link)
    else:
        location = MockLocationProvider({
            'lat': config.debug.latitude,
            'lon': config.debug.longitude,
        })

    if kinds.orientation == 'mavlink':
        orientation = MavlinkOrientationProvider(link)
    else:
        orientation = MockOrientationProvider()

    logger.info(f"Providers: location={kinds.location}, orientation={kinds.orientation}")
    return location, orientation


class TrackingSession:
    """
    Frame-driven owner of the trackers.

    Usable as a context manager; close() is idempotent.
    """

    def __init__(self, location_provider: Optional[LocationProvider],
                 orientation_provider: Optional[OrientationProvider],
                 config: TrackerConfig = None,
                 publisher: Optional[EventPublisher] = None):
        """
        Initialize TrackingSession.

        Args:
            location_provider: Platform location service
            orientation_provider: Platform motion sensors
            config: Tracker configuration (defaults if None)
            publisher: Optional event bridge to attach on start
        """
        self.config = config or TrackerConfig()
        self.location_provider = location_provider
        self.orientation_provider = orientation_provider
        self.publisher = publisher

        self.location = LocationTracker(location_provider, self.config.location,
                                        self.config.debug)
        self.orientation = OrientationTracker(orientation_provider, self.config.orientation)
        self.gate = HeadingGate(self.location, self.orientation,
                                fov_degrees=self.config.orientation.fov_degrees,
                                vertical_fov_degrees=self.config.orientation.vertical_fov_degrees)

        self.is_running = False
        self.is_closed = False
        self.frames = 0
        self._last_step: Optional[float] = None
        self._last_signal_check: Optional[float] = None

    def start(self, now: float) -> bool:
        """
        Initialize sensors and begin location acquisition.

        Orientation keeps working even if location fails to start.

        Args:
            now: Current monotonic time (seconds)

        Returns:
            True if location acquisition started
        """
        if self.is_closed:
            logger.error("Cannot start a closed session")
            return False

        if self.publisher is not None and self.publisher.bind():
            self.publisher.attach_location(self.location)
            self.publisher.attach_orientation(self.orientation)

        self.orientation.init_sensors()
        started = self.location.start(now)

        self._last_step = now
        self._last_signal_check = now
        self.is_running = True

        logger.info(f"Tracking session started (location {'ok' if started else 'unavailable'})")
        return started

    def step(self, now: float):
        """
        Advance one frame.

        Args:
            now: Current monotonic time (seconds)
        """
        if not self.is_running:
            return

        dt = max(now - self._last_step, 0.0)
        self._last_step = now

        self.orientation.poll(dt)
        self.location.tick(now)

        if now - self._last_signal_check >= self.config.location.signal_check_interval_seconds:
            self._last_signal_check = now
            self.location.check_signal(now)

        self.frames += 1

    def run(self, duration: float, frame_rate: Optional[float] = None,
            clock: Callable[[], float] = time.monotonic,
            sleep: Callable[[float], None] = time.sleep):
        """
        Step at a fixed rate for duration seconds.

        Args:
            duration: Seconds to run
            frame_rate: Steps per second (config frame_rate if None)
            clock: Monotonic clock
            sleep: Sleep function
        """
        rate = frame_rate or self.config.orientation.frame_rate
        period = 1.0 / rate
        start = clock()

        if not self.is_running:
            self.start(start)

        logger.info(f"Running for {duration:.0f}s at {rate:.0f} Hz")
        next_frame = start
        while self.is_running:
            now = clock()
            if now - start >= duration:
                break

            self.step(now)

            next_frame += period
            delay = next_frame - clock()
            if delay > 0:
                sleep(delay)

    def get_status(self, now: Optional[float] = None) -> dict:
        """Combined location and orientation snapshot."""
        return {
            'frames': self.frames,
            'location': self.location.get_status(now),
            'orientation': self.orientation.get_status(),
        }

    def close(self):
        """Stop trackers and release providers and the event bridge."""
        if self.is_closed:
            return

        self.is_running = False
        self.is_closed = True
        self.location.stop()

        if self.orientation_provider is not None:
            self.orientation_provider.close()

        if self.publisher is not None:
            self.publisher.close()

        logger.info(f"Tracking session closed after {self.frames} frames")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
