"""
LocationTracker - GPS Acquisition and Signal Quality

Owns the best-known coordinate, its accuracy and the signal state machine
(ACQUIRING -> AVAILABLE <-> SIGNAL_LOST). Everything is driven by the
owner's clock through start/tick/check_signal; nothing here blocks or
sleeps. Signal loss is an operating state with its own events, not an
error.
"""

import logging
from typing import Optional, List

from src.base.providers import (
    LocationProvider,
    LocationSample,
    LocationError,
    LocationErrorKind,
    ProviderStatus,
)
from src.utils.config import LocationConfig, DebugConfig
from src.utils.events import Event
from src.utils.geo_math import Coordinate, distance_km, bearing_deg
from src.utils.state_machine import StateMachine, SignalState, SIGNAL_TRANSITIONS

logger = logging.getLogger(__name__)


class LocationTracker:
    """
    Continuous location acquisition with indoor (signal loss) detection.

    Events:
        location_updated(Coordinate): a sample moved far enough to be accepted
        city_country_updated(city, country): external geocoder result recorded
        location_error(LocationError): acquisition attempt failed
        services_started(): location service is running
        signal_lost(), signal_restored(): signal state transitions
    """

    def __init__(self, provider: Optional[LocationProvider],
                 config: LocationConfig = None, debug: DebugConfig = None):
        """
        Initialize LocationTracker.

        Args:
            provider: Platform location service (may be None in fixed-location mode)
            config: Acquisition and signal settings
            debug: Fixed location / simulated indoors overrides
        """
        self.provider = provider
        self.config = config or LocationConfig()
        self.debug = debug or DebugConfig()

        self._signal = StateMachine(SignalState.ACQUIRING, SIGNAL_TRANSITIONS,
                                    name="GPS signal")

        # Current location data
        self._coordinate = Coordinate(0.0, 0.0)
        self._accuracy = 0.0
        self._has_fix = False
        self._has_last_known = False
        self._last_sample_time: Optional[float] = None
        self._city: Optional[str] = None
        self._country: Optional[str] = None

        self.location_available = False
        self.permission_granted = False
        self.last_error: Optional[LocationError] = None
        self.last_location_update_time = 0.0
        self.signal_loss_reasons: List[str] = []

        # Acquisition and re-sampling schedule
        self._subscribed = False
        self._acquiring_since: Optional[float] = None
        self._last_resample_time: Optional[float] = None

        # Events
        self.location_updated = Event("location_updated")
        self.city_country_updated = Event("city_country_updated")
        self.location_error = Event("location_error")
        self.services_started = Event("services_started")
        self.signal_lost = Event("signal_lost")
        self.signal_restored = Event("signal_restored")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, now: float) -> bool:
        """
        Begin location acquisition.

        In fixed-location mode the debug coordinate is accepted immediately.
        Otherwise the provider is started and the wait for the service to
        come up continues in tick().

        Args:
            now: Current monotonic time (seconds)

        Returns:
            True if acquisition started, False on failure (see last_error)
        """
        if self.is_active:
            logger.warning("Location tracker already started")
            return True

        self.last_error = None
        self.signal_loss_reasons = []
        self._signal.reset()
        self.last_location_update_time = now

        # Last known coordinate survives a restart; the fix does not
        self._has_fix = False
        self._last_sample_time = None

        if self.debug.use_fixed_location:
            self.permission_granted = True
            self.location_available = True
            self._accept(Coordinate(self.debug.latitude, self.debug.longitude), now)
            logger.info(f"Using debug location: {self.debug.latitude}, {self.debug.longitude}")
            self.services_started.emit()
            return True

        if self.provider is None:
            return self._fail(LocationErrorKind.HARDWARE_UNAVAILABLE,
                              "No location provider configured")

        if not self.provider.is_enabled():
            return self._fail(LocationErrorKind.SERVICE_DISABLED,
                              "Location services disabled by user")

        if not self.provider.request_permission():
            self.permission_granted = False
            return self._fail(LocationErrorKind.PERMISSION_DENIED,
                              "Location permission denied")

        self.permission_granted = True
        self.provider.start(self.config.desired_accuracy_meters,
                            self.config.update_distance_meters)
        self._subscribed = True
        self._acquiring_since = now

        logger.info(f"Waiting for location service (timeout {self.config.timeout_seconds:.0f}s)")
        return True

    def stop(self):
        """
        Stop location services.

        Cancels a pending acquisition wait and releases the provider. Safe to
        call repeatedly; emits no events.
        """
        was_active = self.is_active
        self._acquiring_since = None
        self._last_resample_time = None

        if self._subscribed:
            self._subscribed = False
            self.provider.stop()

        self.location_available = False

        if was_active:
            logger.info("Location services stopped")

    def restart(self, now: float) -> bool:
        """Stop then start again; the only way back to ACQUIRING."""
        self.stop()
        return self.start(now)

    @property
    def is_active(self) -> bool:
        """True while acquiring or running."""
        return self._acquiring_since is not None or self.location_available

    @property
    def is_acquiring(self) -> bool:
        """True while waiting for the service to come up."""
        return self._acquiring_since is not None

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def tick(self, now: float, sample: Optional[LocationSample] = None):
        """
        Advance acquisition and process location samples.

        Args:
            now: Current monotonic time (seconds)
            sample: A raw sample pushed by the driver. When None, the provider
                is re-sampled every update_interval_seconds.
        """
        if self._acquiring_since is not None:
            self._poll_acquisition(now)

        if sample is None and self._resample_due(now):
            sample = self._read_provider(now)

        if sample is not None:
            self._process_sample(sample, now)

    def _poll_acquisition(self, now: float):
        status = self.provider.current_status()

        if status == ProviderStatus.RUNNING:
            self._acquiring_since = None
            self.location_available = True
            self._last_resample_time = None     # Sample on this tick
            logger.info("Location services started")
            self.services_started.emit()
        elif status == ProviderStatus.FAILED:
            self._release()
            self._fail(LocationErrorKind.PROVIDER_FAILURE, "Unable to determine location")
        elif now - self._acquiring_since >= self.config.timeout_seconds:
            self._release()
            self._fail(LocationErrorKind.ACQUISITION_TIMEOUT, "Location service timed out")

    def _resample_due(self, now: float) -> bool:
        if not self.location_available or self.debug.use_fixed_location:
            return False
        if self._last_resample_time is None:
            return True
        return now - self._last_resample_time >= self.config.update_interval_seconds

    def _read_provider(self, now: float) -> Optional[LocationSample]:
        self._last_resample_time = now

        if self.provider.current_status() != ProviderStatus.RUNNING:
            logger.warning("Location service not running")
            return None

        return self.provider.last_sample()

    def _process_sample(self, sample: LocationSample, now: float):
        if not self.location_available or self.debug.use_fixed_location:
            return

        if sample.sample_time_seconds == self._last_sample_time:
            logger.debug("Ignoring repeated location sample")
            return
        self._last_sample_time = sample.sample_time_seconds

        # Accuracy and freshness update on every raw sample
        self._accuracy = sample.horizontal_accuracy_meters
        self.last_location_update_time = now

        if self._is_significant_change(sample.coordinate):
            self._accept(sample.coordinate, now)
        else:
            logger.debug(f"Sample within {self.config.significant_change_degrees} deg, "
                         f"keeping current fix (accuracy: {self._accuracy}m)")

    def _is_significant_change(self, coordinate: Coordinate) -> bool:
        if not self._has_fix:
            return True

        threshold = self.config.significant_change_degrees
        lat_diff = abs(coordinate.latitude - self._coordinate.latitude)
        lon_diff = abs(coordinate.longitude - self._coordinate.longitude)
        return lat_diff > threshold or lon_diff > threshold

    def _accept(self, coordinate: Coordinate, now: float):
        self._coordinate = coordinate
        self._has_fix = True
        if not coordinate.is_origin():
            self._has_last_known = True

        if self._signal.is_in(SignalState.ACQUIRING):
            self._signal.transition_to(SignalState.AVAILABLE, "first fix")

        logger.info(f"Location updated: {coordinate.latitude:.4f}, {coordinate.longitude:.4f} "
                    f"(accuracy: {self._accuracy}m)")
        self.location_updated.emit(coordinate)

    def _release(self):
        self._acquiring_since = None
        if self._subscribed:
            self._subscribed = False
            self.provider.stop()

    def _fail(self, kind: LocationErrorKind, message: str) -> bool:
        self.last_error = LocationError(kind, message)
        logger.warning(message)
        self.location_error.emit(self.last_error)
        return False

    # ------------------------------------------------------------------
    # Signal quality
    # ------------------------------------------------------------------

    def check_signal(self, now: float) -> bool:
        """
        Re-evaluate GPS signal state and fire events if it changed.

        Called by the driver every signal_check_interval_seconds.

        Args:
            now: Current monotonic time (seconds)

        Returns:
            True if the signal is currently considered good
        """
        if not self.location_available:
            return False

        if self.debug.simulate_indoors:
            if self._signal.is_in(SignalState.AVAILABLE):
                self.signal_loss_reasons = ["simulated indoors"]
                self._signal.transition_to(SignalState.SIGNAL_LOST, "simulated indoors")
                logger.info("DEBUG: Simulating indoor/no GPS")
                self.signal_lost.emit()
            return False

        if not self._signal.is_in(SignalState.AVAILABLE, SignalState.SIGNAL_LOST):
            return False

        reasons = self._signal_problems(now)
        has_signal = not reasons

        if self._signal.is_in(SignalState.AVAILABLE) and not has_signal:
            self.signal_loss_reasons = reasons
            self._signal.transition_to(SignalState.SIGNAL_LOST, "; ".join(reasons))
            logger.info(f"GPS signal lost (accuracy: {self._accuracy}m, "
                        f"time since update: {now - self.last_location_update_time:.1f}s)")
            self.signal_lost.emit()
        elif self._signal.is_in(SignalState.SIGNAL_LOST) and has_signal:
            self.signal_loss_reasons = []
            self._signal.transition_to(SignalState.AVAILABLE, "signal restored")
            logger.info("GPS signal restored")
            self.signal_restored.emit()

        return has_signal

    def _signal_problems(self, now: float) -> List[str]:
        """Conditions currently indicating a bad signal (any one is enough)."""
        if self.debug.use_fixed_location:
            return []

        problems = []

        time_since_update = now - self.last_location_update_time
        if time_since_update > self.config.signal_lost_timeout_seconds:
            problems.append(f"no update for {time_since_update:.0f}s")

        # Indoors accuracy degrades before updates stop
        if self._accuracy > self.config.poor_accuracy_threshold_meters and self._accuracy > 0:
            problems.append(f"poor accuracy {self._accuracy:.0f}m")

        status = self.provider.current_status()
        if status != ProviderStatus.RUNNING:
            problems.append(f"provider {status.value}")

        return problems

    @property
    def state(self) -> SignalState:
        return self._signal.get_state()

    @property
    def has_gps_signal(self) -> bool:
        return not self._signal.is_in(SignalState.SIGNAL_LOST)

    @property
    def is_indoors(self) -> bool:
        return self._signal.is_in(SignalState.SIGNAL_LOST)

    def time_since_last_update(self, now: float) -> float:
        return now - self.last_location_update_time

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def coordinate(self) -> Coordinate:
        return self._coordinate

    @property
    def latitude(self) -> float:
        return self._coordinate.latitude

    @property
    def longitude(self) -> float:
        return self._coordinate.longitude

    @property
    def accuracy(self) -> float:
        return self._accuracy

    def has_location(self) -> bool:
        """Whether the location service is running with a usable fix."""
        return self.location_available and self._has_fix

    def distance_to(self, target: Coordinate) -> float:
        """Distance from the last accepted coordinate to target, in km."""
        return distance_km(self._coordinate, target)

    def bearing_to(self, target: Coordinate) -> float:
        """Initial bearing from the last accepted coordinate to target."""
        return bearing_deg(self._coordinate, target)

    def last_known_location(self) -> Coordinate:
        """Last accepted coordinate, kept through signal loss and stop()."""
        return self._coordinate

    def has_last_known_location(self) -> bool:
        return self._has_last_known

    def set_debug_location(self, coordinate: Coordinate) -> bool:
        """
        Move the fixed debug location.

        Args:
            coordinate: New fixed coordinate

        Returns:
            True if applied, False when not in fixed-location mode
        """
        if not self.debug.use_fixed_location:
            logger.warning("set_debug_location ignored: fixed-location mode is off")
            return False

        self.debug.latitude = coordinate.latitude
        self.debug.longitude = coordinate.longitude
        if self.location_available:
            self._accept(coordinate, self.last_location_update_time)
        return True

    # ------------------------------------------------------------------
    # City / country (filled in by the external reverse geocoder)
    # ------------------------------------------------------------------

    def set_city_country(self, city: Optional[str], country: Optional[str]):
        """Record a reverse-geocoding result and notify subscribers."""
        self._city = city or None
        self._country = country or None
        logger.info(f"Location: {self.city}, {self.country}")
        self.city_country_updated.emit(self.city, self.country)

    @property
    def city(self) -> str:
        return self._city or self.config.default_city

    @property
    def country(self) -> str:
        return self._country or self.config.default_country

    def city_country_string(self) -> str:
        return f"{self.city}, {self.country}"

    def get_status(self, now: Optional[float] = None) -> dict:
        """Snapshot for debug overlays and logs."""
        status = {
            'latitude': self._coordinate.latitude,
            'longitude': self._coordinate.longitude,
            'accuracy_m': self._accuracy,
            'city': self.city,
            'country': self.country,
            'available': self.location_available,
            'signal_state': self.state.value,
            'gps_signal': self.has_gps_signal,
            'indoors': self.is_indoors,
            'signal_loss_reasons': list(self.signal_loss_reasons),
            'last_error': self.last_error.kind.value if self.last_error else None,
        }
        if now is not None:
            status['time_since_update_s'] = self.time_since_last_update(now)
        return status
