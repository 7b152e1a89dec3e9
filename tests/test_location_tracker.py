#!/usr/bin/env python3
"""
Unit tests for LocationTracker - acquisition, sampling and signal loss.

Tests:
1. Acquisition success and each failure kind
2. Significant-change acceptance of samples
3. Signal lost / restored, one event per transition
4. Fixed-location and simulated-indoors debug modes
5. Stop / restart lifecycle
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.base.providers import LocationErrorKind, ProviderStatus
from src.tracking.location_tracker import LocationTracker
from src.utils.config import LocationConfig, DebugConfig
from src.utils.geo_math import Coordinate
from src.utils.state_machine import SignalState
from simulation.mock_components import MockLocationProvider

NEW_YORK = Coordinate(40.7128, -74.0060)

EVENT_NAMES = ('location_updated', 'city_country_updated', 'location_error',
               'services_started', 'signal_lost', 'signal_restored')


def listen(tracker: LocationTracker) -> dict:
    """Subscribe a MagicMock to every tracker event."""
    listeners = {}
    for name in EVENT_NAMES:
        listeners[name] = getattr(tracker, name).subscribe(MagicMock())
    return listeners


@pytest.fixture
def provider():
    return MockLocationProvider({'lat': NEW_YORK.latitude, 'lon': NEW_YORK.longitude})


@pytest.fixture
def tracker(provider):
    return LocationTracker(provider, LocationConfig())


@pytest.fixture
def running(tracker, provider):
    """Tracker started at t=0 with its first fix accepted."""
    events = listen(tracker)
    assert tracker.start(0.0)
    tracker.tick(0.0)
    return tracker, provider, events


class TestAcquisition:

    def test_start_passes_accuracy_and_distance(self, tracker, provider):
        assert tracker.start(0.0) is True
        assert provider.start_args == (100.0, 50.0)
        assert tracker.is_acquiring
        assert tracker.state == SignalState.ACQUIRING

    def test_first_fix(self, running):
        tracker, _, events = running

        assert tracker.state == SignalState.AVAILABLE
        assert tracker.location_available
        assert tracker.has_location()
        assert tracker.coordinate == NEW_YORK
        assert tracker.accuracy == 5.0
        events['services_started'].assert_called_once_with()
        events['location_updated'].assert_called_once_with(NEW_YORK)

    def test_waits_while_initializing(self):
        provider = MockLocationProvider({'start_status': 'initializing'})
        tracker = LocationTracker(provider)
        tracker.start(0.0)

        tracker.tick(5.0)
        assert tracker.is_acquiring
        assert not tracker.location_available

        provider.set_status(ProviderStatus.RUNNING)
        tracker.tick(6.0)
        assert tracker.location_available
        assert tracker.state == SignalState.AVAILABLE

    def test_timeout(self):
        provider = MockLocationProvider({'start_status': 'initializing'})
        tracker = LocationTracker(provider)
        events = listen(tracker)
        tracker.start(0.0)

        tracker.tick(19.9)
        events['location_error'].assert_not_called()

        tracker.tick(20.0)
        assert tracker.last_error.kind == LocationErrorKind.ACQUISITION_TIMEOUT
        events['location_error'].assert_called_once_with(tracker.last_error)
        assert not tracker.is_active
        assert provider.stop_calls == 1

        # Terminal for this attempt
        tracker.tick(60.0)
        assert events['location_error'].call_count == 1

    def test_provider_failure(self):
        provider = MockLocationProvider({'start_status': 'failed'})
        tracker = LocationTracker(provider)
        tracker.start(0.0)
        tracker.tick(0.1)

        assert tracker.last_error.kind == LocationErrorKind.PROVIDER_FAILURE
        assert not tracker.location_available
        assert provider.stop_calls == 1

    def test_service_disabled(self):
        tracker = LocationTracker(MockLocationProvider({'enabled': False}))
        events = listen(tracker)

        assert tracker.start(0.0) is False
        assert tracker.last_error.kind == LocationErrorKind.SERVICE_DISABLED
        events['location_error'].assert_called_once()
        assert not tracker.is_active

    def test_permission_denied(self):
        provider = MockLocationProvider({'permission_granted': False})
        tracker = LocationTracker(provider)

        assert tracker.start(0.0) is False
        assert tracker.last_error.kind == LocationErrorKind.PERMISSION_DENIED
        assert tracker.permission_granted is False
        assert provider.start_calls == 0

    def test_no_provider(self):
        tracker = LocationTracker(None)
        assert tracker.start(0.0) is False
        assert tracker.last_error.kind == LocationErrorKind.HARDWARE_UNAVAILABLE


class TestSampling:

    def test_small_move_not_accepted_but_accuracy_updates(self, running):
        tracker, provider, events = running

        sample = provider.set_position(NEW_YORK.latitude + 0.0005, NEW_YORK.longitude,
                                       accuracy=12.0, sample_time=1000.0)
        tracker.tick(10.0, sample)

        assert tracker.coordinate == NEW_YORK
        assert tracker.accuracy == 12.0
        assert tracker.last_location_update_time == 10.0
        assert events['location_updated'].call_count == 1

    def test_significant_move_accepted(self, running):
        tracker, provider, events = running

        sample = provider.set_position(NEW_YORK.latitude, NEW_YORK.longitude + 0.002,
                                       sample_time=1000.0)
        tracker.tick(10.0, sample)

        assert tracker.coordinate == sample.coordinate
        events['location_updated'].assert_called_with(sample.coordinate)
        assert events['location_updated'].call_count == 2

    def test_periodic_resample(self, running):
        tracker, provider, events = running

        provider.walk(90.0, 1.0, sample_time=1000.0)
        tracker.tick(29.0)
        assert events['location_updated'].call_count == 1

        tracker.tick(30.0)
        assert events['location_updated'].call_count == 2
        assert tracker.distance_to(NEW_YORK) == pytest.approx(1.0, abs=1e-6)
        assert tracker.bearing_to(NEW_YORK) == pytest.approx(270.0, abs=0.1)

    def test_repeated_sample_does_not_refresh(self, running):
        tracker, provider, _ = running

        tracker.tick(30.0)      # Re-reads the same sample
        assert tracker.last_location_update_time == 0.0

    def test_samples_ignored_before_available(self, tracker, provider):
        sample = provider.set_position(1.0, 1.0, sample_time=5.0)
        tracker.tick(5.0, sample)
        assert tracker.coordinate == Coordinate(0.0, 0.0)


class TestSignalLoss:
    """Signal state transitions fire exactly once each."""

    def test_lost_after_timeout_and_restored(self, running):
        print("\n=== Test: Signal Lost / Restored ===")
        tracker, provider, events = running

        for t in range(1, 31):
            tracker.tick(float(t))
            if t % 5 == 0:
                assert tracker.check_signal(float(t)) is True
        assert tracker.state == SignalState.AVAILABLE

        assert tracker.check_signal(31.0) is False
        assert tracker.state == SignalState.SIGNAL_LOST
        assert tracker.is_indoors
        assert not tracker.has_gps_signal
        events['signal_lost'].assert_called_once_with()
        print(f"  Lost: {tracker.signal_loss_reasons}")

        tracker.check_signal(36.0)
        assert events['signal_lost'].call_count == 1

        sample = provider.set_position(NEW_YORK.latitude + 0.01, NEW_YORK.longitude,
                                       sample_time=2000.0)
        tracker.tick(40.0, sample)
        assert tracker.check_signal(41.0) is True
        assert tracker.state == SignalState.AVAILABLE
        events['signal_restored'].assert_called_once_with()
        assert tracker.signal_loss_reasons == []

        tracker.check_signal(46.0)
        assert events['signal_restored'].call_count == 1
        print("  [PASS] Signal lost / restored")

    def test_last_known_location_survives_loss(self, running):
        tracker, _, _ = running

        tracker.check_signal(31.0)

        assert tracker.is_indoors
        assert tracker.has_last_known_location()
        assert tracker.last_known_location() == NEW_YORK

    def test_poor_accuracy(self, running):
        tracker, provider, events = running

        sample = provider.set_position(NEW_YORK.latitude, NEW_YORK.longitude,
                                       accuracy=150.0, sample_time=1000.0)
        tracker.tick(5.0, sample)
        tracker.check_signal(5.0)

        assert tracker.state == SignalState.SIGNAL_LOST
        assert any("accuracy" in reason for reason in tracker.signal_loss_reasons)
        events['signal_lost'].assert_called_once()

    def test_provider_not_running(self, running):
        tracker, provider, _ = running

        provider.set_status(ProviderStatus.FAILED)
        tracker.check_signal(5.0)

        assert tracker.state == SignalState.SIGNAL_LOST
        assert "provider failed" in tracker.signal_loss_reasons

    def test_no_check_before_start(self, tracker):
        assert tracker.check_signal(100.0) is False
        assert tracker.state == SignalState.ACQUIRING

    def test_origin_fix_is_not_last_known(self):
        provider = MockLocationProvider({'lat': 0.0, 'lon': 0.0})
        tracker = LocationTracker(provider)
        tracker.start(0.0)
        tracker.tick(0.0)

        assert tracker.state == SignalState.AVAILABLE
        assert not tracker.has_last_known_location()


class TestDebugModes:

    def test_fixed_location(self):
        """Fixed mode at New York has a location immediately."""
        print("\n=== Test: Fixed Location ===")
        tracker = LocationTracker(None, debug=DebugConfig(use_fixed_location=True))
        events = listen(tracker)

        assert tracker.start(0.0) is True

        assert tracker.has_location()
        assert tracker.state == SignalState.AVAILABLE
        assert tracker.distance_to(NEW_YORK) == 0.0
        events['location_updated'].assert_called_once_with(NEW_YORK)
        events['services_started'].assert_called_once()
        print("  [PASS] Fixed location")

    def test_fixed_location_never_loses_signal(self):
        tracker = LocationTracker(None, debug=DebugConfig(use_fixed_location=True))
        tracker.start(0.0)

        assert tracker.check_signal(1000.0) is True
        assert tracker.state == SignalState.AVAILABLE

    def test_fixed_location_ignores_samples(self, provider):
        tracker = LocationTracker(provider, debug=DebugConfig(use_fixed_location=True))
        tracker.start(0.0)

        tracker.tick(1.0, provider.set_position(10.0, 10.0, sample_time=1.0))

        assert tracker.coordinate == NEW_YORK
        assert provider.start_calls == 0

    def test_set_debug_location(self):
        tracker = LocationTracker(None, debug=DebugConfig(use_fixed_location=True))
        tracker.start(0.0)
        london = Coordinate(51.5074, -0.1278)

        assert tracker.set_debug_location(london) is True
        assert tracker.coordinate == london

    def test_set_debug_location_requires_fixed_mode(self, running):
        tracker, _, _ = running
        assert tracker.set_debug_location(Coordinate(1.0, 1.0)) is False
        assert tracker.coordinate == NEW_YORK

    def test_simulated_indoors(self):
        tracker = LocationTracker(None, debug=DebugConfig(use_fixed_location=True,
                                                          simulate_indoors=True))
        events = listen(tracker)
        tracker.start(0.0)

        assert tracker.check_signal(5.0) is False
        assert tracker.is_indoors
        tracker.check_signal(10.0)
        events['signal_lost'].assert_called_once()
        assert tracker.has_last_known_location()


class TestLifecycle:

    def test_stop_is_idempotent_and_silent(self, running):
        tracker, provider, events = running
        for listener in events.values():
            listener.reset_mock()

        tracker.stop()
        tracker.stop()

        assert provider.stop_calls == 1
        assert not tracker.location_available
        assert not tracker.is_active
        for listener in events.values():
            listener.assert_not_called()

    def test_stop_cancels_pending_acquisition(self):
        provider = MockLocationProvider({'start_status': 'initializing'})
        tracker = LocationTracker(provider)
        events = listen(tracker)
        tracker.start(0.0)

        tracker.stop()
        tracker.tick(100.0)

        events['location_error'].assert_not_called()
        assert provider.stop_calls == 1

    def test_restart_returns_to_acquiring_then_available(self, running):
        tracker, provider, _ = running
        tracker.check_signal(31.0)
        assert tracker.is_indoors

        assert tracker.restart(50.0) is True
        assert tracker.state == SignalState.ACQUIRING
        assert tracker.has_last_known_location()

        tracker.tick(50.0)
        assert tracker.state == SignalState.AVAILABLE
        assert tracker.has_location()

    def test_restart_after_failure(self):
        provider = MockLocationProvider({'enabled': False})
        tracker = LocationTracker(provider)
        assert tracker.start(0.0) is False

        provider.enabled = True
        assert tracker.restart(1.0) is True
        tracker.tick(1.0)
        assert tracker.location_available
        assert tracker.last_error is None


class TestCityCountry:

    def test_defaults(self, tracker):
        assert tracker.city == "Unknown City"
        assert tracker.country == "Unknown"
        assert tracker.city_country_string() == "Unknown City, Unknown"

    def test_set_city_country(self, tracker):
        listener = tracker.city_country_updated.subscribe(MagicMock())

        tracker.set_city_country("Brooklyn", "United States")

        assert tracker.city_country_string() == "Brooklyn, United States"
        listener.assert_called_once_with("Brooklyn", "United States")

    def test_empty_result_falls_back(self, tracker):
        tracker.set_city_country("", None)
        assert tracker.city == "Unknown City"
        assert tracker.country == "Unknown"

    def test_status_report(self, running):
        tracker, _, _ = running
        status = tracker.get_status(now=12.0)

        assert status['signal_state'] == "available"
        assert status['available'] is True
        assert status['time_since_update_s'] == 12.0
        assert status['last_error'] is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
