#!/usr/bin/env python3
"""
Unit tests for tracker configuration loading.

Tests:
1. Defaults match the product tuning
2. YAML loading of the shipped config
3. Unknown sections/keys are ignored with a warning
4. Invalid values raise ConfigError
"""

import sys
import logging
from pathlib import Path

import pytest
import yaml

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.utils.config import (
    TrackerConfig,
    LocationConfig,
    OrientationConfig,
    ConfigError,
    load_config,
)

CONFIG_PATH = Path(__file__).parent.parent / "config" / "tracker_params.yaml"


class TestDefaults:

    def test_location_defaults(self):
        config = LocationConfig()
        assert config.update_interval_seconds == 30.0
        assert config.desired_accuracy_meters == 100.0
        assert config.update_distance_meters == 50.0
        assert config.timeout_seconds == 20.0
        assert config.signal_lost_timeout_seconds == 30.0
        assert config.poor_accuracy_threshold_meters == 100.0
        assert config.signal_check_interval_seconds == 5.0
        assert config.significant_change_degrees == 0.001

    def test_orientation_defaults(self):
        config = OrientationConfig()
        assert config.sky_view_threshold == 30.0
        assert config.compass_smooth_time == 0.2
        assert config.pitch_smooth_time == 0.1
        assert config.fov_degrees == 60.0

    def test_empty_mapping_gives_defaults(self):
        assert TrackerConfig.from_dict(None) == TrackerConfig()
        assert TrackerConfig.from_dict({}) == TrackerConfig()


class TestLoading:

    def test_shipped_config_loads(self):
        config = load_config(CONFIG_PATH)
        assert config.location.signal_lost_timeout_seconds == 30.0
        assert config.debug.latitude == pytest.approx(40.7128)
        assert config.providers.location == "mock"
        assert config.events.enabled is False

    def test_overrides_from_yaml(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text(yaml.safe_dump({
            'location': {'signal_lost_timeout_seconds': 45},
            'debug': {'use_fixed_location': True, 'latitude': 51.5, 'longitude': -0.12},
            'providers': {'location': 'mavlink', 'mavlink_connection': 'udp:0.0.0.0:14551'},
        }))

        config = load_config(path)

        assert config.location.signal_lost_timeout_seconds == 45
        assert config.location.timeout_seconds == 20.0
        assert config.debug.use_fixed_location is True
        assert config.providers.location == "mavlink"
        assert config.providers.orientation == "mock"
        assert config.providers.mavlink_connection == "udp:0.0.0.0:14551"

    def test_unknown_keys_are_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = TrackerConfig.from_dict({
                'location': {'timeout_seconds': 10, 'bogus': 1},
                'rendering': {'fps': 30},
            })

        assert config.location.timeout_seconds == 10
        assert "bogus" in caplog.text
        assert "rendering" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_config(tmp_path / "missing.yaml")


class TestValidation:

    @pytest.mark.parametrize("section,key,value", [
        ('location', 'update_interval_seconds', 0),
        ('location', 'timeout_seconds', -1),
        ('location', 'signal_check_interval_seconds', 0),
        ('location', 'significant_change_degrees', -0.001),
        ('orientation', 'pitch_smooth_time', -0.1),
        ('orientation', 'fov_degrees', 0),
        ('orientation', 'frame_rate', 0),
        ('providers', 'location', 'gps_daemon'),
    ])
    def test_invalid_values(self, section, key, value):
        with pytest.raises(ConfigError):
            TrackerConfig.from_dict({section: {key: value}})

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            TrackerConfig.from_dict({'providers': {'orientation': 'imu'}})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
