"""
Config - Tracker Configuration

Dataclass sections with product defaults, loaded from a YAML file
(config/tracker_params.yaml). Unknown keys are logged and ignored.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Union

import yaml

logger = logging.getLogger(__name__)

PROVIDER_KINDS = ("mock", "mavlink")


class ConfigError(ValueError):
    """Raised for configuration values the trackers cannot run with."""


@dataclass
class LocationConfig:
    """Location acquisition and signal-quality settings."""
    update_interval_seconds: float = 30.0       # Periodic re-sampling cadence
    desired_accuracy_meters: float = 100.0
    update_distance_meters: float = 50.0        # Passed to the provider as min distance
    timeout_seconds: float = 20.0               # Max wait for the service to start
    signal_lost_timeout_seconds: float = 30.0
    poor_accuracy_threshold_meters: float = 100.0
    signal_check_interval_seconds: float = 5.0
    significant_change_degrees: float = 0.001   # ~100 m, lat or lon
    default_city: str = "Unknown City"
    default_country: str = "Unknown"


@dataclass
class OrientationConfig:
    """Sensor smoothing and sky-aim settings."""
    sky_view_threshold: float = 30.0     # Degrees above horizon
    compass_smooth_time: float = 0.2
    pitch_smooth_time: float = 0.1
    fov_degrees: float = 60.0            # Horizontal field of view
    vertical_fov_degrees: float = 90.0
    change_threshold_degrees: float = 0.1
    frame_rate: float = 60.0


@dataclass
class DebugConfig:
    """Desk-testing overrides."""
    use_fixed_location: bool = False
    latitude: float = 40.7128      # New York
    longitude: float = -74.0060
    simulate_indoors: bool = False


@dataclass
class ProviderConfig:
    """Platform provider selection."""
    location: str = "mock"
    orientation: str = "mock"
    mavlink_connection: str = "udp:127.0.0.1:14550"
    mavlink_source_system: int = 255
    mavlink_heartbeat_timeout: float = 5.0


@dataclass
class EventBridgeConfig:
    """ZMQ publisher for out-of-process UI collaborators."""
    enabled: bool = False
    endpoint: str = "tcp://127.0.0.1:5560"
    linger_ms: int = 0


@dataclass
class TrackerConfig:
    """All configuration sections."""
    location: LocationConfig = field(default_factory=LocationConfig)
    orientation: OrientationConfig = field(default_factory=OrientationConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    events: EventBridgeConfig = field(default_factory=EventBridgeConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TrackerConfig":
        """
        Build a TrackerConfig from a parsed YAML mapping.

        Args:
            data: Mapping of section name -> section mapping (may be None)

        Returns:
            Validated TrackerConfig
        """
        data = data or {}
        known = {f.name: f for f in fields(cls)}

        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown config section: {key}")

        config = cls(
            location=_section(LocationConfig, data.get('location')),
            orientation=_section(OrientationConfig, data.get('orientation')),
            debug=_section(DebugConfig, data.get('debug')),
            providers=_section(ProviderConfig, data.get('providers')),
            events=_section(EventBridgeConfig, data.get('events')),
        )
        config.validate()
        return config

    def validate(self):
        """Raise ConfigError for values the trackers cannot run with."""
        loc = self.location
        for name in ('update_interval_seconds', 'timeout_seconds',
                     'signal_lost_timeout_seconds', 'signal_check_interval_seconds'):
            if getattr(loc, name) <= 0:
                raise ConfigError(f"location.{name} must be positive")
        if loc.significant_change_degrees < 0:
            raise ConfigError("location.significant_change_degrees must not be negative")

        ori = self.orientation
        if ori.compass_smooth_time < 0 or ori.pitch_smooth_time < 0:
            raise ConfigError("orientation smooth times must not be negative")
        if not 0 < ori.fov_degrees <= 360:
            raise ConfigError("orientation.fov_degrees must be in (0, 360]")
        if ori.frame_rate <= 0:
            raise ConfigError("orientation.frame_rate must be positive")

        for kind in (self.providers.location, self.providers.orientation):
            if kind not in PROVIDER_KINDS:
                raise ConfigError(f"Unknown provider kind: {kind} "
                                  f"(expected one of {', '.join(PROVIDER_KINDS)})")


def _section(section_cls, data: Optional[dict]):
    """Instantiate a config section, dropping unknown keys."""
    if not data:
        return section_cls()

    names = {f.name for f in fields(section_cls)}
    kwargs = {}
    for key, value in data.items():
        if key in names:
            kwargs[key] = value
        else:
            logger.warning(f"Ignoring unknown {section_cls.__name__} key: {key}")
    return section_cls(**kwargs)


def load_config(path: Union[str, Path]) -> TrackerConfig:
    """Load YAML configuration file."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    config = TrackerConfig.from_dict(data)
    logger.info(f"Loaded tracker configuration from {path}")
    return config
