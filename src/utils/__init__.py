# Utilities - Helper Functions
"""
Utility modules for geodesy, state management, events and configuration.

Modules:
    - geo_math: Lat/lon distance and bearing, heading wrap and compass labels
    - state_machine: Signal and sky-aim state tracking
    - events: Synchronous observer notifications
    - config: Dataclass configuration loaded from YAML
"""

from .geo_math import Coordinate, distance_km, bearing_deg, wrap_angle, normalize_heading
from .state_machine import SignalState, SkyAimState, StateMachine
from .events import Event
from .config import TrackerConfig, ConfigError, load_config

__all__ = [
    "Coordinate",
    "distance_km",
    "bearing_deg",
    "wrap_angle",
    "normalize_heading",
    "SignalState",
    "SkyAimState",
    "StateMachine",
    "Event",
    "TrackerConfig",
    "ConfigError",
    "load_config"
]
