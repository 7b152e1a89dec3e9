"""
Simulation Module for the Sky Watch Trackers

Provides scripted location and orientation providers for testing
without a phone, GPS receiver or IMU.
"""

from simulation.mock_components import (
    MockLocationProvider,
    MockOrientationProvider,
    MockGPS
)

__all__ = [
    'MockLocationProvider',
    'MockOrientationProvider',
    'MockGPS'
]
