# Tracking Layer - Location, Orientation and View Queries
"""
Player positioning and device orientation for the sky view.

Modules:
    - location_tracker: GPS acquisition and signal loss detection
    - orientation_tracker: Smoothed pitch/heading and sky-aim state
    - heading_gate: Field of view and nearest target queries
    - session: Frame-driven owner of the trackers
"""

from .location_tracker import LocationTracker
from .orientation_tracker import OrientationTracker
from .heading_gate import HeadingGate, SkyTarget, TargetFix
from .session import TrackingSession, build_providers

__all__ = ["LocationTracker", "OrientationTracker", "HeadingGate", "SkyTarget",
           "TargetFix", "TrackingSession", "build_providers"]
