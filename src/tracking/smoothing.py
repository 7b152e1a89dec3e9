"""
Smoothing - Critically Damped "Smooth Toward" Filter

Moves a value toward a target with a tracked velocity so it settles in
about smooth_time seconds without overshoot. The exact exponential
solution of the critically damped spring is used, so for a fixed target
the result depends only on total elapsed time, not on how it was split
into ticks.
"""

import math
from typing import Tuple

MIN_SMOOTH_TIME = 1e-4


def smooth_damp(current: float, target: float, velocity: float,
                smooth_time: float, dt: float) -> Tuple[float, float]:
    """
    Advance a critically damped value by dt seconds.

    Args:
        current: Current value
        target: Value to approach
        velocity: Current rate of change (units/second)
        smooth_time: Approximate time to reach the target (seconds)
        dt: Elapsed time (seconds)

    Returns:
        Tuple of (new_value, new_velocity)
    """
    if dt <= 0:
        return current, velocity

    smooth_time = max(MIN_SMOOTH_TIME, smooth_time)
    omega = 2.0 / smooth_time
    decay = math.exp(-omega * dt)

    change = current - target
    temp = (velocity + omega * change) * dt
    new_velocity = (velocity - omega * temp) * decay
    output = target + (change + temp) * decay

    # Never pass the target
    if (target - current > 0) == (output > target):
        output = target
        new_velocity = 0.0

    return output, new_velocity


class DampedValue:
    """A smoothed scalar with its own velocity state."""

    def __init__(self, smooth_time: float, value: float = 0.0):
        self.smooth_time = smooth_time
        self.value = value
        self.velocity = 0.0

    def update(self, target: float, dt: float) -> float:
        self.value, self.velocity = smooth_damp(
            self.value, target, self.velocity, self.smooth_time, dt
        )
        return self.value

    def snap(self, value: float):
        """Jump straight to value and stop moving."""
        self.value = value
        self.velocity = 0.0

    def __repr__(self) -> str:
        return f"DampedValue(value={self.value:.3f}, velocity={self.velocity:.3f})"
