"""
StateMachine - Tracker State Tracking

Provides validated state transitions for the location signal state and the
sky-aim state.
"""

import logging
from enum import Enum
from typing import Optional, Dict, Set

logger = logging.getLogger(__name__)


class SignalState(Enum):
    """
    GPS signal quality states.

    SIGNAL_LOST is an expected operating state (indoors), not a fault.
    """
    ACQUIRING = "acquiring"         # Waiting for first accepted fix
    AVAILABLE = "available"         # Fix accepted, signal considered good
    SIGNAL_LOST = "signal_lost"     # Stale, inaccurate or provider not running


class SkyAimState(Enum):
    """Whether the device is tilted above the sky view threshold."""
    GROUNDED = "grounded"
    LOOKING_AT_SKY = "looking_at_sky"


SIGNAL_TRANSITIONS: Dict[Enum, Set[Enum]] = {
    SignalState.ACQUIRING: {SignalState.AVAILABLE},
    SignalState.AVAILABLE: {SignalState.SIGNAL_LOST},
    SignalState.SIGNAL_LOST: {SignalState.AVAILABLE},
}

SKY_AIM_TRANSITIONS: Dict[Enum, Set[Enum]] = {
    SkyAimState.GROUNDED: {SkyAimState.LOOKING_AT_SKY},
    SkyAimState.LOOKING_AT_SKY: {SkyAimState.GROUNDED},
}


class StateMachine:
    """
    State machine with transition validation.

    Tracks the current state and rejects transitions missing from the
    transition table. Owners announce changes through their own events.
    """

    def __init__(self, initial_state: Enum,
                 transitions: Dict[Enum, Set[Enum]],
                 name: str = "state"):
        """
        Initialize StateMachine.

        Args:
            initial_state: Initial state
            transitions: Valid transitions (from_state -> set of valid to_states)
            name: Label used in log messages
        """
        self.name = name
        self.initial_state = initial_state
        self.transitions = transitions
        self.current_state = initial_state
        self.previous_state: Optional[Enum] = None

        logger.debug(f"{self.name} machine initialized in {initial_state.value} state")

    def transition_to(self, new_state: Enum, reason: str = "") -> bool:
        """
        Attempt to transition to a new state.

        Args:
            new_state: Target state
            reason: Reason for transition (for logging)

        Returns:
            True if transition successful, False if invalid
        """
        if not self.can_transition_to(new_state):
            logger.warning(f"Invalid {self.name} transition: "
                           f"{self.current_state.value} -> {new_state.value}")
            return False

        self.previous_state = self.current_state
        self.current_state = new_state

        logger.info(f"{self.name} transition: {self.previous_state.value} -> {new_state.value}"
                    + (f" ({reason})" if reason else ""))
        return True

    def get_state(self) -> Enum:
        """Get current state."""
        return self.current_state

    def is_in(self, *states: Enum) -> bool:
        """
        Check if current state is one of the given states.

        Args:
            *states: States to check against

        Returns:
            True if current state matches any of the given states
        """
        return self.current_state in states

    def can_transition_to(self, state: Enum) -> bool:
        """Check if transition to given state is valid."""
        return state in self.transitions.get(self.current_state, set())

    def reset(self):
        """Reset to the initial state."""
        self.current_state = self.initial_state
        self.previous_state = None
        logger.info(f"{self.name} machine reset to {self.initial_state.value}")
