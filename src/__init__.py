# Sky Watch Core - Source Package
"""
Sky Watch Core: Player positioning and device orientation for an AR sky game.

Modules:
    - base: Platform abstraction (location/motion providers, MAVLink)
    - tracking: Location tracker, orientation tracker, view queries
    - comms: Event bridge (ZMQ)
    - utils: Helper utilities (geo math, state machine, events, config)
"""

__version__ = "1.0.0"
