# Communications Layer - Event Bridge
"""
ZMQ-based publishing of tracker events to UI processes.

Modules:
    - event_publisher: PUB socket forwarding tracker events as JSON
"""

from .event_publisher import EventPublisher

__all__ = ["EventPublisher"]
