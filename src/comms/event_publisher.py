"""
EventPublisher - Tracker Events over ZMQ

Publishes location and orientation events on a PUB socket so UI processes
(HUD, radar, alerts) can follow the trackers without living in the same
process. Each message is a two-frame multipart: topic, JSON body.
"""

import json
import time
import logging
from typing import Optional, List, Tuple, Callable

import zmq

from src.base.providers import LocationError
from src.utils.events import Event
from src.utils.geo_math import Coordinate

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    ZMQ PUB bridge for LocationTracker / OrientationTracker events.

    Topics:
        location.updated, location.city_country, location.error,
        location.services_started, location.signal_lost,
        location.signal_restored, orientation.pitch_changed,
        orientation.heading_changed, orientation.sky_started,
        orientation.sky_stopped
    """

    def __init__(self, config: dict = None):
        """
        Initialize EventPublisher.

        Args:
            config: Configuration dictionary (endpoint, linger_ms, source_id)
        """
        self.config = config or {}
        self.endpoint = self.config.get('endpoint', 'tcp://127.0.0.1:5560')
        self.linger_ms = self.config.get('linger_ms', 0)
        self.source_id = self.config.get('source_id', 'sky_watch')

        self.context: Optional[zmq.Context] = None
        self.socket: Optional[zmq.Socket] = None
        self.is_bound = False

        self.messages_sent = 0
        self._subscriptions: List[Tuple[Event, Callable]] = []

    def bind(self) -> bool:
        """
        Bind the PUB socket.

        Returns:
            True if bound
        """
        if self.is_bound:
            return True

        try:
            self.context = zmq.Context()
            self.socket = self.context.socket(zmq.PUB)
            self.socket.setsockopt(zmq.LINGER, self.linger_ms)
            self.socket.bind(self.endpoint)
            self.is_bound = True
            logger.info(f"Event publisher bound to {self.endpoint}")
            return True
        except zmq.ZMQError as e:
            logger.error(f"Failed to bind event publisher: {e}")
            self._close_socket()
            return False

    def publish(self, topic: str, payload: dict = None) -> bool:
        """
        Send one event.

        Args:
            topic: Dotted topic string
            payload: JSON-serializable body

        Returns:
            True if sent
        """
        if not self.is_bound:
            return False

        body = {
            'source': self.source_id,
            'timestamp': time.time(),
            **(payload or {}),
        }

        try:
            self.socket.send_multipart([topic.encode(), json.dumps(body).encode()],
                                       flags=zmq.NOBLOCK)
            self.messages_sent += 1
            return True
        except zmq.ZMQError as e:
            logger.warning(f"Dropped event {topic}: {e}")
            return False

    def attach_location(self, tracker):
        """Forward every LocationTracker event."""
        self._forward(tracker.location_updated, 'location.updated', self._coordinate_body)
        self._forward(tracker.city_country_updated, 'location.city_country',
                      lambda city, country: {'city': city, 'country': country})
        self._forward(tracker.location_error, 'location.error', self._error_body)
        self._forward(tracker.services_started, 'location.services_started')
        self._forward(tracker.signal_lost, 'location.signal_lost',
                      lambda: {'reasons': list(tracker.signal_loss_reasons)})
        self._forward(tracker.signal_restored, 'location.signal_restored')

    def attach_orientation(self, tracker):
        """Forward every OrientationTracker event."""
        self._forward(tracker.pitch_changed, 'orientation.pitch_changed',
                      lambda pitch: {'pitch': pitch})
        self._forward(tracker.heading_changed, 'orientation.heading_changed',
                      lambda heading: {'heading': heading})
        self._forward(tracker.started_looking_at_sky, 'orientation.sky_started')
        self._forward(tracker.stopped_looking_at_sky, 'orientation.sky_stopped')

    def _forward(self, event: Event, topic: str, body: Callable = None):
        def handler(*args):
            self.publish(topic, body(*args) if body else {})

        event.subscribe(handler)
        self._subscriptions.append((event, handler))

    @staticmethod
    def _coordinate_body(coordinate: Coordinate) -> dict:
        return {'latitude': coordinate.latitude, 'longitude': coordinate.longitude}

    @staticmethod
    def _error_body(error: LocationError) -> dict:
        return {'kind': error.kind.value, 'message': error.message}

    def detach(self):
        """Unsubscribe from all tracker events."""
        for event, handler in self._subscriptions:
            event.unsubscribe(handler)
        self._subscriptions.clear()

    def _close_socket(self):
        if self.socket is not None:
            self.socket.close()
            self.socket = None
        if self.context is not None:
            self.context.term()
            self.context = None
        self.is_bound = False

    def close(self):
        """Detach and release the socket."""
        self.detach()
        if self.is_bound:
            logger.info(f"Event publisher closed ({self.messages_sent} events sent)")
        self._close_socket()
