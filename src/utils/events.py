"""
Events - Synchronous Observer Notifications

Multi-subscriber callbacks fired on the thread that detected the
transition, in subscription order.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class Event:
    """
    A named notification with any number of subscribers.

    Subscribers that raise are logged and skipped; the remaining
    subscribers still receive the notification.
    """

    def __init__(self, name: str):
        self.name = name
        self._subscribers: List[Callable[..., None]] = []

    def subscribe(self, callback: Callable[..., None]) -> Callable[..., None]:
        """Add a subscriber. Returns the callback so it can be kept for unsubscribe."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[..., None]) -> bool:
        """Remove a subscriber. Returns False if it was not subscribed."""
        try:
            self._subscribers.remove(callback)
            return True
        except ValueError:
            return False

    def emit(self, *args) -> None:
        # Copy so a subscriber may unsubscribe itself while being notified
        for callback in list(self._subscribers):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"{self.name} subscriber error: {e}")

    def clear(self):
        self._subscribers.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        return f"Event({self.name!r}, subscribers={len(self._subscribers)})"
