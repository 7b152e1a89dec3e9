#!/usr/bin/env python3
"""
Unit tests for Event - synchronous observer notifications.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.utils.events import Event


class TestEvent:

    def test_emit_in_subscription_order(self):
        event = Event("location_updated")
        calls = []
        event.subscribe(lambda value: calls.append(("first", value)))
        event.subscribe(lambda value: calls.append(("second", value)))

        event.emit(42)

        assert calls == [("first", 42), ("second", 42)]

    def test_subscribe_returns_callback_and_ignores_duplicates(self):
        event = Event("signal_lost")
        callback = MagicMock()

        assert event.subscribe(callback) is callback
        event.subscribe(callback)
        event.emit()

        assert event.subscriber_count == 1
        callback.assert_called_once_with()

    def test_unsubscribe(self):
        event = Event("signal_restored")
        callback = event.subscribe(MagicMock())

        assert event.unsubscribe(callback) is True
        assert event.unsubscribe(callback) is False
        event.emit()
        callback.assert_not_called()

    def test_failing_subscriber_does_not_stop_others(self):
        event = Event("heading_changed")
        after = MagicMock()
        event.subscribe(MagicMock(side_effect=RuntimeError("ui gone")))
        event.subscribe(after)

        event.emit(90.0)

        after.assert_called_once_with(90.0)

    def test_subscriber_may_unsubscribe_itself(self):
        event = Event("started_looking_at_sky")
        other = MagicMock()

        def once():
            event.unsubscribe(once)

        event.subscribe(once)
        event.subscribe(other)
        event.emit()
        event.emit()

        assert other.call_count == 2
        assert event.subscriber_count == 1

    def test_clear(self):
        event = Event("pitch_changed")
        event.subscribe(MagicMock())
        event.clear()
        assert event.subscriber_count == 0
        assert "pitch_changed" in repr(event)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
