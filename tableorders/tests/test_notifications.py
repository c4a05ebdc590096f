"""
CHANGE LOG
- 2026-02-09: EventNotifier fan-out tests (no database).
"""

from __future__ import annotations

from django.test import SimpleTestCase

from tableorders.services.notifications import (
    NEW_ORDER,
    EventNotifier,
    LifecycleEvent,
)


def _event():
    return LifecycleEvent(type=NEW_ORDER, order_id=1, code="ORD-1-ABCD", total=50000, table_number="5")


class EventNotifierTests(SimpleTestCase):
    def test_publish_reaches_every_subscriber(self):
        notifier = EventNotifier()
        first, second = [], []
        notifier.subscribe(first.append)
        notifier.subscribe(second.append)

        notifier.publish(_event())

        self.assertEqual(len(first), 1)
        self.assertEqual(len(second), 1)
        self.assertEqual(first[0].code, "ORD-1-ABCD")

    def test_subscribe_twice_delivers_once(self):
        notifier = EventNotifier()
        seen = []
        notifier.subscribe(seen.append)
        notifier.subscribe(seen.append)

        notifier.publish(_event())

        self.assertEqual(len(seen), 1)

    def test_failing_subscriber_does_not_block_others(self):
        notifier = EventNotifier()
        seen = []

        def broken(event):
            raise RuntimeError("printer offline")

        notifier.subscribe(broken)
        notifier.subscribe(seen.append)

        with self.assertLogs("tableorders.services.notifications", level="ERROR"):
            notifier.publish(_event())

        self.assertEqual(len(seen), 1)

    def test_unsubscribe(self):
        notifier = EventNotifier()
        seen = []
        notifier.subscribe(seen.append)
        notifier.unsubscribe(seen.append)
        notifier.unsubscribe(seen.append)

        notifier.publish(_event())

        self.assertEqual(seen, [])

    def test_event_as_dict(self):
        data = _event().as_dict()
        self.assertEqual(data["type"], "new_order")
        self.assertEqual(data["table_number"], "5")
        self.assertIn("timestamp", data)
