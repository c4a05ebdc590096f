"""
tableorders.services.notifications

In-process fan-out of order lifecycle events to subscribed observers (admin
dashboards, printers, chat bots...). The lifecycle service publishes only after
its transaction commits, so observers never see an order that was rolled back.

A subscriber that raises is logged and skipped; it never breaks the request
that published the event or the other subscribers.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from django.utils import timezone

log = logging.getLogger(__name__)

NEW_ORDER = "new_order"
PAYMENT_RECEIVED = "payment_received"
PAYMENT_EXPIRED = "payment_expired"


@dataclass(frozen=True)
class LifecycleEvent:
    type: str
    order_id: int
    code: str
    total: int
    table_number: Optional[str] = None
    timestamp: str = field(default_factory=lambda: timezone.now().isoformat())

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


Subscriber = Callable[[LifecycleEvent], None]


class EventNotifier:
    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Subscriber:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event: LifecycleEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        log.info(
            "Event %s order=%s code=%s table=%s subscribers=%d",
            event.type, event.order_id, event.code, event.table_number or "-", len(subscribers),
        )
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                log.exception("Subscriber %r failed on %s", callback, event.type)


def event_for(event_type: str, order) -> LifecycleEvent:
    table = order.table
    return LifecycleEvent(
        type=event_type,
        order_id=order.pk,
        code=order.code,
        total=order.total,
        table_number=table.table_number if table is not None else None,
    )


notifier = EventNotifier()
