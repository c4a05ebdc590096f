"""
tableorders.services.reaper

Stale table lock reaper. Releases occupied tables whose latest order can no
longer hold them:

- no order at all (inconsistent data)
- pending for longer than TABLEORDERS_STALE_PENDING_MINUTES -> order expired
- expired / failed / cancelled (missed webhook, reconciliation gap)
- completed while the table stayed occupied (earlier partial failure)

Paid orders keep their table; only completion or cancellation frees it.

Tables and orders are selected with FOR UPDATE SKIP LOCKED, so rows held by an
in-flight request are skipped this cycle instead of waited on. Several reaper
processes can run at once without processing the same table twice.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import close_old_connections, transaction
from django.utils import timezone

from tableorders.models import Order, PaymentStatus, Table
from tableorders.services import notifications

log = logging.getLogger(__name__)

RELEASABLE_STATUSES = (
    PaymentStatus.EXPIRED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.COMPLETED,
)


def stale_pending_window() -> timedelta:
    return timedelta(minutes=getattr(settings, "TABLEORDERS_STALE_PENDING_MINUTES", 15))


def _release(table: Table, reason: str) -> None:
    table.occupied = False
    table.locked_at = None
    table.save(update_fields=["occupied", "locked_at", "updated_at"])
    log.info("Reaper released table %s (%s)", table.table_number, reason)


def _reap_table(table: Table, cutoff) -> bool:
    """Handle one locked table. Returns True when the table was released."""
    latest = table.orders.order_by("-created_at", "-pk").first()

    if latest is None:
        _release(table, "no order")
        return True

    if latest.payment_status == PaymentStatus.PENDING:
        if latest.created_at >= cutoff:
            return False
        order = Order.objects.select_for_update(skip_locked=True).filter(pk=latest.pk).first()
        if order is None:
            log.debug("Reaper skipped table %s: order %s busy", table.table_number, latest.code)
            return False
        if order.payment_status != PaymentStatus.PENDING:
            # Changed between the read and the lock; next cycle sees the new state.
            return False
        order.payment_status = PaymentStatus.EXPIRED
        order.save(update_fields=["payment_status", "updated_at"])
        event = notifications.event_for(notifications.PAYMENT_EXPIRED, order)
        transaction.on_commit(lambda: notifications.notifier.publish(event))
        _release(table, f"order {order.code} pending since {order.created_at:%Y-%m-%d %H:%M:%S}")
        return True

    if latest.payment_status in RELEASABLE_STATUSES:
        _release(table, f"order {latest.code} is {latest.payment_status}")
        return True

    # paid: the table stays with its order.
    return False


def sweep(now=None) -> int:
    """
    Run one reaper cycle in its own transaction. Returns the number of tables released.

    A failure on one table rolls back that table's savepoint only; a failure of
    the outer transaction rolls back the whole sweep and propagates.
    """
    now = now or timezone.now()
    cutoff = now - stale_pending_window()
    released = 0

    with transaction.atomic():
        tables = list(
            Table.objects.select_for_update(skip_locked=True).filter(occupied=True).order_by("pk")
        )
        for table in tables:
            try:
                with transaction.atomic():
                    if _reap_table(table, cutoff):
                        released += 1
            except Exception:
                log.exception("Reaper failed on table %s; continuing", table.table_number)

    if released:
        log.info("Reaper released %d stale table(s) out of %d occupied", released, len(tables))
    return released


class StaleLockReaper:
    """
    Recurring background runner for `sweep()`.

    Owns its thread, a stop event (cancels the wait between cycles) and a
    non-blocking lock acting as the "already running" flag, so an overlapping
    `run_once()` call returns immediately instead of sweeping twice.
    """

    def __init__(self, interval: Optional[float] = None, sweep_func=sweep) -> None:
        self.interval = float(
            interval if interval is not None else getattr(settings, "TABLEORDERS_REAPER_INTERVAL_SECONDS", 60)
        )
        self._sweep = sweep_func
        self._running = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_started(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Optional[int]:
        """Run a single sweep. Returns None when skipped or failed; never raises."""
        if not self._running.acquire(blocking=False):
            log.info("Reaper: previous run still in progress, skipping")
            return None
        try:
            return self._sweep()
        except Exception:
            log.exception("Reaper: sweep failed; will retry next cycle")
            return None
        finally:
            self._running.release()

    def _loop(self) -> None:
        try:
            # First cycle right away to clean up locks left by a restart.
            while not self._stop_event.is_set():
                close_old_connections()
                self.run_once()
                self._stop_event.wait(self.interval)
        finally:
            close_old_connections()

    def start(self) -> None:
        if self.is_started:
            log.info("Reaper: already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="table-reaper", daemon=True)
        self._thread.start()
        log.info("Reaper: started (interval %.0fs)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        log.info("Reaper: stopped")

    def run_forever(self) -> None:
        """Foreground loop for the management command; returns after stop() or Ctrl-C."""
        self._stop_event.clear()
        try:
            self._loop()
        except KeyboardInterrupt:
            log.info("Reaper: interrupted")


default_reaper = StaleLockReaper()
