"""
tableorders.services.table_lock

Table occupancy flag handling. `acquire_table` and `release_table` must run
inside the caller's transaction.atomic() block; the occupancy change commits or
rolls back together with the order change that caused it.

`check_table_status` is a read-only pre-check for the customer UI. It is not
authoritative: `acquire_table` re-validates under the row lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from tableorders.errors import TableNotFoundError, TableOccupiedError
from tableorders.models import Order, PaymentStatus, Table

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableStatus:
    exists: bool
    is_occupied: bool = False
    table_number: Optional[str] = None
    active_order: Optional[Order] = None


def check_table_status(table_id: int) -> TableStatus:
    table = Table.objects.filter(pk=table_id).first()
    if table is None:
        return TableStatus(exists=False)

    active_order = None
    if table.occupied:
        active_order = (
            Order.objects.filter(table=table, payment_status__in=PaymentStatus.active())
            .order_by("-created_at", "-pk")
            .first()
        )
    return TableStatus(
        exists=True,
        is_occupied=table.occupied,
        table_number=table.table_number,
        active_order=active_order,
    )


def acquire_table(table_id: int) -> Table:
    """
    Lock the table row (blocking) and mark it occupied.

    Concurrent callers for the same table queue on the row lock; the first one
    to commit wins and every later one sees occupied=True.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("acquire_table() must run inside transaction.atomic()")

    table = Table.objects.select_for_update().filter(pk=table_id).first()
    if table is None:
        raise TableNotFoundError(table_id)
    if table.occupied:
        log.info("Table %s refused: already occupied since %s", table.table_number, table.locked_at)
        raise TableOccupiedError(table.table_number)

    table.occupied = True
    table.locked_at = timezone.now()
    table.save(update_fields=["occupied", "locked_at", "updated_at"])
    return table


def release_table(table_id: int) -> bool:
    """Clear the occupancy flag. The UPDATE takes the row lock for the rest of the transaction."""
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("release_table() must run inside transaction.atomic()")

    released = Table.objects.filter(pk=table_id, occupied=True).update(
        occupied=False, locked_at=None, updated_at=timezone.now()
    )
    return bool(released)
