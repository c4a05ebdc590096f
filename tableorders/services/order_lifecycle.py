"""
tableorders.services.order_lifecycle

Order lifecycle: creation (table lock + invoice + persist), completion,
cancellation and payment status transitions.

Every operation runs in one transaction.atomic() block and holds the row lock of
the object it mutates (the table on create, the order otherwise). Any exception
inside the block rolls back the order rows AND the table occupancy flag, so a
table is never left occupied without a matching pending/paid order.

Lock order is table -> new order rows on create, order -> table everywhere else.
The reaper never waits on an order lock (skip_locked), so the two orders cannot
deadlock against it.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from django.db import transaction
from django.utils import timezone

from tableorders.errors import (
    InvalidOrderError,
    OrderCannotCancelError,
    OrderError,
    OrderNotFoundError,
    OrderNotPaidError,
    PaymentGatewayError,
)
from tableorders.models import Order, OrderItem, PaymentStatus
from tableorders.services import notifications
from tableorders.services.payment_gateway import (
    Customer,
    InvoiceLine,
    PaymentGateway,
    get_payment_gateway,
)
from tableorders.services.table_lock import acquire_table, release_table

log = logging.getLogger(__name__)

# Transitions that end a table's occupancy when applied by a payment update.
RELEASING_STATUSES = (PaymentStatus.EXPIRED, PaymentStatus.FAILED, PaymentStatus.CANCELLED)


@dataclass(frozen=True)
class LifecycleResult:
    order: Order
    already_applied: bool = False


def generate_order_code() -> str:
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4].upper()}"


def _positive_int(value: Any, field_name: str, index: int) -> int:
    message = f"Item {index}: {field_name} must be a positive integer"
    # bool is an int subclass; reject it along with fractional numbers.
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidOrderError(message, item=index)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidOrderError(message, item=index) from None
    if number <= 0:
        raise InvalidOrderError(message, item=index)
    return number


def validate_items(items: Optional[Iterable[Mapping[str, Any]]]) -> List[InvoiceLine]:
    """Turn raw item dicts into invoice lines; InvalidOrderError on the first bad one."""
    raw_items = list(items or [])
    if not raw_items:
        raise InvalidOrderError("Order must contain at least one item")

    lines: List[InvoiceLine] = []
    for index, item in enumerate(raw_items):
        if not isinstance(item, Mapping):
            raise InvalidOrderError(f"Item {index}: must be an object", item=index)
        name = str(item.get("name") or "").strip()
        if not name:
            raise InvalidOrderError(f"Item {index}: name is required", item=index)
        lines.append(
            InvoiceLine(
                product_id=_positive_int(item.get("product_id"), "product_id", index),
                name=name,
                quantity=_positive_int(item.get("quantity"), "quantity", index),
                unit_price=_positive_int(item.get("unit_price"), "unit_price", index),
            )
        )
    return lines


def _publish_on_commit(event_type: str, order: Order) -> None:
    event = notifications.event_for(event_type, order)
    transaction.on_commit(lambda: notifications.notifier.publish(event))


def create_order(
    *,
    customer_name: str,
    customer_phone: str,
    items: Iterable[Mapping[str, Any]],
    table_id: Optional[int] = None,
    customer_email: Optional[str] = None,
    gateway: Optional[PaymentGateway] = None,
) -> Order:
    """
    Create a pending order, locking `table_id` for it when given.

    Raises InvalidOrderError before any side effect, TableNotFoundError /
    TableOccupiedError without calling the gateway, PaymentGatewayError when the
    invoice cannot be created (table lock rolled back).
    """
    customer_name = (customer_name or "").strip()
    customer_phone = (customer_phone or "").strip()
    if not customer_name or not customer_phone:
        raise InvalidOrderError("Customer name and phone are required")

    lines = validate_items(items)
    total = sum(line.subtotal for line in lines)
    code = generate_order_code()
    customer = Customer(name=customer_name, phone=customer_phone, email=(customer_email or None))
    gateway = gateway or get_payment_gateway()

    with transaction.atomic():
        table = acquire_table(table_id) if table_id is not None else None

        # Slow external I/O while holding the table lock; only this table waits.
        try:
            invoice = gateway.create_invoice(order_code=code, total=total, customer=customer, items=lines)
        except OrderError:
            raise
        except Exception as exc:
            log.exception("Invoice creation failed for %s (table=%s); rolling back", code, table_id)
            raise PaymentGatewayError(f"Failed to create invoice: {exc}") from exc

        order = Order.objects.create(
            code=code,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=customer.email,
            external_payment_ref=invoice.external_ref,
            checkout_url=invoice.checkout_url,
            table=table,
            payment_status=PaymentStatus.PENDING,
            total=total,
        )
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    product_name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                )
                for line in lines
            ]
        )
        _publish_on_commit(notifications.NEW_ORDER, order)

    log.info(
        "Order created code=%s ref=%s table=%s total=%s",
        order.code, order.external_payment_ref, table.table_number if table else "-", total,
    )
    return order


def complete_order(order_id: int) -> LifecycleResult:
    """Mark a paid order delivered and free its table. Idempotent."""
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise OrderNotFoundError(order_id)

        if order.completed_at is not None or order.payment_status == PaymentStatus.COMPLETED:
            return LifecycleResult(order=order, already_applied=True)

        if order.payment_status != PaymentStatus.PAID:
            raise OrderNotPaidError(order_id, order.payment_status)

        order.payment_status = PaymentStatus.COMPLETED
        order.completed_at = timezone.now()
        order.save(update_fields=["payment_status", "completed_at", "updated_at"])
        if order.table_id is not None:
            release_table(order.table_id)

    log.info("Order %s completed (table=%s released)", order.code, order.table_id or "-")
    return LifecycleResult(order=order)


def cancel_order(order_id: int) -> LifecycleResult:
    """Cancel a non-terminal order and free its table. Idempotent for cancelled orders."""
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise OrderNotFoundError(order_id)

        if order.payment_status == PaymentStatus.CANCELLED:
            return LifecycleResult(order=order, already_applied=True)

        if order.payment_status == PaymentStatus.COMPLETED:
            raise OrderCannotCancelError(order_id, order.payment_status)

        # Only a pending or paid order still holds its table; an expired or
        # failed one already gave it up and the table may belong to a newer order.
        held_table = order.payment_status in PaymentStatus.active()
        order.payment_status = PaymentStatus.CANCELLED
        order.save(update_fields=["payment_status", "updated_at"])
        released = held_table and order.table_id is not None and release_table(order.table_id)

    log.info("Order %s cancelled (table=%s released=%s)", order.code, order.table_id or "-", bool(released))
    return LifecycleResult(order=order)


def update_payment_status(
    external_ref: str,
    new_status: str,
    payment_method: Optional[str] = None,
) -> Optional[Order]:
    """
    Apply a gateway-reported status. Returns None for unknown references.

    Duplicate and out-of-order deliveries are no-ops: same status, a terminal
    current status, or a transition the state machine does not allow all return
    the row unchanged.
    """
    new_status = PaymentStatus(new_status)

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(external_payment_ref=external_ref).first()
        if order is None:
            log.info("Payment update for unknown reference %s ignored", external_ref)
            return None

        current = order.payment_status
        if current == new_status or current in PaymentStatus.terminal():
            return order

        if not PaymentStatus.can_transition(current, new_status):
            log.warning(
                "Payment update %s -> %s rejected for order %s", current, new_status, order.code
            )
            return order

        order.payment_status = new_status
        update_fields = ["payment_status", "updated_at"]
        if payment_method:
            order.payment_method = payment_method[:50]
            update_fields.append("payment_method")
        if new_status == PaymentStatus.COMPLETED:
            order.completed_at = timezone.now()
            update_fields.append("completed_at")
        order.save(update_fields=update_fields)

        if (
            order.table_id is not None
            and current in PaymentStatus.active()
            and new_status in RELEASING_STATUSES
        ):
            release_table(order.table_id)

        if new_status == PaymentStatus.PAID:
            _publish_on_commit(notifications.PAYMENT_RECEIVED, order)
        elif new_status == PaymentStatus.EXPIRED:
            _publish_on_commit(notifications.PAYMENT_EXPIRED, order)

    log.info("Order %s payment %s -> %s", order.code, current, new_status)
    return order


def sync_payment_status(external_ref: str, gateway: Optional[PaymentGateway] = None) -> Optional[Order]:
    """Poll the gateway for an invoice and apply what it reports."""
    order = Order.objects.filter(external_payment_ref=external_ref).first()
    if order is None:
        return None
    if order.payment_status != PaymentStatus.PENDING:
        return order

    gateway = gateway or get_payment_gateway()
    try:
        status = gateway.get_invoice_status(external_ref)
    except Exception as exc:
        log.exception("Invoice status lookup failed for %s", external_ref)
        raise PaymentGatewayError(f"Failed to get invoice status: {exc}") from exc

    if status.status == PaymentStatus.PENDING:
        return order
    return update_payment_status(external_ref, status.status, status.payment_method)
