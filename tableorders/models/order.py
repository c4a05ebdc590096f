"""
tableorders.models.order

Customer orders placed against a table (or as takeaway) and paid through a hosted
invoice. Orders are never deleted by the lifecycle code; they only move through
PaymentStatus.

========= CHANGE LOG =========
2026-02-03 • ADD: completed_at + partial index for "active order per table".
2026-01-20 • ADD: Order / OrderItem with integer minor-unit amounts.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from .table import Table


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    EXPIRED = "expired", "Expired"
    FAILED = "failed", "Failed"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def active(cls) -> tuple[str, ...]:
        """Statuses that keep a table occupied."""
        return (cls.PENDING, cls.PAID)

    @classmethod
    def terminal(cls) -> tuple[str, ...]:
        return (cls.COMPLETED, cls.CANCELLED)

    @classmethod
    def can_transition(cls, current: str, new: str) -> bool:
        return str(new) in ALLOWED_TRANSITIONS.get(str(current), frozenset())


# Keyed by raw values: enum members hash by name, not value.
ALLOWED_TRANSITIONS = {
    "pending": frozenset({"paid", "expired", "failed", "cancelled"}),
    "paid": frozenset({"completed", "cancelled"}),
    "expired": frozenset({"cancelled"}),
    "failed": frozenset({"cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}


class Order(models.Model):
    code = models.CharField(
        max_length=50,
        unique=True,
        help_text="Human-readable order reference (ORD-<millis>-<hex>).",
    )

    # ---- customer ----
    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=20)
    customer_email = models.EmailField(blank=True, null=True)

    # ---- payment gateway ----
    external_payment_ref = models.CharField(
        max_length=255,
        unique=True,
        help_text="Opaque invoice reference used with the payment gateway.",
    )
    checkout_url = models.URLField(max_length=500, blank=True, default="")
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )

    # ---- table (null for takeaway) ----
    table = models.ForeignKey(
        Table,
        related_name="orders",
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
    )

    total = models.PositiveIntegerField(help_text="Sum of item subtotals, minor currency units.")
    completed_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(
                fields=["table", "-created_at"],
                name="order_active_per_table_idx",
                condition=Q(payment_status__in=["pending", "paid"]),
            ),
            models.Index(fields=["table", "-created_at"], name="order_table_recent_idx"),
        ]

    def __str__(self) -> str:
        return f"Order {self.code} ({self.payment_status})"

    @property
    def is_terminal(self) -> bool:
        return self.payment_status in PaymentStatus.terminal()


class OrderItem(models.Model):
    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product_id = models.PositiveIntegerField(help_text="Catalog food id at time of order.")
    product_name = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField()
    unit_price = models.PositiveIntegerField(help_text="Price per unit, minor currency units.")
    subtotal = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("id",)

    def __str__(self) -> str:
        return f"{self.quantity}x {self.product_name} on {self.order_id}"
