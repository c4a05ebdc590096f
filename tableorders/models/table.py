"""
tableorders.models.table

A physical ordering point (the QR code on a table). The unit of mutual exclusion:
`occupied` / `locked_at` are only written inside a transaction that holds this
row's lock (order lifecycle service or stale lock reaper).
"""

from __future__ import annotations

from django.db import models


class Table(models.Model):
    table_number = models.CharField(
        max_length=10,
        unique=True,
        help_text="Human-readable table number printed on the QR code.",
    )

    occupied = models.BooleanField(
        default=False,
        db_index=True,
        help_text="True while a pending or paid order owns this table.",
    )

    locked_at = models.DateTimeField(
        blank=True,
        null=True,
        help_text="When the current occupancy lock was taken.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("table_number",)

    def __str__(self) -> str:
        state = "occupied" if self.occupied else "free"
        return f"Table {self.table_number} ({state})"
