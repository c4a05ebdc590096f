# -*- coding: utf-8 -*-
"""
Table Orders: models package entrypoint.

Django discovers models when their modules are imported, so every model module
is imported here and re-exported for callers.
"""

from .table import Table
from .order import Order, OrderItem, PaymentStatus

__all__ = [
    "Table",
    "Order",
    "OrderItem",
    "PaymentStatus",
]
