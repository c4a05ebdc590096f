"""
tableorders.errors

Typed failures raised by the order lifecycle service. Each error carries an
ErrorKind (the wire code the UI keys its retry logic on), the HTTP status the
views answer with, and a structured `details` dict.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    INVALID_ORDER = "INVALID_ORDER"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    TABLE_OCCUPIED = "TABLE_OCCUPIED"
    ORDER_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    ORDER_NOT_PAID = "TRANSACTION_NOT_PAID"
    CANNOT_CANCEL = "CANNOT_CANCEL"
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"


class OrderError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_ORDER
    http_status: int = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.kind.value, "message": self.message, **self.details}


class InvalidOrderError(OrderError):
    kind = ErrorKind.INVALID_ORDER
    http_status = 400


class TableNotFoundError(OrderError):
    kind = ErrorKind.TABLE_NOT_FOUND
    http_status = 404

    def __init__(self, table_id: Any) -> None:
        super().__init__(f"Table {table_id} not found", table_id=table_id)
        self.table_id = table_id


class TableOccupiedError(OrderError):
    """The table already has an active order. Retryable by the customer later."""

    kind = ErrorKind.TABLE_OCCUPIED
    http_status = 409

    def __init__(self, table_number: str) -> None:
        super().__init__(
            f"Table {table_number} is currently in use. Please try again later.",
            table_number=table_number,
        )
        self.table_number = table_number


class OrderNotFoundError(OrderError):
    kind = ErrorKind.ORDER_NOT_FOUND
    http_status = 404

    def __init__(self, order_id: Any) -> None:
        super().__init__(f"Order {order_id} not found", order_id=order_id)
        self.order_id = order_id


class OrderNotPaidError(OrderError):
    kind = ErrorKind.ORDER_NOT_PAID
    http_status = 422

    def __init__(self, order_id: Any, current_status: str) -> None:
        super().__init__(
            f"Order {order_id} is {current_status}; only paid orders can be completed",
            order_id=order_id,
            current_status=str(current_status),
        )
        self.order_id = order_id
        self.current_status = str(current_status)


class OrderCannotCancelError(OrderError):
    kind = ErrorKind.CANNOT_CANCEL
    http_status = 422

    def __init__(self, order_id: Any, current_status: str) -> None:
        super().__init__(
            f"Order {order_id} is {current_status} and can no longer be cancelled",
            order_id=order_id,
            current_status=str(current_status),
        )
        self.order_id = order_id
        self.current_status = str(current_status)


class PaymentGatewayError(OrderError):
    """Any failure talking to the payment gateway. The caller's transaction rolls back."""

    kind = ErrorKind.PAYMENT_GATEWAY_ERROR
    http_status = 502
