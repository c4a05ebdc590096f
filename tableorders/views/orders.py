"""
tableorders.views.orders

Order endpoints.

- POST  /api/orders/                       -> 201 order + checkout_url | 409 TABLE_OCCUPIED | 400
- GET   /api/orders/<id>/                  -> order with items
- GET   /api/orders/status/<external_ref>/ -> order by gateway reference (payment result page)
- POST  /api/orders/sync/<external_ref>/   -> poll the gateway and apply its status
- PATCH /api/orders/<id>/complete/         -> 200 {alreadyCompleted} | 404 | 422
- PATCH /api/orders/<id>/cancel/           -> 200 {alreadyCancelled} | 404 | 422
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from tableorders.errors import OrderError
from tableorders.models import Order
from tableorders.serializers import OrderCreateSerializer, OrderSerializer
from tableorders.services.order_lifecycle import (
    cancel_order,
    complete_order,
    create_order,
    sync_payment_status,
)
from tableorders.services.payment_gateway import get_payment_gateway

from . import _internal_error, _json_error, _json_response, _order_error_response, _parse_json

log = logging.getLogger(__name__)


def _order_payload(order: Order) -> dict:
    order = Order.objects.select_related("table").prefetch_related("items").get(pk=order.pk)
    return OrderSerializer(order).data


@csrf_exempt
@require_POST
def create(request: HttpRequest) -> JsonResponse:
    payload = _parse_json(request)
    if payload is None:
        return _json_error("INVALID_ORDER", "Request body must be a JSON object", 400)

    serializer = OrderCreateSerializer(data=payload)
    if not serializer.is_valid():
        return _json_error("INVALID_ORDER", "Invalid order", 400, fields=serializer.errors)
    data = serializer.validated_data

    try:
        order = create_order(
            customer_name=data["name"],
            customer_phone=data["phone"],
            customer_email=data.get("email") or None,
            table_id=data.get("table_id"),
            items=[dict(item) for item in data["items"]],
            gateway=get_payment_gateway(),
        )
    except OrderError as exc:
        return _order_error_response(exc)
    except Exception:
        log.exception("Order creation failed")
        return _internal_error("Failed to create order")

    return _json_response(_order_payload(order), status=201)


@require_GET
def detail(request: HttpRequest, order_id: int) -> JsonResponse:
    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        return _json_error("TRANSACTION_NOT_FOUND", f"Order {order_id} not found", 404, order_id=order_id)
    return _json_response(_order_payload(order))


@require_GET
def status_by_ref(request: HttpRequest, external_ref: str) -> JsonResponse:
    order = Order.objects.filter(external_payment_ref=external_ref).first()
    if order is None:
        return _json_error("TRANSACTION_NOT_FOUND", "Order not found", 404, external_ref=external_ref)
    return _json_response(_order_payload(order))


@csrf_exempt
@require_POST
def sync(request: HttpRequest, external_ref: str) -> JsonResponse:
    try:
        order = sync_payment_status(external_ref, gateway=get_payment_gateway())
    except OrderError as exc:
        return _order_error_response(exc)
    except Exception:
        log.exception("Payment sync failed for %s", external_ref)
        return _internal_error("Failed to sync payment status")

    if order is None:
        return _json_error("TRANSACTION_NOT_FOUND", "Order not found", 404, external_ref=external_ref)
    return _json_response(_order_payload(order))


@csrf_exempt
@require_http_methods(["PATCH", "POST"])
def complete(request: HttpRequest, order_id: int) -> JsonResponse:
    try:
        result = complete_order(order_id)
    except OrderError as exc:
        return _order_error_response(exc)
    except Exception:
        log.exception("Completing order %s failed", order_id)
        return _internal_error("Failed to complete order")

    order = result.order
    return _json_response(
        {
            "alreadyCompleted": result.already_applied,
            "completedAt": order.completed_at.isoformat() if order.completed_at else None,
            "order": _order_payload(order),
        }
    )


@csrf_exempt
@require_http_methods(["PATCH", "POST"])
def cancel(request: HttpRequest, order_id: int) -> JsonResponse:
    try:
        result = cancel_order(order_id)
    except OrderError as exc:
        return _order_error_response(exc)
    except Exception:
        log.exception("Cancelling order %s failed", order_id)
        return _internal_error("Failed to cancel order")

    return _json_response(
        {
            "alreadyCancelled": result.already_applied,
            "order": _order_payload(result.order),
        }
    )
