"""
tableorders.views.payments

Payment gateway webhook receiver (POST only).

- 401 when the delivery fails the adapter's authenticity check.
- 200 for every verified delivery: applied, duplicate, unknown reference or an
  event type that is not a status change.
- 500 only when applying the status fails (storage error), so the gateway
  redelivers. The reaper covers deliveries that never succeed.
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from tableorders.services.order_lifecycle import update_payment_status
from tableorders.services.payment_gateway import get_payment_gateway

from . import _internal_error, _json_error, _json_response

log = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def webhook(request: HttpRequest) -> JsonResponse:
    gateway = get_payment_gateway()
    body = request.body

    if not gateway.verify_webhook_signature(request.headers, body):
        log.warning("Webhook (%s) rejected: signature check failed", gateway.name)
        return _json_error("INVALID_SIGNATURE", "Invalid callback signature", 401)

    try:
        notice = gateway.parse_webhook(request.headers, body)
    except ValueError:
        log.warning("Webhook (%s) body is not valid JSON; ignored", gateway.name)
        return _json_response({"processed": False, "reason": "invalid payload"})

    if notice is None:
        return _json_response({"processed": False, "reason": "ignored event"})

    log.info("Webhook (%s) ref=%s status=%s", gateway.name, notice.external_ref, notice.status)
    try:
        order = update_payment_status(notice.external_ref, notice.status, notice.payment_method)
    except Exception:
        log.exception("Webhook processing failed ref=%s", notice.external_ref)
        return _internal_error("Failed to process callback")

    if order is None:
        return _json_response({"processed": False, "reason": "unknown reference"})
    return _json_response(
        {"processed": True, "order_id": order.pk, "payment_status": order.payment_status}
    )
