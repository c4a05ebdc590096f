"""
tableorders.services.payment_gateway

Payment gateway adapters. The order lifecycle only needs four things from a
gateway: create a hosted invoice, read an invoice's status, verify that a
webhook delivery is authentic, and turn a verified delivery into a status
notice. Everything else about the gateway is its own business.

Adapters
- StripeGateway      : Stripe Checkout Sessions act as hosted invoices.
- DevelopmentGateway : no network; issues TRX-XXXXXXXX references and accepts
                       webhooks carrying the shared X-Callback-Token.

ENV / settings
- TABLEORDERS_PAYMENT_GATEWAY : dotted path of the adapter class.
- STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, STRIPE_CURRENCY
- TABLEORDERS_WEBHOOK_TOKEN (development gateway)
- FRONTEND_URL (success / cancel redirects)
"""

from __future__ import annotations

import hmac
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import stripe
from django.conf import settings
from django.utils.module_loading import import_string

from tableorders.models import PaymentStatus

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Customer:
    name: str
    phone: str
    email: Optional[str] = None


@dataclass(frozen=True)
class InvoiceLine:
    product_id: int
    name: str
    quantity: int
    unit_price: int

    @property
    def subtotal(self) -> int:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class Invoice:
    external_ref: str
    checkout_url: str


@dataclass(frozen=True)
class InvoiceStatus:
    status: str  # a PaymentStatus value; "pending" while unpaid
    paid_amount: int = 0
    payment_method: Optional[str] = None


@dataclass(frozen=True)
class WebhookNotice:
    external_ref: str
    status: str
    payment_method: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)


class PaymentGateway:
    """Contract every adapter implements."""

    name = "gateway"

    def create_invoice(
        self,
        order_code: str,
        total: int,
        customer: Customer,
        items: List[InvoiceLine],
    ) -> Invoice:
        raise NotImplementedError

    def get_invoice_status(self, external_ref: str) -> InvoiceStatus:
        raise NotImplementedError

    def verify_webhook_signature(self, headers: Mapping[str, str], body: bytes) -> bool:
        raise NotImplementedError

    def parse_webhook(self, headers: Mapping[str, str], body: bytes) -> Optional[WebhookNotice]:
        """Map a verified delivery to a status notice, or None when it is not a status change."""
        raise NotImplementedError


def _frontend_url(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


class DevelopmentGateway(PaymentGateway):
    """
    Local gateway for development and demos: no API key, no network.

    Invoices stay pending until a webhook (or an operator via the admin) moves
    them. Webhook deliveries must carry X-Callback-Token equal to
    TABLEORDERS_WEBHOOK_TOKEN and a body like:
        {"external_id": "TRX-1A2B3C4D", "status": "PAID", "payment_method": "QRIS"}
    """

    name = "development"

    STATUS_MAP = {
        "PAID": PaymentStatus.PAID,
        "SETTLED": PaymentStatus.PAID,
        "EXPIRED": PaymentStatus.EXPIRED,
        "FAILED": PaymentStatus.FAILED,
    }

    def create_invoice(self, order_code, total, customer, items):
        external_ref = f"TRX-{uuid.uuid4().hex[:8].upper()}"
        log.info(
            "Development invoice issued order=%s ref=%s total=%s (no real payment)",
            order_code, external_ref, total,
        )
        return Invoice(
            external_ref=external_ref,
            checkout_url=_frontend_url(f"/payment/success?external_id={external_ref}"),
        )

    def get_invoice_status(self, external_ref):
        return InvoiceStatus(status=PaymentStatus.PENDING)

    def verify_webhook_signature(self, headers, body):
        expected = getattr(settings, "TABLEORDERS_WEBHOOK_TOKEN", "") or ""
        received = headers.get("X-Callback-Token") or ""
        if not expected or not received:
            log.warning("Webhook rejected: callback token missing (configured=%s)", bool(expected))
            return False
        return hmac.compare_digest(received, expected)

    def parse_webhook(self, headers, body):
        payload = json.loads(body or b"{}")
        external_ref = str(payload.get("external_id") or "").strip()
        status = self.STATUS_MAP.get(str(payload.get("status") or "").upper())
        if not external_ref or status is None:
            return None
        return WebhookNotice(
            external_ref=external_ref,
            status=status,
            payment_method=payload.get("payment_method") or payload.get("payment_channel"),
            raw=payload,
        )


class StripeGateway(PaymentGateway):
    """
    Stripe Checkout Sessions as hosted invoices.

    external_ref = Checkout Session id (cs_...), checkout_url = session.url.
    """

    name = "stripe"

    EVENT_STATUS = {
        "checkout.session.async_payment_succeeded": PaymentStatus.PAID,
        "checkout.session.async_payment_failed": PaymentStatus.FAILED,
        "checkout.session.expired": PaymentStatus.EXPIRED,
    }

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> None:
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.currency = (currency or settings.STRIPE_CURRENCY).lower()
        if not self.secret_key:
            raise RuntimeError("Missing STRIPE_SECRET_KEY for StripeGateway.")

    def create_invoice(self, order_code, total, customer, items):
        session = stripe.checkout.Session.create(
            api_key=self.secret_key,
            mode="payment",
            client_reference_id=order_code,
            customer_email=customer.email or None,
            line_items=[
                {
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {"name": item.name},
                        "unit_amount": item.unit_price,
                    },
                    "quantity": item.quantity,
                }
                for item in items
            ],
            metadata={
                "order_code": order_code,
                "customer_name": customer.name,
                "customer_phone": customer.phone,
                "total": str(total),
            },
            success_url=_frontend_url("/payment/success?external_id={CHECKOUT_SESSION_ID}"),
            cancel_url=_frontend_url("/payment/failed?external_id={CHECKOUT_SESSION_ID}"),
            idempotency_key=f"order-{order_code}",
        )
        log.info("Stripe checkout session created order=%s session=%s", order_code, session.id)
        return Invoice(external_ref=session.id, checkout_url=session.url)

    def get_invoice_status(self, external_ref):
        session = stripe.checkout.Session.retrieve(external_ref, api_key=self.secret_key)
        methods = session.get("payment_method_types") or []
        method = methods[0] if methods else None
        if session.get("payment_status") in ("paid", "no_payment_required"):
            return InvoiceStatus(
                status=PaymentStatus.PAID,
                paid_amount=int(session.get("amount_total") or 0),
                payment_method=method,
            )
        if session.get("status") == "expired":
            return InvoiceStatus(status=PaymentStatus.EXPIRED, payment_method=method)
        return InvoiceStatus(status=PaymentStatus.PENDING, payment_method=method)

    def verify_webhook_signature(self, headers, body):
        sig_header = headers.get("Stripe-Signature") or ""
        if not sig_header or not self.webhook_secret:
            return False
        try:
            stripe.Webhook.construct_event(payload=body, sig_header=sig_header, secret=self.webhook_secret)
        except ValueError:
            log.warning("Stripe webhook rejected: invalid payload")
            return False
        except stripe.SignatureVerificationError:
            log.warning("Stripe webhook rejected: bad signature")
            return False
        return True

    def parse_webhook(self, headers, body):
        event = json.loads(body or b"{}")
        event_type = str(event.get("type") or "")
        obj = (event.get("data") or {}).get("object") or {}
        session_id = str(obj.get("id") or "")

        if event_type == "checkout.session.completed":
            # Delayed methods (bank transfer) complete the session before the money arrives.
            if obj.get("payment_status") != "paid":
                return None
            status = PaymentStatus.PAID
        else:
            status = self.EVENT_STATUS.get(event_type)

        if status is None or not session_id:
            return None

        methods = obj.get("payment_method_types") or []
        return WebhookNotice(
            external_ref=session_id,
            status=status,
            payment_method=methods[0] if methods else None,
            raw=event,
        )


def get_payment_gateway() -> PaymentGateway:
    """Instantiate the adapter named by settings.TABLEORDERS_PAYMENT_GATEWAY."""
    gateway_cls = import_string(settings.TABLEORDERS_PAYMENT_GATEWAY)
    return gateway_cls()
