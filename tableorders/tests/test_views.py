"""
CHANGE LOG
- 2026-02-12: HTTP contract tests for the order and table endpoints.
  * POST /api/orders/ -> 201 / 409 TABLE_OCCUPIED / 400 INVALID_ORDER / 502
  * PATCH complete / cancel -> 200 flags, 404, 422
  * GET table status -> exists / isOccupied / activeOrder
"""

from __future__ import annotations

import json
from unittest import mock

from django.test import Client, TestCase
from django.urls import reverse

from tableorders.models import Order, PaymentStatus
from tableorders.services.order_lifecycle import update_payment_status

from .fakes import FakeGateway, make_table, sample_items


def _body(response):
    return json.loads(response.content.decode() or "{}")


class OrderEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.gateway = FakeGateway()
        patcher = mock.patch("tableorders.views.orders.get_payment_gateway", return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.table = make_table("5")

    def post_order(self, **overrides):
        payload = {
            "name": "Budi",
            "phone": "08123456789",
            "table_id": self.table.pk,
            "items": sample_items(),
        }
        payload.update(overrides)
        return self.client.post(
            reverse("tableorders:order-create"),
            data=json.dumps(payload),
            content_type="application/json",
        )

    def test_create_returns_201_with_checkout_url(self):
        r = self.post_order()

        self.assertEqual(r.status_code, 201)
        data = _body(r)
        self.assertTrue(data["ok"])
        order = data["data"]
        self.assertEqual(order["total"], 50000)
        self.assertEqual(order["payment_status"], "pending")
        self.assertEqual(order["table_number"], "5")
        self.assertTrue(order["checkout_url"].startswith("https://pay.example.test/"))
        self.assertEqual(len(order["items"]), 2)

    def test_second_order_returns_409_table_occupied(self):
        self.assertEqual(self.post_order().status_code, 201)

        r = self.post_order(name="Sari")

        self.assertEqual(r.status_code, 409)
        data = _body(r)
        self.assertFalse(data["ok"])
        self.assertEqual(data["code"], "TABLE_OCCUPIED")
        self.assertEqual(data["error"]["table_number"], "5")
        self.assertEqual(Order.objects.count(), 1)

    def test_invalid_payloads_return_400(self):
        cases = {
            "no items": {"items": []},
            "zero quantity": {"items": [{"product_id": 1, "name": "Kopi", "quantity": 0, "unit_price": 1}]},
            "missing name": {"name": ""},
        }
        for label, overrides in cases.items():
            with self.subTest(label):
                r = self.post_order(**overrides)
                self.assertEqual(r.status_code, 400)
                self.assertEqual(_body(r)["code"], "INVALID_ORDER")
        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.gateway.invoices, [])

    def test_non_json_body_returns_400(self):
        r = self.client.post(
            reverse("tableorders:order-create"), data="not json", content_type="application/json"
        )
        self.assertEqual(r.status_code, 400)

    def test_unknown_table_returns_404(self):
        r = self.post_order(table_id=987654)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(_body(r)["code"], "TABLE_NOT_FOUND")

    def test_gateway_failure_returns_502_and_frees_table(self):
        self.gateway.fail_with = ConnectionError("down")

        r = self.post_order()

        self.assertEqual(r.status_code, 502)
        self.assertEqual(_body(r)["code"], "PAYMENT_GATEWAY_ERROR")
        self.table.refresh_from_db()
        self.assertFalse(self.table.occupied)

    def test_get_only_on_create_is_rejected(self):
        r = self.client.get(reverse("tableorders:order-create"))
        self.assertEqual(r.status_code, 405)

    def test_detail_and_status_by_ref(self):
        order_id = _body(self.post_order())["data"]["id"]
        order = Order.objects.get(pk=order_id)

        r = self.client.get(reverse("tableorders:order-detail", args=[order_id]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(_body(r)["data"]["code"], order.code)

        r = self.client.get(reverse("tableorders:order-status", args=[order.external_payment_ref]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(_body(r)["data"]["id"], order_id)

        r = self.client.get(reverse("tableorders:order-detail", args=[order_id + 1000]))
        self.assertEqual(r.status_code, 404)
        self.assertEqual(_body(r)["code"], "TRANSACTION_NOT_FOUND")

    def test_sync_applies_gateway_status(self):
        order_id = _body(self.post_order())["data"]["id"]
        order = Order.objects.get(pk=order_id)
        self.gateway.status = "paid"

        r = self.client.post(reverse("tableorders:order-sync", args=[order.external_payment_ref]))

        self.assertEqual(r.status_code, 200)
        self.assertEqual(_body(r)["data"]["payment_status"], "paid")


class CompleteCancelEndpointTests(TestCase):
    def setUp(self):
        self.client = Client()
        patcher = mock.patch("tableorders.views.orders.get_payment_gateway", return_value=FakeGateway())
        patcher.start()
        self.addCleanup(patcher.stop)
        self.table = make_table("6")
        r = self.client.post(
            reverse("tableorders:order-create"),
            data=json.dumps({"name": "Budi", "phone": "0812", "table_id": self.table.pk, "items": sample_items()}),
            content_type="application/json",
        )
        self.order = Order.objects.get(pk=_body(r)["data"]["id"])

    def complete(self, order_id=None):
        return self.client.patch(reverse("tableorders:order-complete", args=[order_id or self.order.pk]))

    def cancel(self, order_id=None):
        return self.client.patch(reverse("tableorders:order-cancel", args=[order_id or self.order.pk]))

    def test_complete_pending_returns_422(self):
        r = self.complete()
        self.assertEqual(r.status_code, 422)
        self.assertEqual(_body(r)["code"], "TRANSACTION_NOT_PAID")

    def test_complete_paid_twice(self):
        update_payment_status(self.order.external_payment_ref, PaymentStatus.PAID)

        first = self.complete()
        second = self.complete()

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertFalse(_body(first)["data"]["alreadyCompleted"])
        self.assertTrue(_body(second)["data"]["alreadyCompleted"])
        self.assertEqual(_body(first)["data"]["completedAt"], _body(second)["data"]["completedAt"])
        self.table.refresh_from_db()
        self.assertFalse(self.table.occupied)

    def test_complete_unknown_returns_404(self):
        r = self.complete(order_id=self.order.pk + 1000)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(_body(r)["code"], "TRANSACTION_NOT_FOUND")

    def test_cancel_then_cancel_again(self):
        first = self.cancel()
        second = self.cancel()

        self.assertEqual(first.status_code, 200)
        self.assertFalse(_body(first)["data"]["alreadyCancelled"])
        self.assertTrue(_body(second)["data"]["alreadyCancelled"])
        self.assertEqual(_body(second)["data"]["order"]["payment_status"], "cancelled")

    def test_cancel_completed_returns_422(self):
        update_payment_status(self.order.external_payment_ref, PaymentStatus.PAID)
        self.complete()

        r = self.cancel()

        self.assertEqual(r.status_code, 422)
        self.assertEqual(_body(r)["code"], "CANNOT_CANCEL")


class TableStatusEndpointTests(TestCase):
    def status(self, table_id):
        r = self.client.get(reverse("tableorders:table-status", args=[table_id]))
        self.assertEqual(r.status_code, 200)
        return _body(r)["data"]

    def test_unknown_table(self):
        data = self.status(424242)
        self.assertFalse(data["exists"])
        self.assertFalse(data["isOccupied"])
        self.assertIsNone(data["activeOrder"])

    def test_free_table(self):
        table = make_table("10")
        data = self.status(table.pk)
        self.assertTrue(data["exists"])
        self.assertFalse(data["isOccupied"])
        self.assertEqual(data["tableNumber"], "10")

    @mock.patch("tableorders.views.orders.get_payment_gateway")
    def test_occupied_table_reports_active_order(self, get_gateway):
        get_gateway.return_value = FakeGateway()
        table = make_table("11")
        self.client.post(
            reverse("tableorders:order-create"),
            data=json.dumps({"name": "Budi", "phone": "0812", "table_id": table.pk, "items": sample_items()}),
            content_type="application/json",
        )
        order = Order.objects.get(table=table)

        data = self.status(table.pk)

        self.assertTrue(data["isOccupied"])
        self.assertEqual(data["activeOrder"]["id"], order.pk)
        self.assertEqual(data["activeOrder"]["payment_status"], "pending")


class HealthEndpointTests(TestCase):
    def test_health(self):
        r = self.client.get("/health/")
        self.assertEqual(r.status_code, 200)
        self.assertTrue(_body(r)["ok"])
