from django.urls import path

from .views import orders, payments, tables

app_name = "tableorders"

urlpatterns = [
    path("orders/", orders.create, name="order-create"),
    path("orders/status/<str:external_ref>/", orders.status_by_ref, name="order-status"),
    path("orders/sync/<str:external_ref>/", orders.sync, name="order-sync"),
    path("orders/<int:order_id>/", orders.detail, name="order-detail"),
    path("orders/<int:order_id>/complete/", orders.complete, name="order-complete"),
    path("orders/<int:order_id>/cancel/", orders.cancel, name="order-cancel"),
    path("payments/webhook/", payments.webhook, name="payment-webhook"),
    path("tables/<int:table_id>/status/", tables.table_status, name="table-status"),
]
