from django.contrib import admin

from .models import Order, OrderItem, Table


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ("table_number", "occupied", "locked_at", "updated_at")
    list_filter = ("occupied",)
    search_fields = ("table_number",)
    # Occupancy is owned by the order lifecycle and the reaper.
    readonly_fields = ("occupied", "locked_at", "created_at", "updated_at")


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product_id", "product_name", "quantity", "unit_price", "subtotal")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("code", "customer_name", "table", "payment_status", "total", "created_at")
    list_filter = ("payment_status", "created_at")
    search_fields = ("code", "customer_name", "customer_phone", "external_payment_ref")
    readonly_fields = (
        "code",
        "external_payment_ref",
        "checkout_url",
        "table",
        "payment_status",
        "total",
        "completed_at",
        "created_at",
        "updated_at",
    )
    inlines = [OrderItemInline]
