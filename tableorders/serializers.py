from rest_framework import serializers

from .models import Order, OrderItem


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    name = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    table_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    items = OrderItemInputSerializer(many=True, allow_empty=False)


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price",
            "subtotal",
        ]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    table_number = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "code",
            "customer_name",
            "customer_phone",
            "customer_email",
            "external_payment_ref",
            "checkout_url",
            "table_id",
            "table_number",
            "payment_method",
            "payment_status",
            "total",
            "completed_at",
            "created_at",
            "updated_at",
            "items",
        ]

    def get_table_number(self, obj):
        return obj.table.table_number if obj.table_id else None


class ActiveOrderSerializer(serializers.ModelSerializer):
    """Minimal view of the order holding a table, for the "table busy" screen."""

    class Meta:
        model = Order
        fields = ["id", "code", "payment_status", "created_at"]
