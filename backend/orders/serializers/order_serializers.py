from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from orders.models import Order, OrderItem


class OrderItemSerializer(BaseModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    line_total = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "quantity",
            "unit_price",
            "original_price",
            "discount_type",
            "discount_percentage",
            "line_total",
        ]
        read_only_fields = fields


class OrderSerializer(BaseModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    payment_method = serializers.CharField(source="payment_method.name", read_only=True)
    provider = serializers.CharField(read_only=True)
    coupon_code = serializers.CharField(source="coupon.code", read_only=True, default=None)
    table_number = serializers.IntegerField(source="table.number", read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            "id",
            "user",
            "address",
            "source",
            "place_type",
            "table",
            "table_number",
            "governorate",
            "city",
            "items",
            "subtotal",
            "product_discount",
            "coupon_discount",
            "coupon_code",
            "delivery_fee",
            "total_price",
            "total_quantity",
            "payment_method",
            "provider",
            "payment_status",
            "order_status",
            "unique_payment_id",
            "qr_code_data",
            "failure_reason",
            "refund_amount",
            "refund_date",
            "refund_status",
            "cancellation_reason",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProductLineSerializer(serializers.Serializer):
    productId = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    """
    Checkout request body, shared by the cart, single-product and
    product-list endpoints. Keys are camelCase as sent by the storefront.
    """

    placeType = serializers.CharField(max_length=20)
    paymentMethod = serializers.CharField(max_length=30)
    tableId = serializers.IntegerField(required=False, allow_null=True)
    date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    slot = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    governorate = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    city = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    couponCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_service_kwargs(self):
        data = self.validated_data
        return {
            "place_type": data["placeType"],
            "payment_method": data["paymentMethod"],
            "table_id": data.get("tableId"),
            "date": data.get("date") or None,
            "slot": data.get("slot") or None,
            "governorate": data.get("governorate") or None,
            "city": data.get("city") or None,
            "coupon_code": data.get("couponCode") or None,
        }


class SingleProductOrderSerializer(OrderCreateSerializer):
    quantity = serializers.IntegerField(required=False, min_value=1, default=1)


class ProductListOrderSerializer(OrderCreateSerializer):
    products = ProductLineSerializer(many=True, allow_empty=False)


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class CaptureSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=0)
