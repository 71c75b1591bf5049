from rest_framework import serializers
from core_backend.base import BaseModelSerializer
from products.models import Product, Category
from .models import Coupon, GlobalDiscount


class CouponSerializer(BaseModelSerializer):
    applicable_products = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), many=True, required=False
    )
    applicable_categories = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), many=True, required=False
    )

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "description",
            "discount_type",
            "discount_value",
            "max_discount_amount",
            "min_order_amount",
            "max_usage_count",
            "usage_count",
            "max_usage_per_user",
            "start_date",
            "expiry_date",
            "applicable_products",
            "applicable_categories",
            "is_global",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "usage_count", "created_at"]

    def validate_code(self, value):
        code = value.strip().upper()
        existing = Coupon.objects.filter(code=code)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("Coupon code already exists")
        return code

    def validate(self, data):
        data = super().validate(data)
        discount_type = data.get("discount_type", getattr(self.instance, "discount_type", None))
        value = data.get("discount_value", getattr(self.instance, "discount_value", None))
        if discount_type != Coupon.DiscountType.FREE_DELIVERY and (value is None or value <= 0):
            raise serializers.ValidationError("Discount value is required and must be positive")
        if discount_type == Coupon.DiscountType.PERCENTAGE and value > 100:
            raise serializers.ValidationError("Percentage discount cannot exceed 100%.")
        start = data.get("start_date", getattr(self.instance, "start_date", None))
        expiry = data.get("expiry_date", getattr(self.instance, "expiry_date", None))
        if start and expiry and expiry <= start:
            raise serializers.ValidationError("Expiry date must be after the start date.")
        return data


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    products = serializers.ListField(child=serializers.DictField(), required=False)


class GlobalDiscountSerializer(BaseModelSerializer):
    excluded_products = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), many=True, required=False
    )
    excluded_categories = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), many=True, required=False
    )

    class Meta:
        model = GlobalDiscount
        fields = [
            "id",
            "name",
            "percentage",
            "is_active",
            "start_date",
            "end_date",
            "excluded_products",
            "excluded_categories",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]
