from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from .models import PaymentMethod, PaymobConfig, StripeConfig


class PaymentMethodSerializer(BaseModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ["id", "name", "provider", "is_active", "display_name", "description", "created_at", "updated_at"]
        read_only_fields = ["id", "provider", "created_at", "updated_at"]

    def update(self, instance, validated_data):
        # The enum name is the method's identity; it is fixed once created.
        validated_data.pop("name", None)
        return super().update(instance, validated_data)


class PublicPaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ["name", "provider", "display_name", "description"]


class ProviderConfigSerializer(BaseModelSerializer):
    def validate(self, data):
        data = super().validate(data)
        instance = self.instance
        min_amount = data.get("min_order_amount", getattr(instance, "min_order_amount", None))
        max_amount = data.get("max_order_amount", getattr(instance, "max_order_amount", None))
        if min_amount is not None and max_amount is not None and max_amount < min_amount:
            raise serializers.ValidationError(
                {"max_order_amount": "Maximum order amount must be greater than minimum order amount"}
            )
        return data


class StripeConfigSerializer(ProviderConfigSerializer):
    class Meta:
        model = StripeConfig
        exclude = ["id"]
        read_only_fields = ["created_at", "updated_at"]

    def validate_setup_future_usage(self, value):
        return value or ""


class PaymobConfigSerializer(ProviderConfigSerializer):
    class Meta:
        model = PaymobConfig
        exclude = ["id"]
        read_only_fields = ["created_at", "updated_at"]
