from rest_framework import serializers
from core_backend.base import BaseModelSerializer
from .models import DeliveryLocation


class DeliveryLocationSerializer(BaseModelSerializer):
    class Meta:
        model = DeliveryLocation
        fields = ["id", "governorate", "city", "fee", "estimated_delivery_time", "is_active"]


class DeliveryFeeQuerySerializer(serializers.Serializer):
    governorate = serializers.CharField()
    city = serializers.CharField()
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, default=0)
