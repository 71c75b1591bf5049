from rest_framework import serializers
from core_backend.base import BaseModelSerializer
from .models import User, Address


class UserSerializer(BaseModelSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "name", "phone_number", "role"]
        read_only_fields = ["role"]


class AddressSerializer(BaseModelSerializer):
    class Meta:
        model = Address
        fields = [
            "id",
            "governorate",
            "city",
            "street",
            "building_number",
            "flat_number",
            "latitude",
            "longitude",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]
