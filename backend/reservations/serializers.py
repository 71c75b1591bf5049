from rest_framework import serializers
from core_backend.base import BaseModelSerializer
from .models import Reservation, Table


class TableSerializer(BaseModelSerializer):
    class Meta:
        model = Table
        fields = ["id", "number", "capacity", "is_active"]


class ReservationSerializer(BaseModelSerializer):
    table_number = serializers.IntegerField(source="table.number", read_only=True)

    class Meta:
        model = Reservation
        fields = ["id", "user", "table", "table_number", "reservation_date", "status", "order", "created_at"]
        read_only_fields = fields


class CreateReservationSerializer(serializers.Serializer):
    table_id = serializers.IntegerField()
    date = serializers.CharField()
    slot = serializers.CharField()

    def to_internal_value(self, data):
        if hasattr(data, "get") and "tableId" in data and "table_id" not in data:
            data = {**data, "table_id": data.get("tableId")}
        return super().to_internal_value(data)


class UpdateReservationStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
