from rest_framework import serializers

from orders.models import Order


class UpdateOrderStatusSerializer(serializers.Serializer):
    """
    Serializer specifically for validating an admin fulfilment status change.
    Whether the move is allowed from the current status is decided by the
    order state machine.
    """

    status = serializers.ChoiceField(choices=Order.OrderStatus.choices)


class PlaceTypeSerializer(serializers.Serializer):
    placeType = serializers.CharField(max_length=20)
    tableId = serializers.IntegerField(required=False, allow_null=True)
    date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    slot = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class QRVerifySerializer(serializers.Serializer):
    qrData = serializers.CharField(max_length=256)


class OrdersByStatusQuerySerializer(serializers.Serializer):
    orderStatus = serializers.CharField(required=False, allow_blank=True, default="")
    page = serializers.CharField(required=False, default="1")
    limit = serializers.CharField(required=False, default="10")
