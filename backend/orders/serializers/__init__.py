"""
Orders serializers package - modular serializer layer.
"""

from .order_serializers import (
    CancelSerializer,
    CaptureSerializer,
    OrderCreateSerializer,
    OrderItemSerializer,
    OrderSerializer,
    ProductListOrderSerializer,
    RefundSerializer,
    SingleProductOrderSerializer,
)
from .status_serializers import (
    OrdersByStatusQuerySerializer,
    PlaceTypeSerializer,
    QRVerifySerializer,
    UpdateOrderStatusSerializer,
)

__all__ = [
    'CancelSerializer',
    'CaptureSerializer',
    'OrderCreateSerializer',
    'OrderItemSerializer',
    'OrderSerializer',
    'OrdersByStatusQuerySerializer',
    'PlaceTypeSerializer',
    'ProductListOrderSerializer',
    'QRVerifySerializer',
    'RefundSerializer',
    'SingleProductOrderSerializer',
    'UpdateOrderStatusSerializer',
]
