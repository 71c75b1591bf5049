"""
Checkout endpoints. Each one gathers lines from a different source and
hands the rest of the request to ``OrderService.create_order``.
"""

import logging

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.models import Order
from orders.serializers import (
    OrderCreateSerializer,
    OrderSerializer,
    ProductListOrderSerializer,
    SingleProductOrderSerializer,
)
from orders.services import OrderService

logger = logging.getLogger(__name__)


class BaseCheckoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = OrderCreateSerializer
    source = None

    def source_kwargs(self, validated_data, **url_kwargs):
        return {}

    def post(self, request, *args, **kwargs):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.create_order(
            user=request.user,
            source=self.source,
            address_id=kwargs["address_id"],
            **serializer.to_service_kwargs(),
            **self.source_kwargs(serializer.validated_data, **kwargs),
        )
        if not result.success:
            return Response(result.as_body(), status=result.status_code)

        order, payment = result.data.order, result.data.payment
        return Response(
            {
                "success": True,
                "orderId": str(order.id),
                "order": OrderSerializer(order).data,
                "provider": payment.provider,
                "redirectUrl": payment.redirect_url,
                "message": result.message,
            },
            status=status.HTTP_201_CREATED,
        )


class CartCheckoutView(BaseCheckoutView):
    source = Order.Source.CART

    def source_kwargs(self, validated_data, **url_kwargs):
        return {"cart_id": url_kwargs["cart_id"]}


class ProductCheckoutView(BaseCheckoutView):
    source = Order.Source.PRODUCT
    serializer_class = SingleProductOrderSerializer

    def source_kwargs(self, validated_data, **url_kwargs):
        return {"product_id": url_kwargs["product_id"], "quantity": validated_data.get("quantity", 1)}


class ProductsCheckoutView(BaseCheckoutView):
    source = Order.Source.PRODUCTS
    serializer_class = ProductListOrderSerializer

    def source_kwargs(self, validated_data, **url_kwargs):
        return {"products": [dict(line) for line in validated_data["products"]]}


class OrderByPaymentIdView(APIView):
    """Lookup used by the Paymob redirect page, which only knows the 8-char reference."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, unique_payment_id, *args, **kwargs):
        result = OrderService.get_order_by_payment_id(unique_payment_id, request.user)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        order = result.data
        return Response(
            {
                "success": True,
                "message": "",
                "data": {**OrderSerializer(order).data, "paymentInfo": OrderService.get_payment_status(order)},
            }
        )
