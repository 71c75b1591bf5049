from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import CaptureSerializer, RefundSerializer
from orders.services import OrderService
from users.permissions import IsAdminOrHigher


class PaymentActionsMixin:
    """
    Mixin for refund, capture and payment status lookups on an order.
    """

    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.refund_order(
            order,
            serializer.validated_data.get("amount"),
            serializer.validated_data.get("reason") or None,
            request.user,
        )
        return Response(result.as_body(), status=result.status_code)

    @action(detail=True, methods=["post"], url_path="capture", permission_classes=[IsAdminOrHigher])
    def capture(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = CaptureSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.capture_payment(order, serializer.validated_data.get("amount"))
        return Response(result.as_body(), status=result.status_code)

    @action(detail=True, methods=["get"], url_path="payment-status")
    def payment_status(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        return Response({"success": True, "message": "", "data": OrderService.get_payment_status(order)})
