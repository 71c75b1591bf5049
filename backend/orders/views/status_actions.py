from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders.serializers import CancelSerializer, UpdateOrderStatusSerializer
from orders.services import OrderService
from users.permissions import IsAdminOrHigher


class StatusActionsMixin:
    """
    Mixin for order status transition actions

    This mixin provides action methods for OrderViewSet.
    """

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.cancel_order(order, serializer.validated_data.get("reason"), request.user)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response(
            {"success": True, "message": result.message, "data": self.get_serializer(result.data).data}
        )

    @action(detail=True, methods=["patch"], url_path="status", permission_classes=[IsAdminOrHigher])
    def update_status(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.update_order_status(order, serializer.validated_data["status"], request.user)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response(
            {"success": True, "message": result.message, "data": self.get_serializer(result.data).data}
        )
