from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from orders import qr
from orders.serializers import OrdersByStatusQuerySerializer, PlaceTypeSerializer, QRVerifySerializer
from orders.services import OrderService
from users.permissions import IsAdminOrHigher


class FulfilmentActionsMixin:
    """
    Mixin for counter-side order handling: pickup QR codes, place type
    corrections and the per-status admin board.
    """

    @action(detail=True, methods=["get"], url_path="qr-code")
    def qr_code(self, request: Request, pk=None):
        order = self.get_object()
        if not order.qr_code_data:
            return Response(
                {"success": False, "message": "QR code is not available until the order is paid"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return HttpResponse(qr.render_svg(order.qr_code_data), content_type="image/svg+xml")

    @action(detail=False, methods=["post"], url_path="qr-code/verify", permission_classes=[IsAdminOrHigher])
    def verify_qr_code(self, request: Request) -> Response:
        serializer = QRVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.verify_qr_code(serializer.validated_data["qrData"])
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response(
            {"success": True, "message": result.message, "data": self.get_serializer(result.data).data}
        )

    @action(detail=True, methods=["patch"], url_path="place-type", permission_classes=[IsAdminOrHigher])
    def update_place_type(self, request: Request, pk=None) -> Response:
        order = self.get_object()
        serializer = PlaceTypeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = OrderService.update_place_type(
            order, data["placeType"], data.get("tableId"), data.get("date") or None, data.get("slot") or None
        )
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response(
            {"success": True, "message": result.message, "data": self.get_serializer(result.data).data}
        )

    @action(detail=False, methods=["get"], url_path="admin/by-status", permission_classes=[IsAdminOrHigher])
    def by_status(self, request: Request) -> Response:
        query = OrdersByStatusQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        result = OrderService.group_by_order_status(params["orderStatus"], params["page"], params["limit"])
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        groups = [
            {
                "status": group["status"],
                "count": group["count"],
                "orders": self.get_serializer(group["orders"], many=True).data,
            }
            for group in result.data["groups"]
        ]
        return Response(
            {
                "success": True,
                "message": result.message,
                "data": groups,
                "pagination": result.data["pagination"],
            }
        )
