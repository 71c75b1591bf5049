from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from users.permissions import IsAdminOrHigher
from .models import Reservation, Table
from .serializers import (
    CreateReservationSerializer,
    ReservationSerializer,
    TableSerializer,
    UpdateReservationStatusSerializer,
)
from .services import ReservationService


class TableViewSet(BaseViewSet):
    queryset = Table.objects.all()
    serializer_class = TableSerializer
    filterset_fields = ["is_active", "capacity"]
    ordering = ["number"]

    def get_permissions(self):
        if self.action in ("list", "retrieve", "slots"):
            return [permissions.AllowAny()]
        return [IsAdminOrHigher()]

    @action(detail=False, methods=["get"])
    def slots(self, request):
        date = request.query_params.get("date")
        if not date:
            return Response({"success": False, "message": "Date is required."}, status=status.HTTP_400_BAD_REQUEST)
        result = ReservationService.get_slots_for_date(date)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response({"success": True, "message": "slots fetched successfully!", "data": result.data})


class ReservationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Customers see and manage their own reservations; admins see all of them
    and may change status.
    """

    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "table"]

    def get_queryset(self):
        queryset = Reservation.objects.select_related("table")
        if not self.request.user.is_admin_role:
            queryset = queryset.filter(user=self.request.user)
        return queryset.order_by("-reservation_date")

    def create(self, request):
        serializer = CreateReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ReservationService.book(request.user, data["table_id"], data["date"], data["slot"])
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response(
            {"success": True, "message": result.message, "data": ReservationSerializer(result.data).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        reservation = self.get_object()
        if not ReservationService.cancel_reservation(reservation):
            return Response(
                {"success": False, "message": "Reservation is already cancelled"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({"success": True, "message": "Reservation cancelled", "data": self.get_serializer(reservation).data})

    @action(detail=True, methods=["patch"], url_path="status", permission_classes=[IsAdminOrHigher])
    def update_status(self, request, pk=None):
        reservation = self.get_object()
        serializer = UpdateReservationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ReservationService.update_status(reservation, serializer.validated_data["status"])
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response({"success": True, "message": result.message, "data": self.get_serializer(reservation).data})
