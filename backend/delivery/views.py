from rest_framework import permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from core_backend.base import BaseViewSet
from users.permissions import IsAdminOrHigher
from .models import DeliveryLocation
from .serializers import DeliveryFeeQuerySerializer, DeliveryLocationSerializer
from .services import DeliveryFeeResolver, ONLINE


class DeliveryLocationViewSet(BaseViewSet):
    """
    Public read of active delivery areas, admin CRUD for the rest.
    """

    queryset = DeliveryLocation.objects.all()
    serializer_class = DeliveryLocationSerializer
    filterset_fields = ["governorate", "is_active"]
    search_fields = ["governorate", "city"]
    ordering = ["governorate", "city"]

    def get_permissions(self):
        if self.action in ("list", "retrieve", "governorates"):
            return [permissions.AllowAny()]
        return [IsAdminOrHigher()]

    def get_queryset(self):
        queryset = DeliveryLocation.objects.all()
        if not getattr(self.request.user, "is_admin_role", False):
            queryset = queryset.filter(is_active=True)
        return queryset

    @action(detail=False, methods=["get"])
    def governorates(self, request):
        names = (
            DeliveryLocation.objects.filter(is_active=True)
            .order_by("governorate")
            .values_list("governorate", flat=True)
            .distinct()
        )
        return Response({"success": True, "message": "", "data": list(names)})


class DeliveryFeeView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        serializer = DeliveryFeeQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = DeliveryFeeResolver.resolve(ONLINE, data["governorate"], data["city"], data["subtotal"])
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response({"success": True, "message": "", "data": result.data.as_dict()})
