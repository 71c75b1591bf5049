import logging

from rest_framework import permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from users.permissions import IsAdminOrHigher
from ..models import PaymentMethod, PaymobConfig, StripeConfig
from ..serializers import (
    PaymentMethodSerializer,
    PaymobConfigSerializer,
    PublicPaymentMethodSerializer,
    StripeConfigSerializer,
)
from ..services import PaymentMethodRegistry
from .base import BasePaymentView

logger = logging.getLogger(__name__)


class ActivePaymentMethodsView(BasePaymentView):
    """Methods a customer can currently choose at checkout."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        methods = PaymentMethodRegistry.active_methods()
        return Response(
            {"success": True, "message": "", "data": PublicPaymentMethodSerializer(methods, many=True).data}
        )


class PaymentMethodAdminViewSet(BaseViewSet):
    """
    Admin management of the payment method registry.
    """

    queryset = PaymentMethod.objects.all()
    serializer_class = PaymentMethodSerializer
    permission_classes = [IsAdminOrHigher]
    filterset_fields = ["provider", "is_active"]
    ordering = ["name"]
    http_method_names = ["get", "post", "put", "patch", "head", "options"]

    @action(detail=True, methods=["patch"], url_path="toggle")
    def toggle(self, request, pk=None):
        method = self.get_object()
        PaymentMethodRegistry.set_active(method, not method.is_active)
        state = "enabled" if method.is_active else "disabled"
        return Response(
            {"success": True, "message": f"{method.name} {state}", "data": self.get_serializer(method).data}
        )

    @action(detail=False, methods=["post"], url_path="seed")
    def seed(self, request):
        created = PaymentMethodRegistry.seed_defaults()
        return Response(
            {"success": True, "message": f"Created {len(created)} payment methods", "data": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class ProviderConfigView(BasePaymentView):
    """
    GET returns the singleton (404 until it has been saved once);
    PUT creates or updates it.
    """

    permission_classes = [IsAdminOrHigher]
    model = None
    serializer_class = None

    def get(self, request, *args, **kwargs):
        config = self.model.load()
        if config is None:
            return Response(
                {"success": False, "message": f"{self.model.provider} configuration not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(
            {
                "success": True,
                "message": "",
                "data": self.serializer_class(config).data,
                "summary": config.summary(),
            }
        )

    def put(self, request, *args, **kwargs):
        config = self.model.get_solo()
        serializer = self.serializer_class(config, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        config = serializer.save()
        logger.info(f"{self.model.provider} configuration updated by user {request.user.pk}")
        return Response(
            {
                "success": True,
                "message": f"{self.model.provider} configuration updated successfully",
                "data": self.serializer_class(config).data,
            }
        )


class StripeConfigView(ProviderConfigView):
    model = StripeConfig
    serializer_class = StripeConfigSerializer


class PaymobConfigView(ProviderConfigView):
    model = PaymobConfig
    serializer_class = PaymobConfigSerializer
