import logging

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import ReadOnlyBaseViewSet
from orders.filters import OrderFilter
from orders.models import Order
from orders.serializers import OrderSerializer
from orders.services import OrderService
from users.permissions import IsAdminOrHigher
from .fulfilment_actions import FulfilmentActionsMixin
from .payment_actions import PaymentActionsMixin
from .status_actions import StatusActionsMixin

logger = logging.getLogger(__name__)


class OrderViewSet(StatusActionsMixin, PaymentActionsMixin, FulfilmentActionsMixin, ReadOnlyBaseViewSet):
    """
    Orders of the requesting customer; admins see every order.

    Creation lives on the checkout endpoints, not here.
    """

    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    ordering = ["-created_at"]
    ordering_fields = ["created_at", "total_price"]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):
        user = self.request.user
        if user.is_admin_role:
            return OrderService.list_for_admin()
        return OrderService.list_for_user(user)

    @action(detail=False, methods=["get"], url_path="admin", permission_classes=[IsAdminOrHigher])
    def admin_list(self, request: Request) -> Response:
        queryset = OrderService.list_for_admin(
            payment_status=request.query_params.get("paymentStatus"),
            order_status=request.query_params.get("status"),
        ).order_by("-created_at")
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)
