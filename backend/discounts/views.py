from rest_framework import status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from core_backend.base import BaseViewSet
from users.permissions import IsAdminOrHigher
from .models import Coupon, GlobalDiscount
from .serializers import CouponSerializer, CouponValidateSerializer, GlobalDiscountSerializer
from .services import CouponService, PricingService
from .filters import CouponFilter


class CouponViewSet(BaseViewSet):
    """
    Admin CRUD for coupons.
    Supports filtering by 'discount_type', 'is_active' and 'is_global'.
    """

    queryset = Coupon.objects.all()
    serializer_class = CouponSerializer
    permission_classes = [IsAdminOrHigher]
    filterset_class = CouponFilter
    search_fields = ["code", "description"]
    ordering = ["-created_at"]

    @action(detail=True, methods=["patch"], url_path="toggle")
    def toggle(self, request, pk=None):
        coupon = self.get_object()
        coupon.is_active = not coupon.is_active
        coupon.save(update_fields=["is_active", "updated_at"])
        state = "activated" if coupon.is_active else "deactivated"
        return Response(
            {"success": True, "message": f"Coupon {state} successfully", "data": self.get_serializer(coupon).data}
        )


class ValidateCouponView(APIView):
    """
    Check a coupon against an explicit product list or, when none is given,
    against the caller's cart.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = CouponValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        products = serializer.validated_data.get("products")
        if products:
            resolved = PricingService.resolve_products(products)
            if not resolved.success:
                return Response(resolved.as_body(), status=resolved.status_code)
            lines = resolved.data
        else:
            from cart.services import CartService

            cart = CartService.get_or_create_cart(request.user)
            lines = CartService.get_lines(cart)

        result = CouponService.validate_code(serializer.validated_data["code"], request.user, lines)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)

        return Response(
            {"success": True, "message": result.message, "data": result.data.as_dict()},
            status=status.HTTP_200_OK,
        )


class GlobalDiscountViewSet(BaseViewSet):
    """
    Admin CRUD for store-wide discounts. Saving a second active discount that
    overlaps an existing one fails with 400.
    """

    queryset = GlobalDiscount.objects.all()
    serializer_class = GlobalDiscountSerializer
    permission_classes = [IsAdminOrHigher]
    ordering = ["-created_at"]

    @action(detail=False, methods=["get"], url_path="active", permission_classes=[permissions.AllowAny])
    def active(self, request):
        discount = PricingService.get_active_global_discount()
        if discount is None:
            return Response({"success": True, "message": "No active global discount", "data": None})
        return Response({"success": True, "message": "", "data": self.get_serializer(discount).data})
