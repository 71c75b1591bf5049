from rest_framework import permissions

from core_backend.base.viewsets import BaseViewSet
from users.permissions import IsAdminOrHigher
from .filters import ProductFilter
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer


class CatalogPermissionMixin:
    """Anyone may browse the catalog; only admins may change it."""

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [permissions.AllowAny()]
        return [IsAdminOrHigher()]


class CategoryViewSet(CatalogPermissionMixin, BaseViewSet):
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    search_fields = ["name"]
    ordering = ["name"]


class ProductViewSet(CatalogPermissionMixin, BaseViewSet):
    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    filterset_class = ProductFilter
    search_fields = ["name", "description"]
    ordering = ["name"]

    def get_queryset(self):
        queryset = Product.objects.select_related("category")
        if self.action in ("list", "retrieve") and not getattr(self.request.user, "is_admin_role", False):
            queryset = queryset.filter(is_active=True)
        return queryset

    def get_serializer_context(self):
        # One global-discount lookup per request instead of one per product.
        from discounts.services import PricingService

        context = super().get_serializer_context()
        context["global_discount"] = PricingService.get_active_global_discount()
        return context
