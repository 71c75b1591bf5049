from rest_framework import viewsets, filters
from django_filters.rest_framework import DjangoFilterBackend
from ..pagination import StandardPagination


class BaseViewSet(viewsets.ModelViewSet):
    """
    Base ViewSet that provides standard configuration for all ModelViewSets.

    Features:
    - Standard pagination, filtering, search and ordering
    - ``{success, message, data}`` envelope on create/update/destroy

    Usage:
        class CouponViewSet(BaseViewSet):
            queryset = Coupon.objects.all()
            serializer_class = CouponSerializer
    """

    pagination_class = StandardPagination

    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]

    ordering = ['-id']

    def get_queryset(self):
        """
        Re-evaluate the class-level queryset at request time so every request
        sees fresh rows.
        """
        return self.queryset.model.objects.all() if self.queryset is not None else super().get_queryset()

    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        response.data = {"success": True, "message": "Created successfully", "data": response.data}
        return response

    def update(self, request, *args, **kwargs):
        response = super().update(request, *args, **kwargs)
        response.data = {"success": True, "message": "Updated successfully", "data": response.data}
        return response


class ReadOnlyBaseViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Base ViewSet for read-only endpoints.
    """

    pagination_class = StandardPagination
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter,
    ]
    ordering = ['-id']
