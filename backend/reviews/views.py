from rest_framework import permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response

from core_backend.base import BaseViewSet
from .models import Review
from .serializers import ReviewCreateSerializer, ReviewSerializer, ReviewUpdateSerializer
from .services import ReviewService


class ReviewViewSet(BaseViewSet):
    """
    Product reviews. ``list`` is the caller's own reviews; a product's
    reviews are public under ``product/<id>/``. Only the author edits a
    review, and the author or staff may delete it.
    """

    queryset = Review.objects.all()
    serializer_class = ReviewSerializer
    filterset_fields = ["rating"]
    ordering = ["-created_at"]
    ordering_fields = ["created_at", "rating"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_permissions(self):
        if self.action in ("retrieve", "product_reviews"):
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        queryset = Review.objects.select_related("owner", "product")
        if self.action == "list":
            return queryset.filter(owner=self.request.user)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ReviewService.create_review(request.user, data["product_id"], data["rating"], data["comment"])
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response(
            {"success": True, "message": result.message, "data": ReviewSerializer(result.data).data},
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, *args, **kwargs):
        review = self.get_object()
        if review.owner_id != request.user.pk:
            return Response(
                {"success": False, "message": "You can only edit your own reviews"},
                status=status.HTTP_403_FORBIDDEN,
            )
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReviewService.update_review(review, **serializer.validated_data)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return Response({"success": True, "message": result.message, "data": ReviewSerializer(review).data})

    def destroy(self, request, *args, **kwargs):
        review = self.get_object()
        if review.owner_id != request.user.pk and not request.user.is_admin_role:
            return Response(
                {"success": False, "message": "You can only delete your own reviews"},
                status=status.HTTP_403_FORBIDDEN,
            )
        result = ReviewService.delete_review(review)
        return Response(result.as_body(), status=result.status_code)

    @action(detail=False, methods=["get"], url_path=r"product/(?P<product_id>\d+)")
    def product_reviews(self, request, product_id=None):
        found = ReviewService.get_product(product_id)
        if not found.success:
            return Response(found.as_body(), status=found.status_code)
        product = found.data

        queryset = self.filter_queryset(Review.objects.filter(product=product).select_related("owner", "product"))
        page = self.paginate_queryset(queryset)
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        response.data["summary"] = ReviewService.rating_summary(product)
        return response
