"""
Cart API views for the authenticated customer's cart.
"""

from rest_framework import viewsets, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
import logging

from .models import CartItem
from .serializers import (
    AddToCartSerializer,
    ApplyCouponSerializer,
    UpdateCartItemSerializer,
    cart_payload,
)
from .services import CartService
from products.models import Product

logger = logging.getLogger(__name__)


class CartViewSet(viewsets.ViewSet):
    """
    Endpoints:
    - GET /api/cart/ - Retrieve current cart with priced totals
    - POST /api/cart/add-item/ - Add item to cart
    - PATCH /api/cart/update-item/{item_id}/ - Update item quantity
    - DELETE /api/cart/remove-item/{item_id}/ - Remove item from cart
    - DELETE /api/cart/clear/ - Clear all items
    - POST /api/cart/coupon/ - Apply a coupon
    - DELETE /api/cart/coupon/ - Remove the applied coupon
    """

    permission_classes = [IsAuthenticated]

    def _respond(self, cart, message="", status_code=status.HTTP_200_OK):
        summary = CartService.get_cart_summary(cart, self.request.user)
        return Response(
            {"success": True, "message": message, "data": cart_payload(cart, summary.data)},
            status=status_code,
        )

    def retrieve(self, request):
        cart = CartService.get_or_create_cart(request.user)
        return self._respond(cart)

    def add_item(self, request):
        serializer = AddToCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product = Product.objects.filter(pk=serializer.validated_data["product_id"], is_active=True).first()
        if product is None:
            return Response({"success": False, "message": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        cart = CartService.get_or_create_cart(request.user)
        try:
            CartService.add_item(cart, product, serializer.validated_data["quantity"])
        except ValueError as e:
            return Response({"success": False, "message": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._respond(cart, "Item added to cart", status.HTTP_201_CREATED)

    def update_item(self, request, item_id=None):
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = CartService.get_or_create_cart(request.user)
        item = get_object_or_404(CartItem, pk=item_id, cart=cart)
        CartService.update_item_quantity(item, serializer.validated_data["quantity"])
        return self._respond(cart, "Cart updated")

    def remove_item(self, request, item_id=None):
        cart = CartService.get_or_create_cart(request.user)
        item = get_object_or_404(CartItem, pk=item_id, cart=cart)
        CartService.remove_item(item)
        return self._respond(cart, "Item removed from cart")

    def clear(self, request):
        cart = CartService.get_or_create_cart(request.user)
        CartService.clear_cart(cart)
        return self._respond(cart, "Cart cleared")

    def apply_coupon(self, request):
        serializer = ApplyCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = CartService.get_or_create_cart(request.user)
        result = CartService.apply_coupon(cart, serializer.validated_data["code"], request.user)
        if not result.success:
            return Response(result.as_body(), status=result.status_code)
        return self._respond(cart, result.message)

    def remove_coupon(self, request):
        cart = CartService.get_or_create_cart(request.user)
        CartService.remove_coupon(cart)
        return self._respond(cart, "Coupon removed")
