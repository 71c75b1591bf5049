"""
Cart service layer for managing shopping cart operations.

This service handles:
- Cart creation and retrieval (one cart per user)
- Adding/updating/removing items
- Coupon attachment
- Pricing the cart through the pricing engine
"""

from django.db import transaction
from typing import List, Tuple
import logging

from core_backend.results import ErrorKind, ServiceResult
from discounts.services import CouponService, PricingService
from products.models import Product
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


class CartService:
    """Service for managing cart operations."""

    @staticmethod
    def get_or_create_cart(user) -> Cart:
        """
        Get or create the cart for a user. This is the only place carts are
        created.

        Raises:
            ValueError: If no authenticated user is given
        """
        if user is None or not getattr(user, "pk", None):
            raise ValueError("An authenticated user is required to own a cart")

        cart, created = Cart.objects.get_or_create(owner=user)
        if created:
            logger.info(f"Created new cart {cart.id} for user {user.pk}")
        return cart

    @staticmethod
    def get_lines(cart: Cart) -> List[Tuple[Product, int]]:
        items = cart.items.select_related("product", "product__category").filter(product__is_active=True)
        return [(item.product, item.quantity) for item in items]

    @staticmethod
    @transaction.atomic
    def add_item(cart: Cart, product: Product, quantity: int = 1) -> CartItem:
        """
        Add a product to the cart, merging with an existing line.

        Raises:
            ValueError: If quantity is not positive or the product is inactive
        """
        if quantity <= 0:
            raise ValueError("Quantity must be a positive integer")
        if not product.is_active:
            raise ValueError("Product is not available")

        item, created = CartItem.objects.select_for_update().get_or_create(
            cart=cart, product=product, defaults={"quantity": quantity}
        )
        if not created:
            item.quantity += quantity
            item.save(update_fields=["quantity"])
        cart.touch()
        return item

    @staticmethod
    @transaction.atomic
    def update_item_quantity(cart_item: CartItem, new_quantity: int):
        """
        Set the quantity of a cart item; zero removes the line.

        Raises:
            ValueError: If quantity is negative
        """
        if new_quantity < 0:
            raise ValueError("Quantity must not be negative")

        if new_quantity == 0:
            cart_item.delete()
            return None

        cart_item.quantity = new_quantity
        cart_item.save(update_fields=["quantity"])
        return cart_item

    @staticmethod
    @transaction.atomic
    def remove_item(cart_item: CartItem):
        cart_item.delete()

    @staticmethod
    @transaction.atomic
    def clear_cart(cart: Cart):
        """Remove all items and the applied coupon."""
        deleted, _ = cart.items.all().delete()
        cart.coupon = None
        cart.save(update_fields=["coupon", "updated_at"])
        logger.info(f"Cleared cart {cart.id} ({deleted} item rows)")

    @staticmethod
    def clear_cart_for_user(user_id) -> bool:
        cart = Cart.objects.filter(owner_id=user_id).first()
        if cart is None:
            return False
        CartService.clear_cart(cart)
        return True

    @staticmethod
    def apply_coupon(cart: Cart, code: str, user) -> ServiceResult:
        coupon = CouponService.get_by_code(code)
        if coupon is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Invalid coupon code")

        lines = CartService.get_lines(cart)
        if not lines:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Cart is empty")

        priced = PricingService.price_lines(lines, coupon=coupon, user=user)
        if not priced.success:
            return priced

        cart.coupon = coupon
        cart.save(update_fields=["coupon", "updated_at"])
        logger.info(f"Cart {cart.id}: applied coupon {coupon.code}")
        return ServiceResult.ok(priced.data, message="Coupon applied successfully")

    @staticmethod
    def remove_coupon(cart: Cart):
        cart.coupon = None
        cart.save(update_fields=["coupon", "updated_at"])

    @staticmethod
    def get_cart_summary(cart: Cart, user=None) -> ServiceResult:
        """
        Price the cart. A stored coupon that no longer validates is reported
        in ``coupon_message`` and ignored rather than failing the cart.
        """
        return PricingService.price_lines(
            CartService.get_lines(cart),
            coupon=cart.coupon,
            user=user or cart.owner,
            strict_coupon=False,
        )
