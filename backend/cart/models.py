import uuid
from django.conf import settings
from django.db import models
from django.utils import timezone
from products.models import Product


class Cart(models.Model):
    """
    Shopping cart used to build orders. One per user.

    Lifecycle:
    1. Created explicitly through ``CartService.get_or_create_cart``
    2. Modified as the user shops (add/remove/update items, apply coupon)
    3. Read when an order is created from it
    4. Emptied only once the order's payment is confirmed

    No financial totals are stored; they are priced on demand so sales and
    discounts that start or end mid-session are always reflected.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cart",
    )
    coupon = models.ForeignKey(
        "discounts.Coupon",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="carts",
    )
    last_activity = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart {self.id} ({self.owner_id})"

    @property
    def is_empty(self):
        return not self.items.exists()

    def touch(self):
        """Update last_activity timestamp."""
        self.last_activity = timezone.now()
        self.save(update_fields=["last_activity", "updated_at"])


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="cart_items")
    quantity = models.PositiveIntegerField(default=1)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["added_at"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product"], name="unique_product_per_cart"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product_id}"
