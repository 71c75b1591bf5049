import uuid
from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Order(models.Model):
    class PlaceType(models.TextChoices):
        ONLINE = "Online", _("Online delivery")
        IN_PLACE = "In-Place", _("Dine in")
        TAKEAWAY = "Takeaway", _("Takeaway")

    class Source(models.TextChoices):
        CART = "cart", _("Cart")
        PRODUCT = "product", _("Single product")
        PRODUCTS = "products", _("Product list")

    class PaymentStatus(models.TextChoices):
        PENDING = "Pending", _("Pending")
        COMPLETED = "Completed", _("Completed")
        FAILED = "Failed", _("Failed")
        CANCELLED = "Cancelled", _("Cancelled")
        REFUNDED = "Refunded", _("Refunded")
        PARTIALLY_REFUNDED = "PartiallyRefunded", _("Partially Refunded")

    class OrderStatus(models.TextChoices):
        PROCESSING = "Processing", _("Processing")
        PAID = "Paid", _("Paid")
        READY = "Ready", _("Ready")
        ON_THE_WAY = "On the way", _("On the way")
        RECEIVED = "Received", _("Received")
        FAILED = "Failed", _("Failed")
        CANCELLED = "Cancelled", _("Cancelled")

    class RefundStatus(models.TextChoices):
        PENDING = "Pending", _("Pending")
        COMPLETED = "Completed", _("Completed")
        FAILED = "Failed", _("Failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders"
    )
    address = models.ForeignKey(
        "users.Address", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    source = models.CharField(max_length=10, choices=Source.choices, default=Source.CART)
    place_type = models.CharField(max_length=10, choices=PlaceType.choices)
    table = models.ForeignKey(
        "reservations.Table", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders",
        help_text=_("Set only for dine-in orders."),
    )
    governorate = models.CharField(max_length=100, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")

    # --- Money ---
    subtotal = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"),
        help_text=_("Sum of undiscounted line prices."),
    )
    product_discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    coupon_discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_quantity = models.PositiveIntegerField(default=0)
    coupon = models.ForeignKey(
        "discounts.Coupon", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )

    # --- Payment ---
    payment_method = models.ForeignKey(
        "payments.PaymentMethod", on_delete=models.PROTECT, related_name="orders"
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    order_status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PROCESSING, db_index=True
    )
    stripe_session_id = models.CharField(max_length=255, blank=True, null=True, db_index=True)
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True, null=True)
    unique_payment_id = models.CharField(
        max_length=8, unique=True, null=True, blank=True,
        help_text=_("8-character reference sent to Paymob and echoed back by its callbacks."),
    )
    paymob_intention_id = models.CharField(max_length=255, blank=True, null=True)
    paymob_transaction_id = models.CharField(max_length=255, blank=True, null=True)
    is_authorized = models.BooleanField(
        default=False,
        help_text=_("Funds held by the gateway and waiting for a capture."),
    )
    qr_code_data = models.CharField(
        max_length=128, blank=True, default="",
        help_text=_("Signed pickup payload issued once the order is paid."),
    )
    provider_payload = models.JSONField(default=dict, blank=True)
    failure_reason = models.CharField(max_length=500, blank=True, default="")

    # --- Refund / cancellation ---
    refund_id = models.CharField(max_length=255, blank=True, null=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    refund_date = models.DateTimeField(null=True, blank=True)
    refund_reason = models.CharField(max_length=255, blank=True, default="")
    refund_status = models.CharField(max_length=10, choices=RefundStatus.choices, null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    TERMINAL_PAYMENT_STATUSES = (
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED,
        PaymentStatus.FAILED,
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"]),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.payment_status}/{self.order_status})"

    @property
    def provider(self):
        return self.payment_method.provider if self.payment_method_id else None

    @property
    def is_terminal(self):
        return (
            self.payment_status in self.TERMINAL_PAYMENT_STATUSES
            or self.order_status == self.OrderStatus.RECEIVED
        )


class OrderItem(models.Model):
    """Priced snapshot of one product line at order time."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("products.Product", on_delete=models.PROTECT, related_name="+")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    original_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_type = models.CharField(max_length=10, default="none")
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="order_item_quantity_positive"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product_id} @ {self.unit_price}"

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity
