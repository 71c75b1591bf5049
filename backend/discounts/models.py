from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from products.models import Product, Category


class Coupon(models.Model):
    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", "Percentage"
        FIXED = "fixed", "Fixed Amount"
        FREE_DELIVERY = "freeDelivery", "Free Delivery"

    code = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Percentage (0-100) or fixed amount. Ignored for free delivery.",
    )
    max_discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Upper bound for percentage coupons.",
    )
    min_order_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    max_usage_count = models.PositiveIntegerField(
        null=True, blank=True, help_text="Total redemptions allowed. Empty means unlimited."
    )
    usage_count = models.PositiveIntegerField(default=0)
    max_usage_per_user = models.PositiveIntegerField(default=1)
    start_date = models.DateTimeField(default=timezone.now)
    expiry_date = models.DateTimeField()
    applicable_products = models.ManyToManyField(Product, blank=True, related_name="coupons")
    applicable_categories = models.ManyToManyField(Category, blank=True, related_name="coupons")
    is_global = models.BooleanField(
        default=True, help_text="Applies to every cart line when set."
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "start_date", "expiry_date"]),
        ]

    def __str__(self):
        return f"{self.code} ({self.get_discount_type_display()})"

    def save(self, *args, **kwargs):
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def is_currently_active(self, at=None):
        """Checks if the coupon is enabled and within its date range."""
        if not self.is_active:
            return False
        now = at or timezone.now()
        if self.start_date and now < self.start_date:
            return False
        if self.expiry_date and now > self.expiry_date:
            return False
        return True

    def clean(self):
        super().clean()
        if self.discount_type == self.DiscountType.PERCENTAGE:
            if self.discount_value <= 0 or self.discount_value > 100:
                raise ValidationError({"discount_value": "Percentage must be between 0 and 100."})
        elif self.discount_type == self.DiscountType.FIXED and self.discount_value <= 0:
            raise ValidationError({"discount_value": "Discount value must be greater than zero."})
        if self.start_date and self.expiry_date and self.expiry_date <= self.start_date:
            raise ValidationError({"expiry_date": "Expiry date must be after the start date."})


class CouponUsage(models.Model):
    """Per-user redemption ledger for a coupon."""

    coupon = models.ForeignKey(Coupon, on_delete=models.CASCADE, related_name="usages")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="coupon_usages"
    )
    count = models.PositiveIntegerField(default=0)
    last_used_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["coupon", "user"], name="unique_coupon_usage_per_user"),
        ]

    def __str__(self):
        return f"{self.coupon.code} x{self.count} by {self.user_id}"


class GlobalDiscount(models.Model):
    """
    Store-wide percentage discount. At most one active discount may cover any
    instant; overlapping active windows are rejected when saving.
    """

    name = models.CharField(max_length=255)
    percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01")), MaxValueValidator(Decimal("100"))],
    )
    is_active = models.BooleanField(default=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    excluded_products = models.ManyToManyField(
        Product, blank=True, related_name="excluded_from_global_discounts"
    )
    excluded_categories = models.ManyToManyField(
        Category, blank=True, related_name="excluded_from_global_discounts"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.percentage}%)"

    def is_currently_active(self, at=None):
        if not self.is_active:
            return False
        now = at or timezone.now()
        if self.start_date and now < self.start_date:
            return False
        if self.end_date and now > self.end_date:
            return False
        return True

    def overlapping_active(self):
        """Other active discounts whose validity window intersects this one."""
        others = GlobalDiscount.objects.filter(is_active=True)
        if self.pk:
            others = others.exclude(pk=self.pk)
        if self.end_date:
            others = others.filter(Q(start_date__isnull=True) | Q(start_date__lte=self.end_date))
        if self.start_date:
            others = others.filter(Q(end_date__isnull=True) | Q(end_date__gte=self.start_date))
        return others

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({"end_date": "End date must be after the start date."})
        if self.is_active:
            clash = self.overlapping_active().first()
            if clash is not None:
                raise ValidationError(
                    f"Another active global discount ('{clash.name}') overlaps this period. "
                    "Deactivate it or choose a non-overlapping window."
                )

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)
