from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


def _within_window(start, end, at):
    if start and at < start:
        return False
    if end and at > end:
        return False
    return True


class Category(models.Model):
    name = models.CharField(
        max_length=100, unique=True, help_text=_("Name of the product category.")
    )
    description = models.TextField(
        blank=True, help_text=_("Description of the category.")
    )
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text=_("Percentage taken off every product in this category."),
    )
    is_discount_active = models.BooleanField(default=False)
    discount_start = models.DateTimeField(null=True, blank=True)
    discount_end = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "categories"
        ordering = ["name"]

    def __str__(self):
        return self.name

    def has_active_discount(self, at=None):
        """Active flag set, a positive percentage, and ``at`` inside the window."""
        if not self.is_discount_active or self.discount_percentage <= 0:
            return False
        return _within_window(self.discount_start, self.discount_end, at or timezone.now())

    def clean(self):
        super().clean()
        if self.discount_start and self.discount_end and self.discount_end <= self.discount_start:
            raise ValidationError({"discount_end": "Discount end must be after its start."})


class Product(models.Model):
    name = models.CharField(max_length=200, help_text=_("Name of the product."))
    description = models.TextField(
        blank=True, help_text=_("Detailed description of the product.")
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("The regular selling price of the product."),
    )
    category = models.ForeignKey(
        Category,
        related_name="products",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        help_text=_("Product category. Leave blank for uncategorized products."),
    )
    is_on_sale = models.BooleanField(default=False)
    sale_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    sale_start = models.DateTimeField(null=True, blank=True)
    sale_end = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category", "is_active"]),
        ]

    def __str__(self):
        return self.name

    def has_active_sale(self, at=None):
        """A sale counts only with a sale price below the regular price."""
        if not self.is_on_sale or self.sale_price is None:
            return False
        if self.sale_price >= self.price or self.sale_price < 0:
            return False
        return _within_window(self.sale_start, self.sale_end, at or timezone.now())

    def clean(self):
        super().clean()
        if self.is_on_sale:
            if self.sale_price is None:
                raise ValidationError({"sale_price": "Sale price is required when the product is on sale."})
            if self.sale_price >= self.price:
                raise ValidationError({"sale_price": "Sale price must be lower than the regular price."})
        if self.sale_start and self.sale_end and self.sale_end <= self.sale_start:
            raise ValidationError({"sale_end": "Sale end must be after its start."})
