from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class DeliveryLocation(models.Model):
    """Flat delivery fee for one (governorate, city) pair."""

    governorate = models.CharField(max_length=100)
    city = models.CharField(max_length=100)
    fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("Flat delivery fee charged for this area."),
    )
    estimated_delivery_time = models.CharField(max_length=50, default="30-45 mins")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["governorate", "city"]
        constraints = [
            models.UniqueConstraint(fields=["governorate", "city"], name="unique_delivery_location"),
        ]
        indexes = [
            models.Index(fields=["governorate", "city", "is_active"]),
        ]

    def __str__(self):
        return f"{self.city}, {self.governorate} ({self.fee})"

    def save(self, *args, **kwargs):
        self.governorate = self.governorate.strip()
        self.city = self.city.strip()
        super().save(*args, **kwargs)
