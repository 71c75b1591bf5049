from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class Table(models.Model):
    number = models.PositiveIntegerField(unique=True)
    capacity = models.PositiveIntegerField(default=2)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["number"]

    def __str__(self):
        return f"Table {self.number} ({self.capacity} seats)"


class Reservation(models.Model):
    class Status(models.TextChoices):
        PENDING = "Pending", _("Pending")
        CONFIRMED = "Confirmed", _("Confirmed")
        CANCELLED = "Cancelled", _("Cancelled")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reservations"
    )
    table = models.ForeignKey(Table, on_delete=models.PROTECT, related_name="reservations")
    reservation_date = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservation",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["reservation_date"]
        constraints = [
            # The database is the arbiter between concurrent bookings of one slot.
            models.UniqueConstraint(
                fields=["table", "reservation_date"],
                condition=~Q(status="Cancelled"),
                name="unique_live_reservation_per_table_slot",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "status"]),
        ]

    def __str__(self):
        return f"Table {self.table_id} at {self.reservation_date:%Y-%m-%d %H:%M} ({self.status})"
