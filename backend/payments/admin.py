from django.contrib import admin

from .models import PaymentMethod, PaymobConfig, StripeConfig


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ("name", "provider", "display_name", "is_active", "updated_at")
    list_filter = ("provider", "is_active")
    list_editable = ("is_active",)
    readonly_fields = ("provider", "created_at", "updated_at")


class SingletonConfigAdmin(admin.ModelAdmin):
    """One row per provider; deleting would silently disable the gateway."""

    readonly_fields = ("created_at", "updated_at")

    def has_add_permission(self, request):
        return not self.model.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StripeConfig)
class StripeConfigAdmin(SingletonConfigAdmin):
    list_display = ("__str__", "is_active", "is_live_mode", "currency", "capture_method", "updated_at")


@admin.register(PaymobConfig)
class PaymobConfigAdmin(SingletonConfigAdmin):
    list_display = ("__str__", "is_active", "is_live_mode", "currency", "checkout_type", "updated_at")
