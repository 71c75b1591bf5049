from django.contrib import admin

from .models import Coupon, CouponUsage, GlobalDiscount


class CouponUsageInline(admin.TabularInline):
    model = CouponUsage
    extra = 0
    readonly_fields = ("user", "count", "last_used_at")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "usage_count",
        "max_usage_count",
        "start_date",
        "expiry_date",
        "is_active",
    )
    list_filter = ("discount_type", "is_active", "is_global")
    search_fields = ("code", "description")
    filter_horizontal = ("applicable_products", "applicable_categories")
    readonly_fields = ("usage_count", "created_at", "updated_at")
    inlines = [CouponUsageInline]


@admin.register(GlobalDiscount)
class GlobalDiscountAdmin(admin.ModelAdmin):
    list_display = ("name", "percentage", "start_date", "end_date", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)
    filter_horizontal = ("excluded_products", "excluded_categories")
