from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "quantity", "unit_price", "original_price", "discount_type", "discount_percentage")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for the Order model.

    Orders are read-only here: payment and fulfilment statuses move through
    the API so that gateway side effects run.
    """

    list_display = (
        "id",
        "user",
        "place_type",
        "payment_method",
        "payment_status",
        "order_status",
        "total_price",
        "created_at",
    )
    list_filter = ("payment_status", "order_status", "place_type", "payment_method", "created_at")
    search_fields = ("id", "user__email", "unique_payment_id", "stripe_session_id", "paymob_transaction_id")
    list_select_related = ("user", "payment_method")
    inlines = [OrderItemInline]

    fieldsets = (
        (
            "Order Overview",
            {"fields": ("id", "user", "address", "source", "place_type", "table", "governorate", "city")},
        ),
        (
            "Financial Summary",
            {
                "fields": (
                    "subtotal",
                    "product_discount",
                    "coupon",
                    "coupon_discount",
                    "delivery_fee",
                    "total_price",
                    "total_quantity",
                ),
            },
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_method",
                    "payment_status",
                    "order_status",
                    "stripe_session_id",
                    "stripe_payment_intent_id",
                    "unique_payment_id",
                    "paymob_intention_id",
                    "paymob_transaction_id",
                    "is_authorized",
                    "qr_code_data",
                    "failure_reason",
                ),
            },
        ),
        (
            "Refund / Cancellation",
            {
                "classes": ("collapse",),
                "fields": (
                    "refund_id",
                    "refund_amount",
                    "refund_date",
                    "refund_reason",
                    "refund_status",
                    "cancellation_reason",
                    "cancelled_at",
                ),
            },
        ),
        ("Timestamps", {"classes": ("collapse",), "fields": ("created_at", "updated_at")}),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in Order._meta.fields]

    def has_add_permission(self, request):
        return False
