from django.contrib import admin

from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "discount_percentage", "is_discount_active", "discount_start", "discount_end", "is_active")
    list_filter = ("is_active", "is_discount_active")
    search_fields = ("name",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin configuration for the Product model.
    """

    list_display = ("name", "category", "price", "is_on_sale", "sale_price", "is_active", "updated_at")
    list_filter = ("category", "is_on_sale", "is_active")
    search_fields = ("name", "description")
    list_select_related = ("category",)
    readonly_fields = ("created_at", "updated_at")

    fieldsets = (
        (None, {"fields": ("name", "description", "category", "price", "is_active")}),
        (
            "Sale",
            {
                "fields": ("is_on_sale", "sale_price", "sale_start", "sale_end"),
                "description": "A running sale takes priority over category and store-wide discounts.",
            },
        ),
        ("Timestamps", {"classes": ("collapse",), "fields": ("created_at", "updated_at")}),
    )
