from django.contrib import admin

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("product", "owner", "rating", "created_at")
    list_filter = ("rating",)
    search_fields = ("product__name", "owner__email", "comment")
    raw_id_fields = ("product", "owner")
