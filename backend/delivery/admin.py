from django.contrib import admin

from .models import DeliveryLocation


@admin.register(DeliveryLocation)
class DeliveryLocationAdmin(admin.ModelAdmin):
    list_display = ("governorate", "city", "fee", "estimated_delivery_time", "is_active")
    list_filter = ("governorate", "is_active")
    search_fields = ("governorate", "city")
