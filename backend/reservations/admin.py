from django.contrib import admin

from .models import Reservation, Table


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ("number", "capacity", "is_active")
    list_filter = ("is_active",)


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("table", "user", "reservation_date", "status", "order")
    list_filter = ("status", "table")
    search_fields = ("user__email",)
    date_hierarchy = "reservation_date"
    list_select_related = ("table", "user")
