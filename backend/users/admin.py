from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Address, User


class AddressInline(admin.TabularInline):
    model = Address
    extra = 0
    fields = ("governorate", "city", "street", "building_number", "flat_number")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("email", "name", "phone_number", "role", "is_staff", "is_active", "date_joined")
    list_filter = ("role", "is_staff", "is_superuser", "is_active")
    search_fields = ("email", "name", "phone_number")
    ordering = ("email",)
    readonly_fields = ("date_joined", "updated_at", "last_login")
    inlines = [AddressInline]

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("name", "phone_number", "role")}),
        (
            "Permissions",
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        ("Important dates", {"fields": ("last_login", "date_joined", "updated_at")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "name", "role", "password1", "password2"),
            },
        ),
    )


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ("owner", "governorate", "city", "street", "building_number", "flat_number")
    list_filter = ("governorate",)
    search_fields = ("owner__email", "city", "street")
    autocomplete_fields = ("owner",)
