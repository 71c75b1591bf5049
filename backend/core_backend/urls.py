"""
URL configuration for core_backend project.

Every app mounts under ``/api/<app>/``; webhooks live under
``/api/payments/webhooks/``.
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    path("api/users/", include("users.urls")),
    path("api/products/", include("products.urls")),
    path("api/discounts/", include("discounts.urls")),
    path("api/cart/", include("cart.urls")),
    path("api/delivery/", include("delivery.urls")),
    path("api/reservations/", include("reservations.urls")),
    path("api/payments/", include("payments.urls")),
    path("api/orders/", include("orders.urls")),
    path("api/reviews/", include("reviews.urls")),
]
