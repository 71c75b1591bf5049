"""
URL configuration for cart app.
"""

from django.urls import path
from .views import CartViewSet

app_name = "cart"

urlpatterns = [
    path("", CartViewSet.as_view({"get": "retrieve"}), name="cart-detail"),
    path("add-item/", CartViewSet.as_view({"post": "add_item"}), name="cart-add-item"),
    path("update-item/<uuid:item_id>/", CartViewSet.as_view({"patch": "update_item"}), name="cart-update-item"),
    path("remove-item/<uuid:item_id>/", CartViewSet.as_view({"delete": "remove_item"}), name="cart-remove-item"),
    path("clear/", CartViewSet.as_view({"delete": "clear"}), name="cart-clear"),
    path(
        "coupon/",
        CartViewSet.as_view({"post": "apply_coupon", "delete": "remove_coupon"}),
        name="cart-coupon",
    ),
]
