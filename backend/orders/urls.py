from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    CartCheckoutView,
    OrderByPaymentIdView,
    OrderViewSet,
    ProductCheckoutView,
    ProductsCheckoutView,
)

app_name = "orders"

router = SimpleRouter()
router.register(r"", OrderViewSet, basename="order")

urlpatterns = [
    path("cart/<uuid:cart_id>/<int:address_id>/", CartCheckoutView.as_view(), name="checkout-cart"),
    path("product/<int:product_id>/<int:address_id>/", ProductCheckoutView.as_view(), name="checkout-product"),
    path("products/<int:address_id>/", ProductsCheckoutView.as_view(), name="checkout-products"),
    path("payment/<str:unique_payment_id>/", OrderByPaymentIdView.as_view(), name="order-by-payment-id"),
    path("", include(router.urls)),
]
