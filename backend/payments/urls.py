from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    ActivePaymentMethodsView,
    PaymentMethodAdminViewSet,
    PaymobConfigView,
    PaymobWebhookView,
    StripeConfigView,
    StripeWebhookView,
)

app_name = "payments"

router = DefaultRouter()
router.register(r"admin/methods", PaymentMethodAdminViewSet, basename="payment-method-admin")

urlpatterns = [
    path("webhooks/stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("webhooks/paymob/", PaymobWebhookView.as_view(), name="paymob-webhook"),
    path("methods/", ActivePaymentMethodsView.as_view(), name="active-methods"),
    path("config/stripe/", StripeConfigView.as_view(), name="stripe-config"),
    path("config/paymob/", PaymobConfigView.as_view(), name="paymob-config"),
    path("", include(router.urls)),
]
