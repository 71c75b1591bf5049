from django.apps import AppConfig
from django.conf import settings


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        import stripe

        stripe.api_key = settings.STRIPE_SECRET_KEY
        # Bound every Stripe call by the same timeout used for Paymob.
        stripe.default_http_client = stripe.RequestsClient(timeout=settings.PAYMENT_GATEWAY_TIMEOUT)
