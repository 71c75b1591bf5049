from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        """Make sure the gateway SDK never runs without its key in place."""
        from django.conf import settings

        if not settings.STRIPE_SECRET_KEY:
            logger.warning("STRIPE_SECRET_KEY is not set; card checkout will fail until it is configured")
        if not settings.PAYMOB_SECRET_KEY:
            logger.warning("PAYMOB_SECRET_KEY is not set; Paymob checkout will fail until it is configured")
