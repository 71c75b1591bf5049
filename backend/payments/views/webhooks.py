"""
Webhook views for payment providers.

Both endpoints are unauthenticated and CSRF-exempt; trust comes from the
provider signature. A processing error answers 500 so the provider retries.
"""

import json
import logging

import stripe
from django.conf import settings
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from ..webhooks import PaymobWebhookReconciler, StripeWebhookReconciler
from .base import BasePaymentView

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class StripeWebhookView(BasePaymentView):
    """
    Stripe webhook view to handle asynchronous checkout events.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        endpoint_secret = settings.STRIPE_WEBHOOK_SECRET

        try:
            event = stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
        except ValueError as e:
            # Invalid payload
            logger.error(f"Stripe webhook: Invalid payload - {e}")
            return Response({"received": False, "message": "Invalid payload"}, status=status.HTTP_400_BAD_REQUEST)
        except stripe.SignatureVerificationError as e:
            # Invalid signature
            logger.error(f"Stripe webhook: Invalid signature - {e}")
            return Response({"received": False, "message": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = StripeWebhookReconciler.handle_event(event)
        except Exception:
            logger.exception(f"Stripe webhook: failed to process {event.get('type')} event {event.get('id')}")
            return Response({"received": False}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        logger.info(f"Stripe webhook {event.get('type')}: {result.message}")
        return Response({"received": True}, status=status.HTTP_200_OK)


@method_decorator(csrf_exempt, name="dispatch")
class PaymobWebhookView(BasePaymentView):
    """
    Paymob transaction processed callback. The HMAC arrives either as the
    ``hmac`` query parameter or as a body field.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        try:
            payload = json.loads(request.body or b"{}")
        except ValueError:
            logger.error("Paymob webhook: Invalid JSON payload")
            return Response({"received": False, "message": "Invalid payload"}, status=status.HTTP_400_BAD_REQUEST)

        received_hmac = request.query_params.get("hmac") or (payload.get("hmac") if isinstance(payload, dict) else None)

        try:
            result = PaymobWebhookReconciler.handle_callback(payload, received_hmac)
        except Exception:
            logger.exception("Paymob webhook: failed to process callback")
            return Response({"received": False}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        if not result.success:
            return Response({"received": False, "message": result.message}, status=result.status_code)

        logger.info(f"Paymob webhook: {result.message}")
        return Response({"received": True}, status=status.HTTP_200_OK)
