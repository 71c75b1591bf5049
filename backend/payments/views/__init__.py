"""
Payments views package.
"""

from .config import (
    ActivePaymentMethodsView,
    PaymentMethodAdminViewSet,
    PaymobConfigView,
    StripeConfigView,
)
from .webhooks import PaymobWebhookView, StripeWebhookView

__all__ = [
    'ActivePaymentMethodsView',
    'PaymentMethodAdminViewSet',
    'PaymobConfigView',
    'StripeConfigView',
    'PaymobWebhookView',
    'StripeWebhookView',
]
