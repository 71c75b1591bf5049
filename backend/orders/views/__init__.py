"""
Orders views package - modular view layer with mixins.
"""

from .checkout_views import (
    CartCheckoutView,
    OrderByPaymentIdView,
    ProductCheckoutView,
    ProductsCheckoutView,
)
from .order_viewset import OrderViewSet

__all__ = [
    'CartCheckoutView',
    'OrderByPaymentIdView',
    'OrderViewSet',
    'ProductCheckoutView',
    'ProductsCheckoutView',
]
