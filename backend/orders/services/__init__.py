"""
Orders services package.

- OrderService: checkout pipeline, refunds, cancellation, capture, status updates
- OrderStateMachine: compare-and-swap status transitions shared with the webhooks
"""

from .order_service import CheckoutOutcome, OrderService
from .state_machine import OrderStateMachine

__all__ = [
    'CheckoutOutcome',
    'OrderService',
    'OrderStateMachine',
]
