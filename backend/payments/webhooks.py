"""
Reconciles provider callbacks with local orders.

Both providers funnel into ``OrderService.complete_payment`` /
``OrderService.fail_payment`` (and ``record_authorization`` for Paymob
auth-only transactions), which only move an order that is still Pending.
Redelivered or out-of-order events therefore acknowledge without changing
anything.
"""

from typing import Any, Dict, Optional
import uuid
import logging

from core_backend.results import ErrorKind, ServiceResult
from orders.models import Order
from orders.services import OrderService
from .paymob import verify_hmac

logger = logging.getLogger(__name__)

STRIPE_PAID_EVENTS = (
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
)
STRIPE_FAILED_SESSION_EVENTS = (
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
)
STRIPE_FAILED_INTENT_EVENTS = ("payment_intent.payment_failed",)


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _dig(data, *path):
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class StripeWebhookReconciler:
    @staticmethod
    def find_order(obj: Dict[str, Any]) -> Optional[Order]:
        metadata = obj.get("metadata") or {}
        order_id = metadata.get("orderId") or obj.get("client_reference_id")
        if order_id:
            try:
                order = Order.objects.filter(pk=uuid.UUID(str(order_id))).first()
            except ValueError:
                logger.warning(f"Stripe webhook: malformed order id {order_id!r}")
                order = None
            if order is not None:
                return order
        if str(obj.get("id", "")).startswith("cs_"):
            return Order.objects.filter(stripe_session_id=obj["id"]).first()
        return None

    @staticmethod
    def handle_event(event) -> ServiceResult:
        event_type = event["type"]
        obj = event["data"]["object"]

        if event_type not in STRIPE_PAID_EVENTS + STRIPE_FAILED_SESSION_EVENTS + STRIPE_FAILED_INTENT_EVENTS:
            logger.info(f"Stripe webhook: ignoring event type {event_type}")
            return ServiceResult.ok(message="Event ignored")

        order = StripeWebhookReconciler.find_order(obj)
        if order is None:
            logger.warning(f"Stripe webhook: no order for {event_type} ({obj.get('id')})")
            return ServiceResult.ok(message="Order not found")

        if event_type in STRIPE_PAID_EVENTS:
            if obj.get("payment_status") != "paid":
                logger.info(f"Order {order.id}: {event_type} with payment_status {obj.get('payment_status')}, waiting")
                return ServiceResult.ok(message="Payment not yet settled")
            fields = {"provider_payload": dict(obj)}
            if obj.get("payment_intent"):
                fields["stripe_payment_intent_id"] = obj["payment_intent"]
            OrderService.complete_payment(order, "stripe webhook", **fields)
            return ServiceResult.ok(message="Payment completed")

        if event_type in STRIPE_FAILED_SESSION_EVENTS:
            reason = "Checkout session expired" if event_type.endswith("expired") else "Payment failed"
        else:
            reason = _dig(obj, "last_payment_error", "message") or "Payment failed"
        OrderService.fail_payment(order, "stripe webhook", reason, provider_payload=dict(obj))
        return ServiceResult.ok(message="Payment failed")


class PaymobWebhookReconciler:
    @staticmethod
    def correlation_id(obj: Dict[str, Any]) -> Optional[str]:
        for candidate in (
            obj.get("merchant_order_id"),
            obj.get("special_reference"),
            _dig(obj, "payment_key_claims", "extra", "ee"),
            _dig(obj, "order", "merchant_order_id"),
        ):
            if candidate:
                return str(candidate)
        return None

    @staticmethod
    def handle_callback(payload: Dict[str, Any], received_hmac: Optional[str]) -> ServiceResult:
        if not isinstance(payload, dict):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Invalid webhook payload")

        # TOKEN callbacks are signed over a different field set and never move an order.
        if payload.get("type") != "TRANSACTION":
            logger.info(f"Paymob webhook: ignoring callback type {payload.get('type')}")
            return ServiceResult.ok(message="Callback ignored")

        obj = payload.get("obj")
        if not isinstance(obj, dict):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Invalid webhook payload")

        if not verify_hmac(obj, received_hmac):
            logger.warning(f"Paymob webhook: HMAC mismatch for transaction {obj.get('id')}")
            return ServiceResult.fail(ErrorKind.SIGNATURE, "Invalid HMAC signature")

        uid = PaymobWebhookReconciler.correlation_id(obj)
        order = Order.objects.filter(unique_payment_id=uid).first() if uid else None
        if order is None:
            logger.warning(f"Paymob webhook: no order for reference {uid} (transaction {obj.get('id')})")
            return ServiceResult.ok(message="Order not found")

        if _truthy(obj.get("pending")):
            logger.info(f"Order {order.id}: Paymob transaction {obj.get('id')} still pending")
            return ServiceResult.ok(message="Payment pending")

        fields = {"provider_payload": payload}
        if obj.get("id") is not None:
            fields["paymob_transaction_id"] = str(obj["id"])

        if _truthy(obj.get("success")):
            if _truthy(obj.get("is_auth")) and not _truthy(obj.get("is_capture")):
                OrderService.record_authorization(order, "paymob webhook", **fields)
                return ServiceResult.ok(message="Payment authorized")
            OrderService.complete_payment(order, "paymob webhook", is_authorized=False, **fields)
            return ServiceResult.ok(message="Payment completed")

        reason = _dig(obj, "data", "message") or "Payment declined"
        OrderService.fail_payment(order, "paymob webhook", str(reason), **fields)
        return ServiceResult.ok(message="Payment failed")
