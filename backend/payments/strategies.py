from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

import stripe
from django.conf import settings

from core_backend.results import ErrorKind, ServiceResult
from orders.models import Order
from .models import PaymentProvider, PaymobConfig, StripeConfig
from .money import to_minor
from .paymob import (
    MAX_EXPIRATION_SECONDS,
    PaymobAPIError,
    PaymobClient,
    generate_unique_payment_id,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentContext:
    """Who is paying and with what; built once by the order pipeline."""

    user: Any
    method_name: str

    @property
    def customer_email(self) -> str:
        return getattr(self.user, "email", "") or ""

    @property
    def customer_name(self) -> str:
        return getattr(self.user, "name", "") or self.customer_email

    @property
    def phone_number(self) -> str:
        return getattr(self.user, "phone_number", "") or ""


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    provider: str
    redirect_url: Optional[str] = None
    correlation_id: Optional[str] = None
    message: str = ""
    error: Optional[ErrorKind] = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: Optional[str] = None
    amount: Decimal = Decimal("0.00")
    status: Optional[str] = None
    message: str = ""
    error: Optional[ErrorKind] = None
    payload: Dict[str, Any] = field(default_factory=dict)


def refund_target_status(order: Order, amount: Decimal) -> str:
    if amount >= order.total_price:
        return Order.PaymentStatus.REFUNDED
    return Order.PaymentStatus.PARTIALLY_REFUNDED


class PaymentStrategy(ABC):
    """
    The Abstract Base Class for a payment strategy.
    One strategy per provider; the factory maps every payment method to one.
    """

    provider_name: str = ""

    @abstractmethod
    def create_payment(self, order: Order, context: PaymentContext) -> PaymentResult:
        """
        Start the payment for a freshly persisted order. Correlation ids are
        stored on the order; status transitions are left to the caller.
        """

    @abstractmethod
    def refund(self, order: Order, amount: Optional[Decimal] = None, reason: Optional[str] = None) -> RefundResult:
        pass

    @abstractmethod
    def void(self, order: Order) -> ServiceResult:
        pass

    @abstractmethod
    def capture(self, order: Order, amount: Optional[Decimal] = None) -> ServiceResult:
        pass

    def _refund_policy(self, config, order: Order, amount: Decimal) -> Optional[RefundResult]:
        if config is None:
            return None
        verdict = config.can_refund(order.created_at, amount, order.total_price)
        if verdict.success:
            return None
        return RefundResult(success=False, amount=amount, message=verdict.message, error=verdict.error)


class StripeCheckoutStrategy(PaymentStrategy):
    """
    Card payments through a Stripe-hosted checkout session. The session is
    created here; completion arrives later through the webhook.
    """

    provider_name = PaymentProvider.STRIPE

    def __init__(self):
        stripe.api_key = settings.STRIPE_SECRET_KEY

    def _line_items(self, order: Order, currency: str):
        line_items = [
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": item.product.name},
                    "unit_amount": to_minor(currency, item.unit_price),
                },
                "quantity": item.quantity,
            }
            for item in order.items.select_related("product")
        ]
        if order.delivery_fee > 0:
            line_items.append(
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": "Delivery Fee"},
                        "unit_amount": to_minor(currency, order.delivery_fee),
                    },
                    "quantity": 1,
                }
            )
        return line_items

    def create_payment(self, order: Order, context: PaymentContext) -> PaymentResult:
        config = StripeConfig.load() or StripeConfig()
        currency = config.currency.lower()
        metadata = {"orderId": str(order.id), "userId": str(order.user_id)}

        options = config.checkout_session_options(customer_email=context.customer_email)
        options["payment_intent_data"] = {**options.get("payment_intent_data", {}), "metadata": metadata}

        success_url = config.success_url or (
            f"{settings.FRONTEND_URL}/payment/success?session_id={{CHECKOUT_SESSION_ID}}&order_id={order.id}"
        )
        cancel_url = config.cancel_url or f"{settings.FRONTEND_URL}/payment/cancel?order_id={order.id}"

        try:
            if order.coupon_discount > 0:
                coupon = stripe.Coupon.create(
                    amount_off=to_minor(currency, order.coupon_discount),
                    currency=currency,
                    duration="once",
                    name=order.coupon.code if order.coupon_id else "Discount",
                    max_redemptions=1,
                )
                options["discounts"] = [{"coupon": coupon.id}]
                # Stripe rejects discounts together with promotion codes.
                options.pop("allow_promotion_codes", None)

            session = stripe.checkout.Session.create(
                line_items=self._line_items(order, currency),
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=str(order.id),
                metadata=metadata,
                **options,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed for order {order.id}: {e}")
            return PaymentResult(
                success=False,
                provider=self.provider_name,
                message=getattr(e, "user_message", None) or "Failed to create Stripe checkout session",
                error=ErrorKind.GATEWAY,
            )

        order.stripe_session_id = session.id
        order.save(update_fields=["stripe_session_id", "updated_at"])
        logger.info(f"Stripe checkout session {session.id} created for order {order.id}")

        return PaymentResult(
            success=True,
            provider=self.provider_name,
            redirect_url=session.url,
            correlation_id=session.id,
            message="Redirect to Stripe checkout to complete payment",
        )

    def _payment_intent_id(self, order: Order) -> Optional[str]:
        if order.stripe_payment_intent_id:
            return order.stripe_payment_intent_id
        if not order.stripe_session_id:
            return None
        session = stripe.checkout.Session.retrieve(order.stripe_session_id)
        payment_intent = session.payment_intent
        if payment_intent and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id
        return payment_intent

    def refund(self, order: Order, amount: Optional[Decimal] = None, reason: Optional[str] = None) -> RefundResult:
        config = StripeConfig.load()
        amount = Decimal(amount) if amount is not None else order.total_price

        denied = self._refund_policy(config, order, amount)
        if denied:
            return denied

        if reason not in StripeConfig.REFUND_REASONS:
            reason = "requested_by_customer"

        currency = (config.currency if config else "usd").lower()
        try:
            payment_intent = self._payment_intent_id(order)
            if not payment_intent:
                return RefundResult(
                    success=False, amount=amount,
                    message="No payment found for this order", error=ErrorKind.POLICY,
                )
            refund = stripe.Refund.create(
                payment_intent=payment_intent,
                amount=to_minor(currency, amount),
                reason=reason,
                metadata={"orderId": str(order.id)},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund failed for order {order.id}: {e}")
            return RefundResult(
                success=False, amount=amount, message=f"Refund failed: {e}", error=ErrorKind.GATEWAY
            )

        logger.info(f"Stripe refund {refund.id} of {amount} issued for order {order.id}")
        return RefundResult(
            success=True,
            refund_id=refund.id,
            amount=amount,
            status=refund_target_status(order, amount),
            message="Refund processed successfully",
            payload={"payment_intent": payment_intent, "refund_status": getattr(refund, "status", None)},
        )

    def void(self, order: Order) -> ServiceResult:
        if not order.stripe_session_id:
            return ServiceResult.ok(message="No checkout session to void")
        try:
            stripe.checkout.Session.expire(order.stripe_session_id)
        except stripe.InvalidRequestError as e:
            # Already expired, already completed or unknown: nothing left to stop.
            logger.info(f"Stripe session {order.stripe_session_id} not expired for order {order.id}: {e}")
            return ServiceResult.ok(message="Checkout session already closed")
        except stripe.StripeError as e:
            logger.error(f"Stripe session expiry failed for order {order.id}: {e}")
            return ServiceResult.fail(ErrorKind.GATEWAY, f"Failed to void payment: {e}")
        logger.info(f"Stripe session {order.stripe_session_id} expired for order {order.id}")
        return ServiceResult.ok(message="Checkout session expired")

    def capture(self, order: Order, amount: Optional[Decimal] = None) -> ServiceResult:
        config = StripeConfig.load()
        currency = (config.currency if config else "usd").lower()
        try:
            payment_intent_id = self._payment_intent_id(order)
            if not payment_intent_id:
                return ServiceResult.fail(ErrorKind.POLICY, "No payment found for this order")
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
            if intent.status != "requires_capture":
                return ServiceResult.fail(ErrorKind.POLICY, "Payment is not awaiting capture")
            params = {}
            if amount is not None:
                params["amount_to_capture"] = to_minor(currency, amount)
            intent = stripe.PaymentIntent.capture(payment_intent_id, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe capture failed for order {order.id}: {e}")
            return ServiceResult.fail(ErrorKind.GATEWAY, f"Capture failed: {e}")

        logger.info(f"Stripe payment intent {payment_intent_id} captured for order {order.id}")
        return ServiceResult.ok(
            {"paymentIntentId": payment_intent_id, "status": intent.status},
            message="Payment captured successfully",
        )


class PaymobStrategy(PaymentStrategy):
    """
    Paymob unified checkout for cards, wallets, kiosk, installments and ValU.
    The order is correlated through an 8-character ``unique_payment_id``.
    """

    provider_name = PaymentProvider.PAYMOB
    MAX_ID_ATTEMPTS = 10

    def __init__(self, client: Optional[PaymobClient] = None):
        self.client = client or PaymobClient()

    @classmethod
    def mint_unique_payment_id(cls) -> str:
        for _ in range(cls.MAX_ID_ATTEMPTS):
            candidate = generate_unique_payment_id()
            if not Order.objects.filter(unique_payment_id=candidate).exists():
                return candidate
        raise RuntimeError("Could not generate a unique payment id")

    def _items(self, order: Order, amount_cents: int, currency: str, uid: str):
        if order.coupon_discount > 0:
            # Per-line amounts would no longer add up to the discounted total.
            return [
                {
                    "name": "Order Payment",
                    "amount": amount_cents,
                    "description": f"Payment for order {uid}",
                    "quantity": 1,
                }
            ]
        items = [
            {
                "name": item.product.name,
                "amount": to_minor(currency, item.unit_price),
                "description": (item.product.description or "")[:50],
                "quantity": item.quantity,
            }
            for item in order.items.select_related("product")
        ]
        if order.delivery_fee > 0:
            items.append(
                {
                    "name": "Delivery Fee",
                    "amount": to_minor(currency, order.delivery_fee),
                    "description": f"Delivery to {order.city or 'location'}",
                    "quantity": 1,
                }
            )
        return items

    def build_intention_payload(self, order: Order, context: PaymentContext, config: PaymobConfig, uid: str):
        currency = config.currency
        amount_cents = to_minor(currency, order.total_price)

        full_name = context.customer_name.strip()
        parts = full_name.split(" ")
        first_name = parts[0] or full_name or "NA"
        last_name = " ".join(parts[1:]) or first_name

        redirect_url = config.custom_redirect_url or f"{settings.FRONTEND_URL}/payment-redirect?orderId={uid}"
        webhook_url = config.custom_webhook_url or f"{settings.BACKEND_BASE_URL}/api/payments/webhooks/paymob/"

        address = order.address
        return {
            "amount": amount_cents,
            "currency": currency,
            "payment_methods": [config.integration_name(context.method_name)],
            "items": self._items(order, amount_cents, currency, uid),
            "billing_data": {
                "apartment": str(address.flat_number) if address and address.flat_number else "NA",
                "first_name": first_name,
                "last_name": last_name,
                "street": address.street if address and address.street else "NA",
                "building": str(address.building_number) if address and address.building_number else "NA",
                "phone_number": context.phone_number or "+20",
                "country": "EG",
                "email": context.customer_email,
                "floor": "NA",
                "state": order.governorate or "NA",
                "city": order.city or "NA",
            },
            "customer": {
                "first_name": first_name,
                "last_name": last_name,
                "email": context.customer_email,
                "extras": {"re": uid},
            },
            "extras": {"ee": uid, "merchant_order_id": uid},
            "special_reference": uid,
            "redirection_url": redirect_url,
            "notification_url": webhook_url,
            "expiration": min(config.expiration_seconds(context.method_name), MAX_EXPIRATION_SECONDS),
        }

    def create_payment(self, order: Order, context: PaymentContext) -> PaymentResult:
        config = PaymobConfig.load() or PaymobConfig()

        bounds = config.validate_order_amount(order.total_price, context.method_name)
        if not bounds.success:
            return PaymentResult(
                success=False, provider=self.provider_name, message=bounds.message, error=bounds.error
            )

        uid = self.mint_unique_payment_id()
        order.unique_payment_id = uid
        order.save(update_fields=["unique_payment_id", "updated_at"])

        payload = self.build_intention_payload(order, context, config, uid)
        try:
            data = self.client.create_intention(payload)
        except PaymobAPIError as e:
            logger.error(f"Paymob intention failed for order {order.id} ({uid}): {e}")
            return PaymentResult(
                success=False,
                provider=self.provider_name,
                correlation_id=uid,
                message=f"Failed to create Paymob payment: {e}",
                error=ErrorKind.GATEWAY,
            )

        order.paymob_intention_id = str(data.get("id") or "")
        order.provider_payload = data
        order.save(update_fields=["paymob_intention_id", "provider_payload", "updated_at"])
        logger.info(f"Paymob intention {order.paymob_intention_id} created for order {order.id} ({uid})")

        return PaymentResult(
            success=True,
            provider=self.provider_name,
            redirect_url=self.client.checkout_url(data.get("client_secret", "")),
            correlation_id=uid,
            message="Redirect to Paymob checkout to complete payment",
        )

    def refund(self, order: Order, amount: Optional[Decimal] = None, reason: Optional[str] = None) -> RefundResult:
        config = PaymobConfig.load()
        amount = Decimal(amount) if amount is not None else order.total_price

        denied = self._refund_policy(config, order, amount)
        if denied:
            return denied
        if not order.paymob_transaction_id:
            return RefundResult(
                success=False, amount=amount,
                message="No Paymob transaction found for this order", error=ErrorKind.POLICY,
            )

        currency = config.currency if config else "EGP"
        try:
            data = self.client.refund(order.paymob_transaction_id, to_minor(currency, amount))
        except PaymobAPIError as e:
            logger.error(f"Paymob refund failed for order {order.id}: {e}")
            return RefundResult(
                success=False, amount=amount, message=f"Refund failed: {e}", error=ErrorKind.GATEWAY
            )

        logger.info(f"Paymob refund of {amount} issued for order {order.id}")
        return RefundResult(
            success=True,
            refund_id=str(data.get("id") or ""),
            amount=amount,
            status=refund_target_status(order, amount),
            message="Refund processed successfully",
            payload=data,
        )

    def void(self, order: Order) -> ServiceResult:
        if not order.paymob_transaction_id:
            # Intention never paid; it lapses on its own.
            return ServiceResult.ok(message="No transaction to void")

        config = PaymobConfig.load()
        if config is not None and not config.allow_void_transaction:
            return ServiceResult.fail(ErrorKind.POLICY, "Voiding transactions is disabled")

        try:
            self.client.void(order.paymob_transaction_id)
        except PaymobAPIError as e:
            logger.error(f"Paymob void failed for order {order.id}: {e}")
            return ServiceResult.fail(ErrorKind.GATEWAY, f"Failed to void payment: {e}")
        logger.info(f"Paymob transaction {order.paymob_transaction_id} voided for order {order.id}")
        return ServiceResult.ok(message="Transaction voided")

    def capture(self, order: Order, amount: Optional[Decimal] = None) -> ServiceResult:
        if (
            order.payment_status != Order.PaymentStatus.PENDING
            or not order.is_authorized
            or not order.paymob_transaction_id
        ):
            return ServiceResult.fail(ErrorKind.POLICY, "Payment is not awaiting capture")

        config = PaymobConfig.load()
        currency = config.currency if config else "EGP"
        amount = Decimal(amount) if amount is not None else order.total_price
        try:
            data = self.client.capture(order.paymob_transaction_id, to_minor(currency, amount))
        except PaymobAPIError as e:
            logger.error(f"Paymob capture failed for order {order.id}: {e}")
            return ServiceResult.fail(ErrorKind.GATEWAY, f"Capture failed: {e}")

        logger.info(f"Paymob transaction {order.paymob_transaction_id} captured for order {order.id}")
        return ServiceResult.ok(
            {"transactionId": order.paymob_transaction_id, "success": bool(data.get("success", True))},
            message="Payment captured successfully",
        )


class CashOnDeliveryStrategy(PaymentStrategy):
    """
    Cash collected by the courier or at the counter. No external calls.
    """

    provider_name = PaymentProvider.INTERNAL

    def create_payment(self, order: Order, context: PaymentContext) -> PaymentResult:
        return PaymentResult(
            success=True,
            provider=self.provider_name,
            message="Order placed successfully. Pay on delivery.",
        )

    def refund(self, order: Order, amount: Optional[Decimal] = None, reason: Optional[str] = None) -> RefundResult:
        amount = Decimal(amount) if amount is not None else order.total_price
        return RefundResult(
            success=True,
            amount=amount,
            status=refund_target_status(order, amount),
            message="Cash refund recorded",
        )

    def void(self, order: Order) -> ServiceResult:
        return ServiceResult.ok(message="Nothing to void for cash orders")

    def capture(self, order: Order, amount: Optional[Decimal] = None) -> ServiceResult:
        return ServiceResult.ok(message="Nothing to capture for cash orders")
