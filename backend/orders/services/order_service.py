from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from django.db import transaction
from django.utils import timezone

from cart.models import Cart
from cart.services import CartService
from core_backend.results import ErrorKind, ServiceResult
from delivery.services import DeliveryFeeResolver
from discounts.services import CouponService, PricingService
from orders import qr
from orders.models import Order, OrderItem
from payments.factories import PaymentStrategyFactory
from payments.models import PaymentProvider
from payments.services import PaymentMethodRegistry
from payments.strategies import PaymentContext, PaymentResult, RefundResult
from reservations.models import Reservation
from reservations.services import ReservationService
from users.models import Address
from .state_machine import OrderStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutOutcome:
    order: Order
    payment: PaymentResult


def _is_admin(user) -> bool:
    return bool(user is not None and getattr(user, "is_admin_role", False))


class OrderService:
    """
    Turns a checkout request into a persisted, priced order and hands it to
    the payment strategy for its method.

    Validation short-circuits in a fixed order and nothing is written until
    every check has passed. Status changes after creation go through
    ``OrderStateMachine`` so the checkout result and the webhooks can race
    safely.
    """

    # --- Creation pipeline ---

    @staticmethod
    def validate_place_type(place_type, table_id=None, date=None, slot=None, governorate=None, city=None) -> ServiceResult:
        if place_type not in Order.PlaceType.values:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Invalid place type. Must be Online, In-Place, or Takeaway"
            )
        if place_type == Order.PlaceType.ONLINE and (not governorate or not city):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Governorate and city are required for online orders")
        if place_type == Order.PlaceType.IN_PLACE:
            if not table_id:
                return ServiceResult.fail(ErrorKind.VALIDATION, "Table ID is required for in-place orders")
            if not date or not slot:
                return ServiceResult.fail(
                    ErrorKind.VALIDATION, "Date and time slot are required for in-place orders"
                )
        elif table_id:
            return ServiceResult.fail(ErrorKind.VALIDATION, "tableId is only allowed for In-Place orders")
        return ServiceResult.ok()

    @staticmethod
    def collect_lines(user, source, cart_id=None, product_id=None, quantity=None, products=None) -> ServiceResult:
        """Returns ``(lines, cart)``; ``cart`` is None unless ordering from the cart."""
        if source == Order.Source.CART:
            cart = Cart.objects.filter(pk=cart_id, owner=user).select_related("coupon").first()
            if cart is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, "Cart not found")
            lines = CartService.get_lines(cart)
            if not lines:
                return ServiceResult.fail(ErrorKind.VALIDATION, "Cart is empty")
            return ServiceResult.ok((lines, cart))

        if source == Order.Source.PRODUCT:
            items = [{"productId": product_id, "quantity": 1 if quantity is None else quantity}]
        else:
            items = products
        resolved = PricingService.resolve_products(items)
        if not resolved.success:
            return resolved
        return ServiceResult.ok((resolved.data, None))

    @staticmethod
    def create_order(
        user,
        source: str,
        address_id,
        place_type: str,
        payment_method: str,
        table_id=None,
        date: Optional[str] = None,
        slot: Optional[str] = None,
        governorate: Optional[str] = None,
        city: Optional[str] = None,
        coupon_code: Optional[str] = None,
        cart_id=None,
        product_id=None,
        quantity=None,
        products=None,
    ) -> ServiceResult:
        if user is None or not getattr(user, "is_authenticated", False):
            return ServiceResult.fail(ErrorKind.UNAUTHENTICATED, "User not authenticated")

        structure = OrderService.validate_place_type(place_type, table_id, date, slot, governorate, city)
        if not structure.success:
            return structure

        if not PaymentMethodRegistry.is_known(payment_method):
            return ServiceResult.fail(ErrorKind.UNSUPPORTED_METHOD, f"Unsupported payment method: {payment_method}")
        if not PaymentMethodRegistry.is_active(payment_method):
            return PaymentMethodRegistry.resolve(payment_method)

        table = reservation_date = None
        if place_type == Order.PlaceType.IN_PLACE:
            slot_check = ReservationService.validate_in_place(table_id, date, slot)
            if not slot_check.success:
                return slot_check
            table, reservation_date = slot_check.data

        resolved = PaymentMethodRegistry.resolve(payment_method)
        if not resolved.success:
            return resolved
        method = resolved.data
        ready = PaymentMethodRegistry.ensure_gateway_ready(method)
        if not ready.success:
            return ready

        address = Address.objects.filter(pk=address_id, owner=user).first()
        if address is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Address not found")

        collected = OrderService.collect_lines(user, source, cart_id, product_id, quantity, products)
        if not collected.success:
            return collected
        lines, cart = collected.data

        if coupon_code:
            coupon = CouponService.get_by_code(coupon_code)
            if coupon is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, "Invalid coupon code")
            priced = PricingService.price_lines(lines, coupon=coupon, user=user)
        else:
            stored_coupon = cart.coupon if cart is not None else None
            priced = PricingService.price_lines(lines, coupon=stored_coupon, user=user, strict_coupon=False)
        if not priced.success:
            return priced
        summary = priced.data

        quote = DeliveryFeeResolver.resolve(
            place_type, governorate, city, summary.discounted_subtotal, summary.free_delivery
        )
        if not quote.success:
            return quote
        delivery_fee = quote.data.fee
        total = summary.total + delivery_fee

        bounds_config = PaymentMethodRegistry.bounds_config_for(method)
        if bounds_config is not None:
            bounds = bounds_config.validate_order_amount(total, method.name)
            if not bounds.success:
                return bounds

        with transaction.atomic():
            order = Order.objects.create(
                user=user,
                address=address,
                source=source,
                place_type=place_type,
                table=table,
                governorate=(governorate or "") if place_type == Order.PlaceType.ONLINE else "",
                city=(city or "") if place_type == Order.PlaceType.ONLINE else "",
                subtotal=summary.subtotal,
                product_discount=summary.product_discount,
                coupon_discount=summary.coupon_discount,
                delivery_fee=delivery_fee,
                total_price=total,
                total_quantity=summary.total_quantity,
                coupon=summary.coupon,
                payment_method=method,
            )
            OrderItem.objects.bulk_create(
                [
                    OrderItem(
                        order=order,
                        product=line.product,
                        quantity=line.quantity,
                        unit_price=line.price.unit_price,
                        original_price=line.price.original_price,
                        discount_type=line.price.discount_type,
                        discount_percentage=line.price.discount_percentage,
                    )
                    for line in summary.lines
                ]
            )

            if table is not None:
                booking = ReservationService.create_reservation(
                    user, table, reservation_date, order=order, status=Reservation.Status.CONFIRMED
                )
                if not booking.success:
                    transaction.set_rollback(True)
                    return booking

        logger.info(
            f"Order {order.id} created: {place_type}, {method.name}, total {order.total_price} "
            f"({len(summary.lines)} lines, source {source})"
        )

        strategy = PaymentStrategyFactory.get_strategy(method)
        context = PaymentContext(user=user, method_name=method.name)
        try:
            payment = strategy.create_payment(order, context)
        except Exception as e:
            logger.exception(f"Order {order.id}: payment initiation raised: {e}")
            payment = PaymentResult(
                success=False,
                provider=method.provider,
                message="Payment initiation failed",
                error=ErrorKind.GATEWAY,
            )

        if not payment.success:
            OrderService.fail_payment(order, "checkout", payment.message)
            error = payment.error or ErrorKind.GATEWAY
            return ServiceResult.fail(
                error, payment.message or "Payment initiation failed", data={"orderId": str(order.id)}
            )

        if method.provider == PaymentProvider.INTERNAL:
            OrderService.complete_payment(order, "checkout")

        return ServiceResult.ok(
            CheckoutOutcome(order=order, payment=payment),
            message=payment.message or "Order created successfully",
            status_code=201,
        )

    # --- Payment outcomes (shared by checkout and webhooks) ---

    @staticmethod
    def complete_payment(order: Order, source: str, **fields) -> bool:
        moved = OrderStateMachine.transition(
            order,
            [Order.PaymentStatus.PENDING],
            Order.PaymentStatus.COMPLETED,
            Order.OrderStatus.PAID,
            source=source,
            **fields,
        )
        if moved:
            OrderService.run_post_payment_effects(order)
        return moved

    @staticmethod
    def fail_payment(order: Order, source: str, reason: str = "", **fields) -> bool:
        moved = OrderStateMachine.transition(
            order,
            [Order.PaymentStatus.PENDING],
            Order.PaymentStatus.FAILED,
            Order.OrderStatus.FAILED,
            source=source,
            failure_reason=(reason or "")[:500],
            **fields,
        )
        if moved:
            ReservationService.cancel_for_order(order)
        return moved

    @staticmethod
    def record_authorization(order: Order, source: str, **fields) -> bool:
        return OrderStateMachine.mark_authorized(order, source, **fields)

    @staticmethod
    def run_post_payment_effects(order: Order):
        """
        Pickup QR code, coupon redemption and cart clearing. None of them may
        undo a payment that has already been recorded, so failures are logged
        and swallowed here.
        """
        try:
            OrderService.issue_qr_code(order)
        except Exception as e:
            logger.error(f"Order {order.id}: failed to issue QR code: {e}")

        if order.coupon_id:
            try:
                CouponService.increment_usage(order.coupon, order.user)
            except Exception as e:
                logger.error(f"Order {order.id}: failed to record coupon usage: {e}")

        if order.source == Order.Source.CART:
            try:
                CartService.clear_cart_for_user(order.user_id)
            except Exception as e:
                logger.error(f"Order {order.id}: failed to clear cart for user {order.user_id}: {e}")

    @staticmethod
    def issue_qr_code(order: Order) -> str:
        """Sign the pickup payload once; a second paid transition keeps the first code."""
        payload = qr.build_payload(order)
        issued = Order.objects.filter(pk=order.pk, qr_code_data="").update(qr_code_data=payload)
        if issued:
            order.qr_code_data = payload
            logger.info(f"Order {order.id}: pickup QR code issued")
        else:
            order.refresh_from_db(fields=["qr_code_data"])
        return order.qr_code_data

    @staticmethod
    def verify_qr_code(payload: str) -> ServiceResult:
        if qr.parse_payload(payload) is None:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Invalid QR code")
        order = (
            Order.objects.select_related("payment_method", "user", "table")
            .filter(qr_code_data=payload.strip())
            .first()
        )
        if order is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
        return ServiceResult.ok(order, message="QR code verified")

    # --- Post-creation operations ---

    @staticmethod
    def get_order_for_user(order_id, user) -> ServiceResult:
        queryset = Order.objects.select_related("payment_method", "coupon", "table", "address")
        if not _is_admin(user):
            queryset = queryset.filter(user=user)
        order = queryset.filter(pk=order_id).first()
        if order is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
        return ServiceResult.ok(order)

    @staticmethod
    def get_order_by_payment_id(unique_payment_id: str, user) -> ServiceResult:
        queryset = Order.objects.select_related("payment_method")
        if not _is_admin(user):
            queryset = queryset.filter(user=user)
        order = queryset.filter(unique_payment_id=(unique_payment_id or "").upper()).first()
        if order is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
        return ServiceResult.ok(order)

    @staticmethod
    def _refund_not_claimed(order: Order) -> ServiceResult:
        if order.refund_status == Order.RefundStatus.PENDING:
            return ServiceResult.fail(ErrorKind.CONFLICT, "A refund is already in progress for this order")
        return ServiceResult.fail(
            ErrorKind.CONFLICT, f"Order status changed to {order.payment_status} while processing the request"
        )

    @staticmethod
    def _issue_refund(strategy, order: Order, amount, reason) -> RefundResult:
        try:
            return strategy.refund(order, amount, reason)
        except Exception as e:
            logger.exception(f"Order {order.id}: refund raised: {e}")
            return RefundResult(success=False, amount=amount, message="Refund failed", error=ErrorKind.GATEWAY)

    @staticmethod
    def refund_order(order: Order, amount=None, reason: Optional[str] = None, user=None) -> ServiceResult:
        """
        Refunds a completed order in full or in part.

        The refund is claimed on the row before the gateway is called, so
        two concurrent requests can never both send money back.
        """
        if user is not None and not _is_admin(user) and order.user_id != user.pk:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
        if order.payment_status != Order.PaymentStatus.COMPLETED:
            return ServiceResult.fail(ErrorKind.POLICY, "Only completed orders can be refunded")

        amount = order.total_price if amount is None else Decimal(amount)
        if amount <= 0:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Refund amount must be greater than zero")
        if amount > order.total_price:
            return ServiceResult.fail(ErrorKind.POLICY, "Refund amount cannot exceed order total")

        previous_refund_status = order.refund_status
        if not OrderStateMachine.claim_refund(order, [Order.PaymentStatus.COMPLETED]):
            return OrderService._refund_not_claimed(order)

        strategy = PaymentStrategyFactory.get_strategy(order.payment_method)
        refund = OrderService._issue_refund(strategy, order, amount, reason)
        if not refund.success:
            if refund.error == ErrorKind.GATEWAY:
                OrderStateMachine.release_refund(
                    order, Order.RefundStatus.FAILED, refund_reason=(reason or "")[:255]
                )
            else:
                OrderStateMachine.release_refund(order, previous_refund_status)
            return ServiceResult.fail(refund.error or ErrorKind.GATEWAY, refund.message)

        refund_fields = {
            "refund_id": refund.refund_id or None,
            "refund_amount": refund.amount,
            "refund_date": timezone.now(),
            "refund_reason": (reason or "")[:255],
        }
        moved = OrderStateMachine.transition(
            order,
            [Order.PaymentStatus.COMPLETED],
            refund.status,
            source="refund",
            refund_status=Order.RefundStatus.COMPLETED,
            **refund_fields,
        )
        if not moved:
            logger.error(
                f"Order {order.id}: refund {refund.refund_id} issued but order moved to {order.payment_status}"
            )
            OrderStateMachine.release_refund(order, Order.RefundStatus.COMPLETED, **refund_fields)
            return ServiceResult.fail(ErrorKind.CONFLICT, "Order status changed while processing the refund")

        return ServiceResult.ok(
            {
                "orderId": str(order.id),
                "refundId": refund.refund_id,
                "refundAmount": str(refund.amount),
                "paymentStatus": order.payment_status,
            },
            message=refund.message or "Refund processed successfully",
        )

    @staticmethod
    def cancel_order(order: Order, reason: Optional[str] = None, user=None) -> ServiceResult:
        if user is not None and not _is_admin(user) and order.user_id != user.pk:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Order not found")
        if order.is_terminal:
            status_label = (
                order.order_status if order.order_status == Order.OrderStatus.RECEIVED else order.payment_status
            )
            return ServiceResult.fail(ErrorKind.POLICY, f"Cannot cancel an order that is {status_label}")

        strategy = PaymentStrategyFactory.get_strategy(order.payment_method)
        provider = order.payment_method.provider
        config = PaymentMethodRegistry.config_for(provider)
        now = timezone.now()
        cancel_fields = {"cancellation_reason": (reason or "")[:255], "cancelled_at": now}
        target_payment_status = Order.PaymentStatus.CANCELLED
        claimed = False

        if order.payment_status == Order.PaymentStatus.PENDING:
            expected = [Order.PaymentStatus.PENDING]
            skip_void = provider == PaymentProvider.PAYMOB and config is not None and not config.auto_void_on_cancellation
            if not skip_void:
                voided = strategy.void(order)
                if not voided.success:
                    return voided

        else:
            # Paid orders hold the refund lock so a concurrent refund cannot run alongside.
            expected = [Order.PaymentStatus.COMPLETED, Order.PaymentStatus.PARTIALLY_REFUNDED]
            previous_refund_status = order.refund_status
            if not OrderStateMachine.claim_refund(order, expected, source="cancel"):
                return OrderService._refund_not_claimed(order)
            claimed = True
            cancel_fields["refund_status"] = previous_refund_status

            if provider != PaymentProvider.INTERNAL and config is not None and config.auto_refund_on_cancellation:
                remaining = order.total_price - (order.refund_amount or Decimal("0.00"))
                refund = OrderService._issue_refund(strategy, order, remaining, "requested_by_customer")
                if not refund.success:
                    OrderStateMachine.release_refund(
                        order,
                        Order.RefundStatus.FAILED if refund.error == ErrorKind.GATEWAY else previous_refund_status,
                    )
                    return ServiceResult.fail(
                        refund.error or ErrorKind.GATEWAY, f"Cancellation refund failed: {refund.message}"
                    )
                target_payment_status = Order.PaymentStatus.REFUNDED
                cancel_fields.update(
                    refund_id=refund.refund_id or None,
                    refund_amount=order.total_price,
                    refund_date=now,
                    refund_reason="Order cancelled",
                    refund_status=Order.RefundStatus.COMPLETED,
                )

        moved = OrderStateMachine.transition(
            order,
            expected,
            target_payment_status,
            Order.OrderStatus.CANCELLED,
            source="cancel",
            **cancel_fields,
        )
        if not moved:
            if claimed:
                OrderStateMachine.release_refund(order, cancel_fields["refund_status"])
            return ServiceResult.fail(
                ErrorKind.CONFLICT, f"Order status changed to {order.payment_status} before it could be cancelled"
            )

        ReservationService.cancel_for_order(order)
        return ServiceResult.ok(order, message="Order cancelled successfully")

    @staticmethod
    def capture_payment(order: Order, amount=None) -> ServiceResult:
        if order.payment_status != Order.PaymentStatus.PENDING:
            return ServiceResult.fail(ErrorKind.POLICY, "Payment is not awaiting capture")
        if amount is not None:
            amount = Decimal(amount)
            if amount <= 0 or amount > order.total_price:
                return ServiceResult.fail(ErrorKind.VALIDATION, "Invalid capture amount")

        strategy = PaymentStrategyFactory.get_strategy(order.payment_method)
        result = strategy.capture(order, amount)
        if result.success:
            OrderService.complete_payment(order, "capture", is_authorized=False)
        return result

    @staticmethod
    def get_payment_status(order: Order) -> dict:
        return {
            "orderId": str(order.id),
            "paymentStatus": order.payment_status,
            "orderStatus": order.order_status,
            "provider": order.provider,
            "paymentMethod": order.payment_method.name,
            "totalPrice": str(order.total_price),
            "stripeSessionId": order.stripe_session_id,
            "stripePaymentIntentId": order.stripe_payment_intent_id,
            "uniquePaymentId": order.unique_payment_id,
            "paymobTransactionId": order.paymob_transaction_id,
            "isAuthorized": order.is_authorized,
            "failureReason": order.failure_reason or None,
            "refund": (
                {
                    "refundId": order.refund_id,
                    "amount": str(order.refund_amount) if order.refund_amount is not None else None,
                    "date": order.refund_date.isoformat() if order.refund_date else None,
                    "reason": order.refund_reason,
                    "status": order.refund_status,
                }
                if order.refund_status
                else None
            ),
        }

    @staticmethod
    def update_order_status(order: Order, new_status: str, user=None) -> ServiceResult:
        if new_status not in Order.OrderStatus.values:
            return ServiceResult.fail(ErrorKind.VALIDATION, f"'{new_status}' is not a valid order status")
        if new_status == Order.OrderStatus.CANCELLED:
            return OrderService.cancel_order(order, "Cancelled by staff", user)
        if not OrderStateMachine.advance_order_status(order, new_status):
            return ServiceResult.fail(
                ErrorKind.POLICY, f"Cannot change order status from {order.order_status} to {new_status}"
            )
        return ServiceResult.ok(order, message="Order status updated successfully")

    @staticmethod
    def update_place_type(order: Order, place_type: str, table_id=None, date=None, slot=None) -> ServiceResult:
        """
        Staff correction of how an order is served. Moving to In-Place books
        (or moves) the order's table; leaving it releases the booking. Prices
        are left as charged.
        """
        if place_type not in Order.PlaceType.values:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                f"Invalid placeType. Valid types: {', '.join(Order.PlaceType.values)}",
            )
        if order.is_terminal:
            return ServiceResult.fail(ErrorKind.POLICY, "Cannot change the place type of a closed order")

        if place_type != Order.PlaceType.IN_PLACE:
            with transaction.atomic():
                ReservationService.cancel_for_order(order)
                order.place_type = place_type
                order.table = None
                order.save(update_fields=["place_type", "table", "updated_at"])
            logger.info(f"Order {order.id}: place type changed to {place_type}")
            return ServiceResult.ok(order, message="Order placeType updated successfully")

        if not table_id or not date or not slot:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "tableId, date, and slot are required when changing placeType to In-Place"
            )
        table_result = ReservationService.validate_table(table_id)
        if not table_result.success:
            return table_result
        date_result = ReservationService.validate_slot_and_date(slot, date)
        if not date_result.success:
            return date_result
        table, reservation_date = table_result.data, date_result.data

        with transaction.atomic():
            booking = ReservationService.move_for_order(order, table, reservation_date)
            if not booking.success:
                return booking
            order.place_type = place_type
            order.table = table
            order.save(update_fields=["place_type", "table", "updated_at"])

        logger.info(f"Order {order.id}: place type changed to In-Place, table {table.number} at {reservation_date}")
        return ServiceResult.ok(order, message="Order placeType updated successfully")

    @staticmethod
    def group_by_order_status(statuses, page=1, limit=10) -> ServiceResult:
        """
        Admin board view: one page of orders per requested status. The
        pagination block describes the largest group.
        """
        try:
            page, limit = int(page), int(limit)
        except (TypeError, ValueError):
            page = limit = 0
        if page < 1 or limit < 1:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Page and limit must be positive numbers")

        if isinstance(statuses, str):
            statuses = statuses.split(",")
        requested = [status.strip() for status in (statuses or []) if status and status.strip()]
        if not requested:
            return ServiceResult.fail(ErrorKind.VALIDATION, "At least 1 order status required!")
        invalid = [status for status in requested if status not in Order.OrderStatus.values]
        if invalid:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                f"Invalid statuses: {', '.join(invalid)}. "
                f"Valid statuses are: {', '.join(Order.OrderStatus.values)}",
            )

        offset = (page - 1) * limit
        groups = []
        largest = 0
        for status in dict.fromkeys(requested):
            queryset = OrderService.list_for_admin(order_status=status)
            count = queryset.count()
            largest = max(largest, count)
            groups.append({"status": status, "count": count, "orders": list(queryset[offset:offset + limit])})

        total_pages = -(-largest // limit)
        pagination = {
            "currentPage": page,
            "totalPages": total_pages,
            "totalOrders": sum(group["count"] for group in groups),
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        }
        return ServiceResult.ok(
            {"groups": groups, "pagination": pagination}, message="Orders fetched successfully by status"
        )

    @staticmethod
    def list_for_user(user):
        return (
            Order.objects.filter(user=user)
            .select_related("payment_method", "coupon", "table")
            .prefetch_related("items__product")
        )

    @staticmethod
    def list_for_admin(payment_status=None, order_status=None):
        queryset = Order.objects.select_related("payment_method", "user", "coupon", "table").prefetch_related(
            "items__product"
        )
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        if order_status:
            queryset = queryset.filter(order_status=order_status)
        return queryset
