from typing import Iterable, Optional
import logging

from django.utils import timezone

from orders.models import Order

logger = logging.getLogger(__name__)


class OrderStateMachine:
    """
    Compare-and-swap status transitions.

    The synchronous checkout result and the provider webhooks race to move
    the same order. Every move is a single conditional UPDATE that only
    matches while the order is still in one of the ``expected`` states, so
    whichever source lands first wins and the other becomes a logged no-op.
    """

    # Fulfilment steps an admin may take; cancellation goes through OrderService.cancel_order.
    ORDER_STATUS_FLOW = {
        Order.OrderStatus.PAID: [Order.OrderStatus.READY],
        Order.OrderStatus.READY: [Order.OrderStatus.ON_THE_WAY, Order.OrderStatus.RECEIVED],
        Order.OrderStatus.ON_THE_WAY: [Order.OrderStatus.RECEIVED],
    }

    @staticmethod
    def transition(
        order: Order,
        expected: Iterable[str],
        payment_status: str,
        order_status: Optional[str] = None,
        source: str = "system",
        **fields,
    ) -> bool:
        expected = list(expected)
        updates = {"payment_status": payment_status, "updated_at": timezone.now(), **fields}
        if order_status is not None:
            updates["order_status"] = order_status

        updated = Order.objects.filter(pk=order.pk, payment_status__in=expected).update(**updates)
        if not updated:
            order.refresh_from_db()
            logger.info(
                f"Order {order.id}: {source} transition to {payment_status} skipped, "
                f"payment status already {order.payment_status}"
            )
            return False

        previous = order.payment_status
        for name, value in updates.items():
            setattr(order, name, value)
        logger.info(f"Order {order.id}: payment status {previous} -> {payment_status} ({source})")
        return True

    @staticmethod
    def mark_authorized(order: Order, source: str = "system", **fields) -> bool:
        """
        Record a gateway authorization that still needs a capture. The order
        stays Pending; only an order that is still Pending is marked.
        """
        updates = {"is_authorized": True, "updated_at": timezone.now(), **fields}
        updated = Order.objects.filter(pk=order.pk, payment_status=Order.PaymentStatus.PENDING).update(**updates)
        if not updated:
            order.refresh_from_db()
            logger.info(
                f"Order {order.id}: {source} authorization skipped, payment status already {order.payment_status}"
            )
            return False
        for name, value in updates.items():
            setattr(order, name, value)
        logger.info(f"Order {order.id}: payment authorized, awaiting capture ({source})")
        return True

    @staticmethod
    def claim_refund(order: Order, expected: Iterable[str], source: str = "refund") -> bool:
        """
        Take the refund lock before any money moves. Only one caller can hold
        it: the row must be in an ``expected`` state with no refund in flight.
        """
        updated = (
            Order.objects.filter(pk=order.pk, payment_status__in=list(expected))
            .exclude(refund_status=Order.RefundStatus.PENDING)
            .update(refund_status=Order.RefundStatus.PENDING, updated_at=timezone.now())
        )
        if not updated:
            order.refresh_from_db()
            logger.info(
                f"Order {order.id}: {source} could not claim refund "
                f"(payment status {order.payment_status}, refund status {order.refund_status})"
            )
            return False
        order.refund_status = Order.RefundStatus.PENDING
        return True

    @staticmethod
    def release_refund(order: Order, refund_status: Optional[str], **fields) -> None:
        """Drop the refund lock held by this caller, leaving ``refund_status`` behind."""
        updates = {"refund_status": refund_status, "updated_at": timezone.now(), **fields}
        Order.objects.filter(pk=order.pk, refund_status=Order.RefundStatus.PENDING).update(**updates)
        for name, value in updates.items():
            setattr(order, name, value)

    @staticmethod
    def can_advance(current: str, target: str) -> bool:
        return target in OrderStateMachine.ORDER_STATUS_FLOW.get(current, [])

    @staticmethod
    def advance_order_status(order: Order, target: str, source: str = "admin") -> bool:
        """Move the fulfilment status one step, guarded on the current value."""
        current = order.order_status
        if not OrderStateMachine.can_advance(current, target):
            return False
        updated = Order.objects.filter(pk=order.pk, order_status=current).update(
            order_status=target, updated_at=timezone.now()
        )
        if not updated:
            order.refresh_from_db()
            logger.info(f"Order {order.id}: order status changed concurrently, now {order.order_status}")
            return False
        order.order_status = target
        logger.info(f"Order {order.id}: order status {current} -> {target} ({source})")
        return True
