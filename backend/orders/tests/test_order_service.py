"""
Order pipeline tests: checkout, payment outcomes, refunds, cancellation.
"""
import pytest
from decimal import Decimal
from datetime import timedelta
from unittest.mock import MagicMock, patch

import stripe
from django.contrib.auth.models import AnonymousUser
from django.utils import timezone

from cart.models import CartItem
from core_backend.results import ErrorKind
from orders import qr
from orders.models import Order
from orders.services import OrderService
from reservations.models import Reservation


def checkout(user, address, method='COD', place_type='Takeaway', source='cart', **kwargs):
    return OrderService.create_order(
        user=user,
        source=source,
        address_id=address.pk,
        place_type=place_type,
        payment_method=method,
        **kwargs,
    )


def stripe_session():
    session = MagicMock()
    session.id = 'cs_test_checkout'
    session.url = 'https://checkout.stripe.com/c/pay/cs_test_checkout'
    return session


@pytest.mark.django_db
class TestCheckoutValidation:
    """Checks run in a fixed order and nothing is written on failure"""

    def test_requires_authentication(self, address, gateways):
        result = checkout(AnonymousUser(), address)

        assert result.error == ErrorKind.UNAUTHENTICATED
        assert result.status_code == 401

    def test_invalid_place_type(self, customer, address, gateways):
        result = checkout(customer, address, place_type='Drive-Through')

        assert result.message == 'Invalid place type. Must be Online, In-Place, or Takeaway'

    def test_online_needs_area(self, customer, address, gateways):
        result = checkout(customer, address, place_type='Online', governorate='Cairo')

        assert result.message == 'Governorate and city are required for online orders'

    def test_table_only_for_in_place(self, customer, address, table, gateways):
        result = checkout(customer, address, table_id=table.pk)

        assert result.message == 'tableId is only allowed for In-Place orders'

    def test_unsupported_method_checked_before_address(self, customer, other_customer, gateways):
        result = OrderService.create_order(
            user=customer, source='cart', address_id=999999, place_type='Takeaway', payment_method='Cheque'
        )

        assert result.error == ErrorKind.UNSUPPORTED_METHOD

    def test_disabled_method(self, customer, address, cart, payment_methods):
        payment_methods['Card'].is_active = False
        payment_methods['Card'].save()

        result = checkout(customer, address, 'Card', cart_id=cart.pk)

        assert result.error == ErrorKind.METHOD_DISABLED
        assert Order.objects.count() == 0

    def test_unconfigured_gateway(self, customer, address, cart, payment_methods):
        result = checkout(customer, address, 'Card', cart_id=cart.pk)

        assert result.error == ErrorKind.GATEWAY_NOT_CONFIGURED
        assert result.status_code == 503

    def test_address_must_belong_to_user(self, other_customer, address, gateways):
        result = checkout(other_customer, address)

        assert result.message == 'Address not found'
        assert result.status_code == 404

    def test_cart_must_belong_to_user(self, other_customer, cart, gateways):
        from users.models import Address
        own_address = Address.objects.create(
            owner=other_customer, governorate='Giza', city='Dokki', street='Tahrir', building_number=3, flat_number=1
        )

        result = checkout(other_customer, own_address, cart_id=cart.pk)

        assert result.message == 'Cart not found'

    def test_empty_cart(self, customer, address, cart, gateways):
        cart.items.all().delete()

        result = checkout(customer, address, cart_id=cart.pk)

        assert result.message == 'Cart is empty'

    def test_unknown_product(self, customer, address, gateways):
        result = checkout(customer, address, source='product', product_id=424242, quantity=1)

        assert result.message == 'Product not found: 424242'

    def test_unknown_coupon_code(self, customer, address, cart, gateways):
        result = checkout(customer, address, cart_id=cart.pk, coupon_code='NOPE')

        assert result.message == 'Invalid coupon code'
        assert Order.objects.count() == 0

    def test_amount_bounds(self, customer, address, cart, gateways, stripe_config):
        stripe_config.max_order_amount = Decimal('100.00')
        stripe_config.save()

        result = checkout(customer, address, 'Card', cart_id=cart.pk)

        assert result.message == 'Maximum order amount is 100.00 USD'
        assert Order.objects.count() == 0


@pytest.mark.django_db
class TestCashCheckout:
    """Cash orders complete immediately"""

    def test_cart_checkout_completes(self, customer, address, cart, gateways):
        result = checkout(customer, address, cart_id=cart.pk)

        assert result.success
        assert result.status_code == 201
        order = result.data.order
        assert order.payment_status == Order.PaymentStatus.COMPLETED
        assert order.order_status == Order.OrderStatus.PAID
        assert order.total_price == Decimal('200.00')
        assert order.items.get().unit_price == Decimal('100.00')
        assert result.data.payment.redirect_url is None
        assert CartItem.objects.filter(cart=cart).count() == 0

    def test_single_product_leaves_cart_alone(self, customer, address, cart, second_product, gateways):
        result = checkout(customer, address, source='product', product_id=second_product.pk, quantity=3)

        assert result.data.order.total_price == Decimal('150.00')
        assert CartItem.objects.filter(cart=cart).count() == 1

    def test_product_list(self, customer, address, product, second_product, gateways):
        result = checkout(
            customer, address, source='products',
            products=[{'productId': product.pk, 'quantity': 1}, {'productId': second_product.pk, 'quantity': 2}],
        )

        order = result.data.order
        assert order.total_quantity == 3
        assert order.subtotal == Decimal('200.00')

    def test_sale_price_is_snapshotted(self, customer, address, sale_product, gateways):
        result = checkout(customer, address, source='product', product_id=sale_product.pk, quantity=1)

        item = result.data.order.items.get()
        assert item.unit_price == Decimal('60.00')
        assert item.original_price == Decimal('80.00')
        assert result.data.order.product_discount == Decimal('20.00')

    def test_coupon_applied_and_redeemed(self, customer, address, cart, coupon, gateways):
        result = checkout(customer, address, cart_id=cart.pk, coupon_code='save10')

        order = result.data.order
        assert order.coupon_discount == Decimal('20.00')
        assert order.total_price == Decimal('180.00')
        coupon.refresh_from_db()
        assert coupon.usage_count == 1

    def test_expired_cart_coupon_is_dropped(self, customer, address, cart, coupon, gateways):
        coupon.expiry_date = timezone.now() - timedelta(days=1)
        coupon.save()
        cart.coupon = coupon
        cart.save()

        result = checkout(customer, address, cart_id=cart.pk)

        assert result.success
        assert result.data.order.coupon_discount == Decimal('0.00')
        assert result.data.order.coupon is None

    def test_online_order_pays_delivery(self, customer, address, cart, delivery_location, gateways):
        result = checkout(
            customer, address, place_type='Online', cart_id=cart.pk, governorate='Cairo', city='Nasr City'
        )

        order = result.data.order
        assert order.delivery_fee == Decimal('30.00')
        assert order.total_price == Decimal('230.00')
        assert (order.governorate, order.city) == ('Cairo', 'Nasr City')

    def test_free_delivery_coupon(self, customer, address, cart, delivery_location, free_delivery_coupon, gateways):
        result = checkout(
            customer, address, place_type='Online', cart_id=cart.pk,
            governorate='Cairo', city='Nasr City', coupon_code='FREESHIP',
        )

        assert result.data.order.delivery_fee == Decimal('0.00')
        assert result.data.order.total_price == Decimal('200.00')

    def test_undeliverable_area(self, customer, address, cart, gateways):
        result = checkout(customer, address, place_type='Online', cart_id=cart.pk, governorate='Aswan', city='Edfu')

        assert result.message == 'Delivery not available for this location'
        assert Order.objects.count() == 0


@pytest.mark.django_db
class TestInPlaceCheckout:
    """Dine-in orders book their table slot"""

    def test_books_confirmed_reservation(self, customer, address, cart, table, future_date, gateways):
        result = checkout(
            customer, address, place_type='In-Place', cart_id=cart.pk,
            table_id=table.pk, date=future_date, slot='18:00',
        )

        order = result.data.order
        reservation = Reservation.objects.get(order=order)
        assert reservation.status == Reservation.Status.CONFIRMED
        assert reservation.table == table
        assert order.table == table

    def test_taken_slot_writes_nothing(self, customer, other_customer, address, cart, table, future_date, gateways):
        from reservations.services import ReservationService
        ReservationService.book(other_customer, table.pk, future_date, '18:00')

        result = checkout(
            customer, address, place_type='In-Place', cart_id=cart.pk,
            table_id=table.pk, date=future_date, slot='18:00',
        )

        assert result.status_code == 409
        assert Order.objects.count() == 0

    def test_needs_date_and_slot(self, customer, address, cart, table, gateways):
        result = checkout(customer, address, place_type='In-Place', cart_id=cart.pk, table_id=table.pk)

        assert result.message == 'Date and time slot are required for in-place orders'

    @patch('stripe.checkout.Session.create')
    def test_failed_payment_releases_table(
        self, mock_create, customer, address, cart, table, future_date, gateways
    ):
        mock_create.side_effect = stripe.APIConnectionError('Network unreachable')

        result = checkout(
            customer, address, 'Card', place_type='In-Place', cart_id=cart.pk,
            table_id=table.pk, date=future_date, slot='18:00',
        )

        assert not result.success
        reservation = Reservation.objects.get(order_id=result.data['orderId'])
        assert reservation.status == Reservation.Status.CANCELLED


@pytest.mark.django_db
class TestGatewayCheckout:
    """Card and Paymob orders wait for the webhook"""

    @patch('stripe.checkout.Session.create')
    def test_card_redirects_to_stripe(self, mock_create, customer, address, cart, gateways):
        mock_create.return_value = stripe_session()

        result = checkout(customer, address, 'Card', cart_id=cart.pk)

        assert result.success
        assert result.data.payment.redirect_url == 'https://checkout.stripe.com/c/pay/cs_test_checkout'
        order = Order.objects.get(pk=result.data.order.pk)
        assert order.payment_status == Order.PaymentStatus.PENDING
        assert order.stripe_session_id == 'cs_test_checkout'
        # Cart survives until the payment is confirmed
        assert CartItem.objects.filter(cart=cart).count() == 1

    @patch('stripe.checkout.Session.create')
    def test_card_failure_marks_order_failed(self, mock_create, customer, address, cart, gateways):
        mock_create.side_effect = stripe.APIConnectionError('Network unreachable')

        result = checkout(customer, address, 'Card', cart_id=cart.pk)

        assert result.error == ErrorKind.GATEWAY
        order = Order.objects.get(pk=result.data['orderId'])
        assert order.payment_status == Order.PaymentStatus.FAILED
        assert order.order_status == Order.OrderStatus.FAILED
        assert CartItem.objects.filter(cart=cart).count() == 1

    @patch('payments.paymob.requests.post')
    def test_paymob_redirects_to_unified_checkout(
        self, mock_post, customer, address, cart, gateways, paymob_settings
    ):
        mock_post.return_value = MagicMock(
            status_code=201, json=MagicMock(return_value={'id': 'pi_paymob', 'client_secret': 'csk_xyz'})
        )

        result = checkout(customer, address, 'Paymob-Card', cart_id=cart.pk)

        assert result.success
        assert result.data.payment.redirect_url == (
            'https://accept.paymob.com/unifiedcheckout/?publicKey=pk_test_paymob&clientSecret=csk_xyz'
        )
        order = Order.objects.get(pk=result.data.order.pk)
        assert len(order.unique_payment_id) == 8
        assert order.payment_status == Order.PaymentStatus.PENDING

    def test_webhook_completion_clears_cart(self, customer, address, cart, coupon, gateways):
        with patch('stripe.checkout.Session.create', return_value=stripe_session()), \
                patch('stripe.Coupon.create', return_value=MagicMock(id='co_once')):
            result = checkout(customer, address, 'Card', cart_id=cart.pk, coupon_code='SAVE10')
        order = result.data.order
        coupon.refresh_from_db()
        assert coupon.usage_count == 0

        OrderService.complete_payment(order, 'stripe webhook')

        assert CartItem.objects.filter(cart=cart).count() == 0
        coupon.refresh_from_db()
        assert coupon.usage_count == 1

    def test_completion_happens_once(self, make_order, coupon):
        order = make_order('Card', coupon=coupon, coupon_discount=Decimal('20.00'))

        assert OrderService.complete_payment(order, 'checkout') is True
        assert OrderService.complete_payment(order, 'webhook') is False

        coupon.refresh_from_db()
        assert coupon.usage_count == 1


@pytest.mark.django_db
class TestRefunds:
    """Refund policy and bookkeeping"""

    def test_only_completed_orders(self, make_order):
        order = make_order('COD')

        result = OrderService.refund_order(order)

        assert result.message == 'Only completed orders can be refunded'

    def test_cash_refund(self, make_order):
        order = make_order('COD', payment_status='Completed', order_status='Paid')

        result = OrderService.refund_order(order, reason='Cold food')

        assert result.success
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.REFUNDED
        assert order.refund_status == Order.RefundStatus.COMPLETED
        assert order.refund_amount == Decimal('200.00')
        assert order.refund_reason == 'Cold food'

    def test_amount_cannot_exceed_total(self, make_order):
        order = make_order('COD', payment_status='Completed')

        result = OrderService.refund_order(order, Decimal('500.00'))

        assert result.message == 'Refund amount cannot exceed order total'

    def test_other_customers_order(self, make_order, other_customer):
        order = make_order('COD', payment_status='Completed')

        result = OrderService.refund_order(order, user=other_customer)

        assert result.status_code == 404

    @patch('stripe.Refund.create')
    def test_partial_card_refund(self, mock_refund, make_order, stripe_config):
        mock_refund.return_value = MagicMock(id='re_9', status='succeeded')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        result = OrderService.refund_order(order, Decimal('40.00'))

        assert result.data['refundId'] == 're_9'
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.PARTIALLY_REFUNDED
        assert order.refund_amount == Decimal('40.00')

    @patch('stripe.Refund.create')
    def test_gateway_failure_recorded(self, mock_refund, make_order, stripe_config):
        mock_refund.side_effect = stripe.APIConnectionError('Network unreachable')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        result = OrderService.refund_order(order)

        assert result.error == ErrorKind.GATEWAY
        order.refresh_from_db()
        assert order.refund_status == Order.RefundStatus.FAILED
        assert order.payment_status == Order.PaymentStatus.COMPLETED

    @patch('stripe.Refund.create')
    def test_concurrent_refund_reaches_gateway_once(self, mock_refund, make_order, stripe_config):
        mock_refund.return_value = MagicMock(id='re_1', status='succeeded')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')
        stale_copy = Order.objects.get(pk=order.pk)

        first = OrderService.refund_order(order)
        second = OrderService.refund_order(stale_copy)

        assert first.success
        assert second.error == ErrorKind.CONFLICT
        assert second.message == 'Order status changed to Refunded while processing the request'
        assert mock_refund.call_count == 1

    @patch('stripe.Refund.create')
    def test_refund_in_flight_blocks_another(self, mock_refund, make_order, stripe_config):
        order = make_order(
            'Card', payment_status='Completed', stripe_payment_intent_id='pi_1', refund_status='Pending'
        )

        result = OrderService.refund_order(order, Decimal('40.00'))

        assert result.status_code == 409
        assert result.message == 'A refund is already in progress for this order'
        mock_refund.assert_not_called()

    @patch('stripe.Refund.create')
    def test_refund_claim_released_after_policy_failure(self, mock_refund, make_order, stripe_config):
        order = make_order('Card', payment_status='Completed')

        result = OrderService.refund_order(order)

        assert not result.success
        mock_refund.assert_not_called()
        order.refresh_from_db()
        assert order.refund_status is None
        assert order.payment_status == Order.PaymentStatus.COMPLETED


@pytest.mark.django_db
class TestCancellation:
    """Cancel voids pending payments and may refund completed ones"""

    @patch('stripe.checkout.Session.expire')
    def test_pending_card_order_voided(self, mock_expire, make_order):
        order = make_order('Card', stripe_session_id='cs_1')

        result = OrderService.cancel_order(order, 'Changed my mind')

        assert result.success
        mock_expire.assert_called_once_with('cs_1')
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.CANCELLED
        assert order.order_status == Order.OrderStatus.CANCELLED
        assert order.cancellation_reason == 'Changed my mind'
        assert order.cancelled_at is not None

    @patch('stripe.Refund.create')
    def test_completed_card_order_auto_refunded(self, mock_refund, make_order, stripe_config):
        stripe_config.auto_refund_on_cancellation = True
        stripe_config.save()
        mock_refund.return_value = MagicMock(id='re_auto', status='succeeded')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        OrderService.cancel_order(order)

        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.REFUNDED
        assert order.order_status == Order.OrderStatus.CANCELLED
        assert order.refund_id == 're_auto'

    def test_completed_cash_order_just_cancelled(self, make_order):
        order = make_order('COD', payment_status='Completed', order_status='Paid')

        OrderService.cancel_order(order)

        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.CANCELLED

    def test_paymob_void_skipped_when_disabled(self, make_order, paymob_config):
        paymob_config.auto_void_on_cancellation = False
        paymob_config.save()
        order = make_order('Paymob-Card', paymob_transaction_id='12345')

        with patch('payments.strategies.PaymobStrategy.void') as mock_void:
            result = OrderService.cancel_order(order)

        assert result.success
        mock_void.assert_not_called()

    @pytest.mark.parametrize('fields, label', [
        ({'payment_status': 'Failed'}, 'Failed'),
        ({'payment_status': 'Refunded'}, 'Refunded'),
        ({'payment_status': 'Completed', 'order_status': 'Received'}, 'Received'),
    ])
    def test_terminal_orders(self, make_order, fields, label):
        order = make_order('COD', **fields)

        result = OrderService.cancel_order(order)

        assert result.message == f'Cannot cancel an order that is {label}'

    def test_releases_reservation(self, make_order, customer, table, future_date):
        from reservations.services import ReservationService
        order = make_order('COD', place_type='In-Place', table=table)
        when = ReservationService.build_reservation_date(future_date, '20:00').data
        ReservationService.create_reservation(customer, table, when, order=order, status=Reservation.Status.CONFIRMED)

        OrderService.cancel_order(order)

        assert Reservation.objects.get(order=order).status == Reservation.Status.CANCELLED

    def test_refund_in_flight_blocks_cancellation(self, make_order):
        order = make_order('COD', payment_status='Completed', order_status='Paid', refund_status='Pending')

        result = OrderService.cancel_order(order)

        assert result.error == ErrorKind.CONFLICT
        assert result.message == 'A refund is already in progress for this order'
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.COMPLETED

    @patch('stripe.Refund.create')
    def test_cancel_refund_failure_releases_claim(self, mock_refund, make_order, stripe_config):
        stripe_config.auto_refund_on_cancellation = True
        stripe_config.save()
        mock_refund.side_effect = stripe.APIConnectionError('Network unreachable')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        result = OrderService.cancel_order(order)

        assert result.message.startswith('Cancellation refund failed')
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.COMPLETED
        assert order.refund_status == Order.RefundStatus.FAILED


@pytest.mark.django_db
class TestStatusUpdates:
    """Admin fulfilment moves"""

    def test_paid_to_ready(self, make_order):
        order = make_order('COD', payment_status='Completed', order_status='Paid')

        result = OrderService.update_order_status(order, 'Ready')

        assert result.success
        assert Order.objects.get(pk=order.pk).order_status == 'Ready'

    def test_illegal_move(self, make_order):
        order = make_order('Card')

        result = OrderService.update_order_status(order, 'Ready')

        assert result.message == 'Cannot change order status from Processing to Ready'

    def test_cancelled_routes_through_cancellation(self, make_order):
        order = make_order('COD', payment_status='Completed', order_status='Paid')

        OrderService.update_order_status(order, 'Cancelled')

        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.CANCELLED
        assert order.cancellation_reason == 'Cancelled by staff'

    def test_capture_requires_pending(self, make_order):
        order = make_order('Card', payment_status='Completed')

        result = OrderService.capture_payment(order)

        assert result.message == 'Payment is not awaiting capture'

    @patch('payments.paymob.PaymobClient.capture')
    def test_paymob_capture_completes_authorized_order(self, mock_capture, make_order, paymob_config, paymob_settings):
        mock_capture.return_value = {'id': 12346, 'success': True}
        order = make_order(
            'Paymob-Card', unique_payment_id='ABCD1234', paymob_transaction_id='12345', is_authorized=True
        )

        result = OrderService.capture_payment(order)

        assert result.success
        mock_capture.assert_called_once_with('12345', 20000)
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.COMPLETED
        assert order.order_status == Order.OrderStatus.PAID
        assert order.is_authorized is False

    @patch('payments.paymob.PaymobClient.capture')
    def test_paymob_capture_before_authorization(self, mock_capture, make_order, paymob_config, paymob_settings):
        order = make_order('Paymob-Card', unique_payment_id='ABCD1234')

        result = OrderService.capture_payment(order)

        assert result.message == 'Payment is not awaiting capture'
        mock_capture.assert_not_called()


@pytest.mark.django_db
class TestPickupQRCode:
    """Signed pickup codes issued when an order is paid"""

    def test_issued_on_payment(self, make_order):
        order = make_order('COD')

        OrderService.complete_payment(order, 'checkout')

        order.refresh_from_db()
        reference, _, signature = order.qr_code_data.rpartition(':')
        assert reference == str(order.id)
        assert signature == qr.sign_reference(str(order.id), 'qr_test_secret')

    def test_uses_payment_reference_when_present(self, make_order):
        order = make_order('Paymob-Card', unique_payment_id='ABCD1234')

        OrderService.complete_payment(order, 'paymob webhook')

        assert order.qr_code_data.startswith('ABCD1234:')

    def test_pending_order_has_no_code(self, make_order):
        assert make_order('Card').qr_code_data == ''

    def test_first_code_is_kept(self, make_order):
        order = make_order('COD', qr_code_data='EXISTING:abc')

        assert OrderService.issue_qr_code(order) == 'EXISTING:abc'

    def test_verify(self, make_order):
        order = make_order('COD')
        OrderService.complete_payment(order, 'checkout')

        result = OrderService.verify_qr_code(order.qr_code_data)

        assert result.success
        assert result.data == order

    def test_tampered_code_rejected(self, make_order):
        order = make_order('COD')
        OrderService.complete_payment(order, 'checkout')
        reference = order.qr_code_data.rpartition(':')[0]

        result = OrderService.verify_qr_code(f"{reference}:{'0' * 64}")

        assert result.error == ErrorKind.VALIDATION
        assert result.message == 'Invalid QR code'

    def test_signed_code_for_unknown_order(self, db):
        result = OrderService.verify_qr_code(f"ZZZZ9999:{qr.sign_reference('ZZZZ9999')}")

        assert result.status_code == 404

    @pytest.mark.parametrize('payload', ['', 'no-separator', ':abc', 'ABCD1234:'])
    def test_malformed_payloads(self, payload):
        assert qr.parse_payload(payload) is None

    def test_svg_rendering(self):
        assert b'<svg' in qr.render_svg('ABCD1234:abc')


@pytest.mark.django_db
class TestPlaceTypeChange:
    """Staff corrections of how an order is served"""

    def test_invalid_place_type(self, make_order):
        result = OrderService.update_place_type(make_order('COD'), 'Drive-Through')

        assert result.message == 'Invalid placeType. Valid types: Online, In-Place, Takeaway'

    def test_in_place_needs_table_and_slot(self, make_order, table):
        result = OrderService.update_place_type(make_order('COD'), 'In-Place', table_id=table.pk)

        assert result.message == 'tableId, date, and slot are required when changing placeType to In-Place'

    def test_moving_to_in_place_books_table(self, make_order, table, future_date):
        order = make_order('COD')

        result = OrderService.update_place_type(order, 'In-Place', table.pk, future_date, '20:00')

        assert result.success
        assert result.message == 'Order placeType updated successfully'
        order.refresh_from_db()
        assert order.place_type == Order.PlaceType.IN_PLACE
        assert order.table == table
        reservation = Reservation.objects.get(order=order)
        assert reservation.status == Reservation.Status.CONFIRMED
        assert timezone.localtime(reservation.reservation_date).hour == 20

    def test_existing_booking_is_moved(self, make_order, customer, table, future_date):
        from reservations.services import ReservationService
        order = make_order('COD', place_type='In-Place', table=table)
        when = ReservationService.build_reservation_date(future_date, '18:00').data
        booking = ReservationService.create_reservation(
            customer, table, when, order=order, status=Reservation.Status.CONFIRMED
        ).data

        result = OrderService.update_place_type(order, 'In-Place', table.pk, future_date, '22:00')

        assert result.success
        assert Reservation.objects.filter(order=order).count() == 1
        booking.refresh_from_db()
        assert timezone.localtime(booking.reservation_date).hour == 22

    def test_taken_slot_leaves_order_alone(self, make_order, other_customer, table, future_date):
        from reservations.services import ReservationService
        when = ReservationService.build_reservation_date(future_date, '20:00').data
        ReservationService.create_reservation(other_customer, table, when)
        order = make_order('COD')

        result = OrderService.update_place_type(order, 'In-Place', table.pk, future_date, '20:00')

        assert result.error == ErrorKind.CONFLICT
        order.refresh_from_db()
        assert order.place_type == Order.PlaceType.TAKEAWAY
        assert not Reservation.objects.filter(order=order).exists()

    def test_leaving_in_place_releases_table(self, make_order, customer, table, future_date):
        from reservations.services import ReservationService
        order = make_order('COD', place_type='In-Place', table=table)
        when = ReservationService.build_reservation_date(future_date, '20:00').data
        ReservationService.create_reservation(customer, table, when, order=order, status=Reservation.Status.CONFIRMED)

        OrderService.update_place_type(order, 'Takeaway')

        order.refresh_from_db()
        assert order.place_type == Order.PlaceType.TAKEAWAY
        assert order.table is None
        assert Reservation.objects.get(order=order).status == Reservation.Status.CANCELLED

    def test_closed_order(self, make_order):
        order = make_order('COD', payment_status='Cancelled', order_status='Cancelled')

        result = OrderService.update_place_type(order, 'Takeaway')

        assert result.error == ErrorKind.POLICY


@pytest.mark.django_db
class TestOrdersByStatus:
    """Admin board grouped by fulfilment status"""

    def test_groups_and_pages(self, make_order):
        paid = [make_order('COD', payment_status='Completed', order_status='Paid') for _ in range(3)]
        make_order('COD', payment_status='Completed', order_status='Ready')
        make_order('COD')

        result = OrderService.group_by_order_status('Paid, Ready', page=1, limit=2)

        assert result.message == 'Orders fetched successfully by status'
        groups = {group['status']: group for group in result.data['groups']}
        assert list(groups) == ['Paid', 'Ready']
        assert groups['Paid']['count'] == 3
        assert len(groups['Paid']['orders']) == 2
        assert set(groups['Paid']['orders']) <= set(paid)
        assert len(groups['Ready']['orders']) == 1
        assert result.data['pagination'] == {
            'currentPage': 1,
            'totalPages': 2,
            'totalOrders': 4,
            'hasNextPage': True,
            'hasPrevPage': False,
        }

    def test_second_page(self, make_order):
        for _ in range(3):
            make_order('COD', payment_status='Completed', order_status='Paid')

        result = OrderService.group_by_order_status(['Paid'], page=2, limit=2)

        assert len(result.data['groups'][0]['orders']) == 1
        assert result.data['pagination']['hasPrevPage'] is True
        assert result.data['pagination']['hasNextPage'] is False

    @pytest.mark.parametrize('statuses, page, limit, message', [
        ('Paid', 0, 10, 'Page and limit must be positive numbers'),
        ('Paid', 1, 'ten', 'Page and limit must be positive numbers'),
        ('', 1, 10, 'At least 1 order status required!'),
        (' , ', 1, 10, 'At least 1 order status required!'),
    ])
    def test_invalid_query(self, db, statuses, page, limit, message):
        result = OrderService.group_by_order_status(statuses, page, limit)

        assert result.error == ErrorKind.VALIDATION
        assert result.message == message

    def test_unknown_status(self, db):
        result = OrderService.group_by_order_status('Paid,Lost', 1, 10)

        assert result.message == (
            'Invalid statuses: Lost. Valid statuses are: '
            'Processing, Paid, Ready, On the way, Received, Failed, Cancelled'
        )
