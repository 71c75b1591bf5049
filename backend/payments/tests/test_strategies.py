"""
Payment strategy tests.

Gateways are mocked: the Stripe SDK through ``unittest.mock.patch`` and
Paymob through a stand-in ``PaymobClient``.
"""
import pytest
from decimal import Decimal
from unittest.mock import MagicMock, patch

import stripe

from core_backend.results import ErrorKind
from orders.models import Order
from payments.paymob import PaymobAPIError, PaymobClient, UNIQUE_ID_ALPHABET
from payments.strategies import (
    CashOnDeliveryStrategy,
    PaymentContext,
    PaymobStrategy,
    StripeCheckoutStrategy,
)


def _session(session_id='cs_test_123'):
    session = MagicMock()
    session.id = session_id
    session.url = f'https://checkout.stripe.com/c/pay/{session_id}'
    return session


@pytest.mark.django_db
class TestStripeCheckoutStrategy:
    """Hosted checkout sessions, refunds, voids and captures"""

    @patch('stripe.checkout.Session.create')
    def test_create_payment_builds_session(self, mock_create, make_order, customer, stripe_config):
        mock_create.return_value = _session()
        order = make_order('Card')

        result = StripeCheckoutStrategy().create_payment(order, PaymentContext(customer, 'Card'))

        assert result.success
        assert result.redirect_url == 'https://checkout.stripe.com/c/pay/cs_test_123'
        assert result.correlation_id == 'cs_test_123'
        order.refresh_from_db()
        assert order.stripe_session_id == 'cs_test_123'

        kwargs = mock_create.call_args.kwargs
        assert kwargs['line_items'] == [{
            'price_data': {
                'currency': 'usd',
                'product_data': {'name': 'Margherita'},
                'unit_amount': 10000,
            },
            'quantity': 2,
        }]
        assert kwargs['client_reference_id'] == str(order.id)
        assert kwargs['metadata'] == {'orderId': str(order.id), 'userId': str(customer.pk)}
        assert kwargs['payment_intent_data']['metadata']['orderId'] == str(order.id)
        assert kwargs['customer_email'] == 'mona@example.com'
        assert kwargs['success_url'].startswith('http://frontend.test/payment/success?session_id={CHECKOUT_SESSION_ID}')

    @patch('stripe.checkout.Session.create')
    def test_delivery_fee_is_its_own_line(self, mock_create, make_order, customer, stripe_config):
        mock_create.return_value = _session()
        order = make_order('Card', delivery_fee=Decimal('30.00'))

        StripeCheckoutStrategy().create_payment(order, PaymentContext(customer, 'Card'))

        fee_line = mock_create.call_args.kwargs['line_items'][-1]
        assert fee_line['price_data']['product_data']['name'] == 'Delivery Fee'
        assert fee_line['price_data']['unit_amount'] == 3000

    @patch('stripe.checkout.Session.create')
    @patch('stripe.Coupon.create')
    def test_coupon_discount_becomes_one_off_coupon(
        self, mock_coupon, mock_create, make_order, customer, stripe_config
    ):
        stripe_config.allow_promotion_codes = True
        stripe_config.save()
        mock_coupon.return_value = MagicMock(id='co_once')
        mock_create.return_value = _session()
        order = make_order('Card', coupon_discount=Decimal('20.00'))

        StripeCheckoutStrategy().create_payment(order, PaymentContext(customer, 'Card'))

        assert mock_coupon.call_args.kwargs['amount_off'] == 2000
        assert mock_coupon.call_args.kwargs['duration'] == 'once'
        kwargs = mock_create.call_args.kwargs
        assert kwargs['discounts'] == [{'coupon': 'co_once'}]
        assert 'allow_promotion_codes' not in kwargs

    @patch('stripe.checkout.Session.create')
    def test_gateway_error_is_reported(self, mock_create, make_order, customer, stripe_config):
        mock_create.side_effect = stripe.APIConnectionError('Network unreachable')
        order = make_order('Card')

        result = StripeCheckoutStrategy().create_payment(order, PaymentContext(customer, 'Card'))

        assert not result.success
        assert result.error == ErrorKind.GATEWAY

    @patch('stripe.Refund.create')
    def test_full_refund(self, mock_refund, make_order, stripe_config):
        mock_refund.return_value = MagicMock(id='re_1', status='succeeded')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        result = StripeCheckoutStrategy().refund(order, None, 'changed my mind')

        assert result.success
        assert result.refund_id == 're_1'
        assert result.status == Order.PaymentStatus.REFUNDED
        assert mock_refund.call_args.kwargs['amount'] == 20000
        assert mock_refund.call_args.kwargs['reason'] == 'requested_by_customer'

    @patch('stripe.Refund.create')
    def test_partial_refund(self, mock_refund, make_order, stripe_config):
        mock_refund.return_value = MagicMock(id='re_2', status='succeeded')
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        result = StripeCheckoutStrategy().refund(order, Decimal('50.00'), 'duplicate')

        assert result.status == Order.PaymentStatus.PARTIALLY_REFUNDED
        assert mock_refund.call_args.kwargs['reason'] == 'duplicate'

    @patch('stripe.Refund.create')
    def test_refund_policy_checked_before_gateway(self, mock_refund, make_order, stripe_config):
        stripe_config.allow_partial_refunds = False
        stripe_config.save()
        order = make_order('Card', payment_status='Completed', stripe_payment_intent_id='pi_1')

        result = StripeCheckoutStrategy().refund(order, Decimal('50.00'))

        assert not result.success
        assert result.message == 'Partial refunds are not allowed'
        mock_refund.assert_not_called()

    @patch('stripe.checkout.Session.retrieve')
    @patch('stripe.Refund.create')
    def test_refund_looks_up_intent_from_session(self, mock_refund, mock_retrieve, make_order, stripe_config):
        mock_retrieve.return_value = MagicMock(payment_intent='pi_from_session')
        mock_refund.return_value = MagicMock(id='re_3', status='succeeded')
        order = make_order('Card', payment_status='Completed', stripe_session_id='cs_1')

        StripeCheckoutStrategy().refund(order)

        assert mock_refund.call_args.kwargs['payment_intent'] == 'pi_from_session'

    @patch('stripe.checkout.Session.expire')
    def test_void_expires_session(self, mock_expire, make_order):
        order = make_order('Card', stripe_session_id='cs_1')

        result = StripeCheckoutStrategy().void(order)

        assert result.success
        mock_expire.assert_called_once_with('cs_1')

    @patch('stripe.checkout.Session.expire')
    def test_void_of_closed_session_is_ok(self, mock_expire, make_order):
        mock_expire.side_effect = stripe.InvalidRequestError('Session is not open', 'session')
        order = make_order('Card', stripe_session_id='cs_1')

        assert StripeCheckoutStrategy().void(order).success

    @patch('stripe.PaymentIntent.capture')
    @patch('stripe.PaymentIntent.retrieve')
    def test_capture(self, mock_retrieve, mock_capture, make_order, stripe_config):
        mock_retrieve.return_value = MagicMock(status='requires_capture')
        mock_capture.return_value = MagicMock(status='succeeded')
        order = make_order('Card', stripe_payment_intent_id='pi_1')

        result = StripeCheckoutStrategy().capture(order, Decimal('150.00'))

        assert result.success
        mock_capture.assert_called_once_with('pi_1', amount_to_capture=15000)

    @patch('stripe.PaymentIntent.retrieve')
    def test_capture_requires_authorized_intent(self, mock_retrieve, make_order, stripe_config):
        mock_retrieve.return_value = MagicMock(status='succeeded')
        order = make_order('Card', stripe_payment_intent_id='pi_1')

        result = StripeCheckoutStrategy().capture(order)

        assert result.message == 'Payment is not awaiting capture'


@pytest.fixture
def paymob_client():
    client = MagicMock(spec=PaymobClient)
    client.create_intention.return_value = {'id': 'pi_paymob_1', 'client_secret': 'csk_abc'}
    client.checkout_url.return_value = 'https://accept.paymob.com/unifiedcheckout/?clientSecret=csk_abc'
    return client


@pytest.mark.django_db
class TestPaymobStrategy:
    """Unified checkout intentions correlated by an 8-character reference"""

    def test_create_payment(self, make_order, customer, paymob_config, paymob_client):
        order = make_order('Paymob-Card')

        result = PaymobStrategy(client=paymob_client).create_payment(
            order, PaymentContext(customer, 'Paymob-Card')
        )

        assert result.success
        assert result.redirect_url == 'https://accept.paymob.com/unifiedcheckout/?clientSecret=csk_abc'
        order.refresh_from_db()
        assert len(order.unique_payment_id) == 8
        assert set(order.unique_payment_id) <= set(UNIQUE_ID_ALPHABET)
        assert order.paymob_intention_id == 'pi_paymob_1'
        assert result.correlation_id == order.unique_payment_id

        payload = paymob_client.create_intention.call_args.args[0]
        assert payload['amount'] == 20000
        assert payload['currency'] == 'EGP'
        assert payload['payment_methods'] == ['card']
        assert payload['special_reference'] == order.unique_payment_id
        assert payload['extras'] == {'ee': order.unique_payment_id, 'merchant_order_id': order.unique_payment_id}
        assert payload['items'] == [{
            'name': 'Margherita',
            'amount': 10000,
            'description': 'Tomato, mozzarella, basil',
            'quantity': 2,
        }]
        assert payload['billing_data']['first_name'] == 'Mona'
        assert payload['billing_data']['last_name'] == 'Adel'
        assert payload['billing_data']['street'] == 'Abbas El Akkad'
        assert payload['notification_url'] == 'http://backend.test/api/payments/webhooks/paymob/'
        assert payload['expiration'] == 1800

    def test_wallet_uses_wallet_integration(self, make_order, customer, paymob_config, paymob_client):
        order = make_order('Paymob-Wallet')

        PaymobStrategy(client=paymob_client).create_payment(order, PaymentContext(customer, 'Paymob-Wallet'))

        assert paymob_client.create_intention.call_args.args[0]['payment_methods'] == ['wallet']

    def test_coupon_collapses_items(self, make_order, customer, paymob_config, paymob_client):
        order = make_order('Paymob-Card', coupon_discount=Decimal('20.00'), delivery_fee=Decimal('30.00'))

        PaymobStrategy(client=paymob_client).create_payment(order, PaymentContext(customer, 'Paymob-Card'))

        payload = paymob_client.create_intention.call_args.args[0]
        assert payload['amount'] == 21000
        assert [item['name'] for item in payload['items']] == ['Order Payment']
        assert payload['items'][0]['amount'] == 21000

    def test_installments_minimum(self, make_order, customer, paymob_config, paymob_client):
        order = make_order('Paymob-Installments', quantity=1)

        result = PaymobStrategy(client=paymob_client).create_payment(
            order, PaymentContext(customer, 'Paymob-Installments')
        )

        assert not result.success
        assert result.message == 'Minimum amount for installments is 500.00 EGP'
        paymob_client.create_intention.assert_not_called()

    def test_gateway_error(self, make_order, customer, paymob_config, paymob_client):
        paymob_client.create_intention.side_effect = PaymobAPIError('Invalid integration', status_code=400)
        order = make_order('Paymob-Card')

        result = PaymobStrategy(client=paymob_client).create_payment(
            order, PaymentContext(customer, 'Paymob-Card')
        )

        assert not result.success
        assert result.error == ErrorKind.GATEWAY
        assert result.message == 'Failed to create Paymob payment: Invalid integration'

    def test_unique_id_retries_on_collision(self, make_order):
        make_order('Paymob-Card', unique_payment_id='AAAAAAAA')

        with patch('payments.strategies.generate_unique_payment_id', side_effect=['AAAAAAAA', 'BBBBBBBB']):
            assert PaymobStrategy.mint_unique_payment_id() == 'BBBBBBBB'

    def test_unique_id_gives_up(self, make_order):
        make_order('Paymob-Card', unique_payment_id='AAAAAAAA')

        with patch('payments.strategies.generate_unique_payment_id', return_value='AAAAAAAA'):
            with pytest.raises(RuntimeError):
                PaymobStrategy.mint_unique_payment_id()

    def test_refund_needs_transaction(self, make_order, paymob_config, paymob_client):
        order = make_order('Paymob-Card', payment_status='Completed')

        result = PaymobStrategy(client=paymob_client).refund(order)

        assert result.message == 'No Paymob transaction found for this order'

    def test_refund(self, make_order, paymob_config, paymob_client):
        paymob_client.refund.return_value = {'id': 98765, 'success': True}
        order = make_order('Paymob-Card', payment_status='Completed', paymob_transaction_id='12345')

        result = PaymobStrategy(client=paymob_client).refund(order, Decimal('50.00'))

        assert result.success
        assert result.refund_id == '98765'
        assert result.status == Order.PaymentStatus.PARTIALLY_REFUNDED
        paymob_client.refund.assert_called_once_with('12345', 5000)

    def test_void_without_transaction_is_noop(self, make_order, paymob_client):
        order = make_order('Paymob-Card')

        assert PaymobStrategy(client=paymob_client).void(order).success
        paymob_client.void.assert_not_called()

    def test_void_can_be_disabled(self, make_order, paymob_config, paymob_client):
        paymob_config.allow_void_transaction = False
        paymob_config.save()
        order = make_order('Paymob-Card', paymob_transaction_id='12345')

        result = PaymobStrategy(client=paymob_client).void(order)

        assert result.message == 'Voiding transactions is disabled'

    def test_capture_requires_authorization(self, make_order, paymob_config, paymob_client):
        order = make_order('Paymob-Card', paymob_transaction_id='12345')

        result = PaymobStrategy(client=paymob_client).capture(order)

        assert result.message == 'Payment is not awaiting capture'
        paymob_client.capture.assert_not_called()

    def test_capture_authorized_transaction(self, make_order, paymob_config, paymob_client):
        paymob_client.capture.return_value = {'id': 12346, 'success': True}
        order = make_order('Paymob-Card', paymob_transaction_id='12345', is_authorized=True)

        result = PaymobStrategy(client=paymob_client).capture(order, Decimal('150.00'))

        assert result.success
        assert result.data == {'transactionId': '12345', 'success': True}
        paymob_client.capture.assert_called_once_with('12345', 15000)


@pytest.mark.django_db
class TestCashOnDeliveryStrategy:
    """No gateway involved"""

    def test_create_payment(self, make_order, customer):
        order = make_order('COD')

        result = CashOnDeliveryStrategy().create_payment(order, PaymentContext(customer, 'COD'))

        assert result.success
        assert result.redirect_url is None

    def test_refund_is_recorded(self, make_order):
        order = make_order('COD', payment_status='Completed')

        result = CashOnDeliveryStrategy().refund(order)

        assert result.success
        assert result.status == Order.PaymentStatus.REFUNDED
