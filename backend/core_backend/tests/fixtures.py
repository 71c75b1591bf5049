"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like users, products, coupons, gateway configs, etc.
"""
import pytest
from decimal import Decimal
from django.utils import timezone
from datetime import timedelta

from users.models import User, Address
from products.models import Product, Category
from discounts.models import Coupon
from cart.models import Cart, CartItem
from delivery.models import DeliveryLocation
from reservations.models import Table
from orders.models import Order, OrderItem
from payments.models import PaymentMethod, PaymobConfig, StripeConfig
from payments.services import PaymentMethodRegistry


# ============================================================================
# USER FIXTURES
# ============================================================================

@pytest.fixture
def customer(db):
    """Create a regular storefront customer"""
    return User.objects.create_user(
        email='mona@example.com',
        password='password123',
        name='Mona Adel',
        phone_number='+201001234567',
    )


@pytest.fixture
def other_customer(db):
    """Create a second customer for ownership checks"""
    return User.objects.create_user(
        email='karim@example.com',
        password='password123',
        name='Karim Fathy',
    )


@pytest.fixture
def admin_user(db):
    """Create an admin"""
    return User.objects.create_user(
        email='admin@example.com',
        password='password123',
        name='Store Admin',
        role=User.Role.ADMIN,
    )


@pytest.fixture
def address(customer):
    """Delivery address owned by ``customer``"""
    return Address.objects.create(
        owner=customer,
        governorate='Cairo',
        city='Nasr City',
        street='Abbas El Akkad',
        building_number=12,
        flat_number=4,
    )


# ============================================================================
# CATALOG FIXTURES
# ============================================================================

@pytest.fixture
def category(db):
    return Category.objects.create(name='Pizza')


@pytest.fixture
def drinks_category(db):
    return Category.objects.create(name='Drinks')


@pytest.fixture
def product(category):
    """Regular-priced product at 100.00"""
    return Product.objects.create(
        name='Margherita',
        description='Tomato, mozzarella, basil',
        price=Decimal('100.00'),
        category=category,
    )


@pytest.fixture
def second_product(drinks_category):
    """Regular-priced product at 50.00 in another category"""
    return Product.objects.create(
        name='Lemonade',
        price=Decimal('50.00'),
        category=drinks_category,
    )


@pytest.fixture
def sale_product(category):
    """Product on sale: 80.00 down to 60.00 with an open window"""
    return Product.objects.create(
        name='Pepperoni',
        price=Decimal('80.00'),
        category=category,
        is_on_sale=True,
        sale_price=Decimal('60.00'),
    )


# ============================================================================
# DISCOUNT FIXTURES
# ============================================================================

@pytest.fixture
def coupon(db):
    """10% global coupon, one use per customer"""
    return Coupon.objects.create(
        code='SAVE10',
        discount_type=Coupon.DiscountType.PERCENTAGE,
        discount_value=Decimal('10.00'),
        start_date=timezone.now() - timedelta(days=1),
        expiry_date=timezone.now() + timedelta(days=30),
    )


@pytest.fixture
def fixed_coupon(db):
    return Coupon.objects.create(
        code='MINUS25',
        discount_type=Coupon.DiscountType.FIXED,
        discount_value=Decimal('25.00'),
        start_date=timezone.now() - timedelta(days=1),
        expiry_date=timezone.now() + timedelta(days=30),
    )


@pytest.fixture
def free_delivery_coupon(db):
    return Coupon.objects.create(
        code='FREESHIP',
        discount_type=Coupon.DiscountType.FREE_DELIVERY,
        start_date=timezone.now() - timedelta(days=1),
        expiry_date=timezone.now() + timedelta(days=30),
    )


# ============================================================================
# CART / DELIVERY / RESERVATION FIXTURES
# ============================================================================

@pytest.fixture
def cart(customer, product):
    """Customer cart holding two Margheritas"""
    cart = Cart.objects.create(owner=customer)
    CartItem.objects.create(cart=cart, product=product, quantity=2)
    return cart


@pytest.fixture
def delivery_location(db):
    return DeliveryLocation.objects.create(
        governorate='Cairo',
        city='Nasr City',
        fee=Decimal('30.00'),
    )


@pytest.fixture
def table(db):
    return Table.objects.create(number=1, capacity=4)


@pytest.fixture
def future_date():
    """A reservation date string one week ahead"""
    return (timezone.localdate() + timedelta(days=7)).isoformat()


# ============================================================================
# PAYMENT FIXTURES
# ============================================================================

@pytest.fixture
def stripe_config(db):
    config = StripeConfig.get_solo()
    config.is_active = True
    config.save()
    return config


@pytest.fixture
def paymob_config(db):
    config = PaymobConfig.get_solo()
    config.is_active = True
    config.save()
    return config


@pytest.fixture
def payment_methods(db):
    """Every known payment method, all switched on"""
    PaymentMethodRegistry.seed_defaults()
    PaymentMethod.objects.update(is_active=True)
    return {method.name: method for method in PaymentMethod.objects.all()}


@pytest.fixture
def gateways(stripe_config, paymob_config, payment_methods):
    """Both gateways configured and every method enabled"""
    return payment_methods


@pytest.fixture
def make_order(customer, address, product, payment_methods):
    """
    Build a persisted Pending order for ``customer`` without going through
    checkout.

    Usage:
        def test_refund(make_order):
            order = make_order('Card', payment_status='Completed')
    """
    def _make(method_name='Card', quantity=2, delivery_fee=Decimal('0.00'), **fields):
        subtotal = product.price * quantity
        order = Order.objects.create(
            user=customer,
            address=address,
            place_type=fields.pop('place_type', Order.PlaceType.TAKEAWAY),
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total_price=subtotal + delivery_fee - fields.get('coupon_discount', Decimal('0.00')),
            total_quantity=quantity,
            payment_method=payment_methods[method_name],
            **fields,
        )
        OrderItem.objects.create(
            order=order,
            product=product,
            quantity=quantity,
            unit_price=product.price,
            original_price=product.price,
        )
        return order

    return _make


@pytest.fixture
def paymob_settings(settings):
    settings.PAYMOB_API_URL = 'https://accept.paymob.com'
    settings.PAYMOB_SECRET_KEY = 'sk_test_paymob'
    settings.PAYMOB_PUBLIC_KEY = 'pk_test_paymob'
    settings.PAYMOB_API_KEY = 'api_key_test'
    settings.PAYMOB_HMAC_SECRET = 'hmac_test_secret'
    return settings


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

def _client_for(user):
    from rest_framework.test import APIClient
    from rest_framework_simplejwt.tokens import RefreshToken

    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/products/')
            assert response.status_code == 200
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def customer_client(customer):
    """API client carrying a bearer token for ``customer``"""
    return _client_for(customer)


@pytest.fixture
def other_customer_client(other_customer):
    return _client_for(other_customer)


@pytest.fixture
def admin_client(admin_user):
    """API client carrying a bearer token for ``admin_user``"""
    return _client_for(admin_user)
