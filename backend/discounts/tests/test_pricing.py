"""
Pricing engine tests.

Covers the single-layer discount priority (product sale, category
discount, store-wide discount), cart totals and request line resolution.
"""
import pytest
from decimal import Decimal
from datetime import timedelta
from django.utils import timezone

from discounts.models import GlobalDiscount
from discounts.services import DiscountSource, PricingService


@pytest.mark.django_db
class TestEffectivePrice:
    """Exactly one discount layer applies to a product"""

    def test_regular_price_without_discounts(self, product):
        price = PricingService.effective_price(product)

        assert price.unit_price == Decimal('100.00')
        assert price.original_price == Decimal('100.00')
        assert price.discount_type == DiscountSource.NONE
        assert price.discount_amount == Decimal('0.00')

    def test_active_sale_price_wins(self, sale_product):
        price = PricingService.effective_price(sale_product)

        assert price.unit_price == Decimal('60.00')
        assert price.original_price == Decimal('80.00')
        assert price.discount_type == DiscountSource.PRODUCT
        assert price.discount_percentage == Decimal('25.00')

    def test_sale_outside_window_is_ignored(self, sale_product):
        sale_product.sale_end = timezone.now() - timedelta(hours=1)
        sale_product.sale_start = timezone.now() - timedelta(days=2)
        sale_product.save()

        price = PricingService.effective_price(sale_product)

        assert price.unit_price == Decimal('80.00')
        assert price.discount_type == DiscountSource.NONE

    def test_sale_price_not_below_regular_is_ignored(self, product):
        product.is_on_sale = True
        product.sale_price = Decimal('120.00')
        product.save()

        assert PricingService.effective_price(product).unit_price == Decimal('100.00')

    def test_category_discount_applies(self, product, category):
        category.discount_percentage = Decimal('20.00')
        category.is_discount_active = True
        category.save()
        product.refresh_from_db()

        price = PricingService.effective_price(product)

        assert price.unit_price == Decimal('80.00')
        assert price.discount_type == DiscountSource.CATEGORY
        assert price.discount_percentage == Decimal('20.00')

    def test_sale_beats_category_discount(self, sale_product, category):
        category.discount_percentage = Decimal('50.00')
        category.is_discount_active = True
        category.save()
        sale_product.refresh_from_db()

        price = PricingService.effective_price(sale_product)

        assert price.unit_price == Decimal('60.00')
        assert price.discount_type == DiscountSource.PRODUCT

    def test_global_discount_applies_when_nothing_else_does(self, second_product):
        GlobalDiscount.objects.create(name='Ramadan', percentage=Decimal('10.00'))

        price = PricingService.effective_price(second_product)

        assert price.unit_price == Decimal('45.00')
        assert price.discount_type == DiscountSource.GLOBAL

    def test_category_discount_beats_global(self, product, category):
        category.discount_percentage = Decimal('20.00')
        category.is_discount_active = True
        category.save()
        product.refresh_from_db()
        GlobalDiscount.objects.create(name='Ramadan', percentage=Decimal('50.00'))

        price = PricingService.effective_price(product)

        assert price.unit_price == Decimal('80.00')
        assert price.discount_type == DiscountSource.CATEGORY

    def test_global_discount_skips_excluded_product(self, product, second_product):
        discount = GlobalDiscount.objects.create(name='Ramadan', percentage=Decimal('10.00'))
        discount.excluded_products.add(product)

        assert PricingService.effective_price(product).unit_price == Decimal('100.00')
        assert PricingService.effective_price(second_product).unit_price == Decimal('45.00')

    def test_global_discount_skips_excluded_category(self, product, category):
        discount = GlobalDiscount.objects.create(name='Ramadan', percentage=Decimal('10.00'))
        discount.excluded_categories.add(category)

        assert PricingService.effective_price(product).discount_type == DiscountSource.NONE

    def test_percentage_rounds_half_up(self, drinks_category):
        odd = drinks_category.products.create(name='Espresso', price=Decimal('10.05'))
        GlobalDiscount.objects.create(name='Half', percentage=Decimal('50.00'))

        # 5.025 rounds to 5.03
        assert PricingService.effective_price(odd).unit_price == Decimal('5.03')


@pytest.mark.django_db
class TestGlobalDiscountOverlap:
    """Overlapping active store-wide discounts are rejected when saving"""

    def test_second_open_ended_discount_rejected(self):
        from django.core.exceptions import ValidationError

        GlobalDiscount.objects.create(name='First', percentage=Decimal('10.00'))

        with pytest.raises(ValidationError):
            GlobalDiscount.objects.create(name='Second', percentage=Decimal('5.00'))

    def test_disjoint_windows_allowed(self):
        now = timezone.now()
        GlobalDiscount.objects.create(
            name='January', percentage=Decimal('10.00'),
            start_date=now, end_date=now + timedelta(days=10),
        )
        GlobalDiscount.objects.create(
            name='February', percentage=Decimal('10.00'),
            start_date=now + timedelta(days=11), end_date=now + timedelta(days=20),
        )

        assert GlobalDiscount.objects.count() == 2

    def test_inactive_discount_may_overlap(self):
        GlobalDiscount.objects.create(name='First', percentage=Decimal('10.00'))
        GlobalDiscount.objects.create(name='Draft', percentage=Decimal('20.00'), is_active=False)

        assert PricingService.get_active_global_discount().name == 'First'

    def test_api_rejects_overlap_with_400(self, admin_client):
        GlobalDiscount.objects.create(name='First', percentage=Decimal('10.00'))

        response = admin_client.post(
            '/api/discounts/global/', {'name': 'Second', 'percentage': '15.00'}, format='json'
        )

        assert response.status_code == 400
        assert response.data['success'] is False
        assert 'overlaps' in response.data['message']


@pytest.mark.django_db
class TestPriceLines:
    """Totals for a set of (product, quantity) lines"""

    def test_totals_without_coupon(self, product, sale_product):
        result = PricingService.price_lines([(product, 2), (sale_product, 1)])

        assert result.success
        summary = result.data
        assert summary.subtotal == Decimal('280.00')
        assert summary.product_discount == Decimal('20.00')
        assert summary.discounted_subtotal == Decimal('260.00')
        assert summary.total == Decimal('260.00')
        assert summary.total_quantity == 3

    def test_zero_quantity_rejected(self, product):
        result = PricingService.price_lines([(product, 0)])

        assert not result.success
        assert result.message == 'Quantity must be a positive integer'

    def test_summary_serializes_as_strings(self, product):
        data = PricingService.price_lines([(product, 1)]).data.as_dict()

        assert data['subtotal'] == '100.00'
        assert data['items'][0]['productId'] == product.pk
        assert data['coupon'] is None


@pytest.mark.django_db
class TestResolveProducts:
    """Turning request lines into products"""

    def test_resolves_valid_lines(self, product, second_product):
        result = PricingService.resolve_products([
            {'productId': product.pk, 'quantity': 2},
            {'productId': second_product.pk, 'quantity': '1'},
        ])

        assert result.success
        assert result.data == [(product, 2), (second_product, 1)]

    def test_empty_list_rejected(self):
        result = PricingService.resolve_products([])

        assert not result.success
        assert result.message == 'Products array is required'

    def test_missing_quantity_rejected(self, product):
        result = PricingService.resolve_products([{'productId': product.pk}])

        assert result.message == 'Each product must have productId and quantity'

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, True, 'two'])
    def test_bad_quantity_rejected(self, product, quantity):
        result = PricingService.resolve_products([{'productId': product.pk, 'quantity': quantity}])

        assert not result.success
        assert result.message == 'Quantity must be a positive integer'

    def test_unknown_product_is_not_found(self):
        result = PricingService.resolve_products([{'productId': 9999, 'quantity': 1}])

        assert result.status_code == 404
        assert result.message == 'Product not found: 9999'

    def test_inactive_product_is_not_found(self, product):
        product.is_active = False
        product.save()

        result = PricingService.resolve_products([{'productId': product.pk, 'quantity': 1}])

        assert result.status_code == 404
