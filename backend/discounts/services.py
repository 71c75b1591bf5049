from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone
import logging

from core_backend.results import ErrorKind, ServiceResult
from products.models import Product
from .factories import CouponStrategyFactory
from .models import Coupon, CouponUsage, GlobalDiscount

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class DiscountSource:
    PRODUCT = "product"
    CATEGORY = "category"
    GLOBAL = "global"
    NONE = "none"


@dataclass(frozen=True)
class LinePrice:
    unit_price: Decimal
    original_price: Decimal
    discount_type: str = DiscountSource.NONE
    discount_percentage: Decimal = ZERO

    @property
    def discount_amount(self) -> Decimal:
        return self.original_price - self.unit_price


@dataclass(frozen=True)
class PricedLine:
    product: Product
    quantity: int
    price: LinePrice

    @property
    def line_total(self) -> Decimal:
        return self.price.unit_price * self.quantity

    @property
    def original_total(self) -> Decimal:
        return self.price.original_price * self.quantity

    @property
    def discount_total(self) -> Decimal:
        return self.price.discount_amount * self.quantity


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount: Decimal
    free_delivery: bool
    eligible_amount: Decimal


@dataclass
class PricingSummary:
    lines: List[PricedLine] = field(default_factory=list)
    subtotal: Decimal = ZERO
    product_discount: Decimal = ZERO
    discounted_subtotal: Decimal = ZERO
    coupon: Optional[Coupon] = None
    coupon_discount: Decimal = ZERO
    coupon_message: str = ""
    free_delivery: bool = False
    total: Decimal = ZERO
    total_quantity: int = 0

    def as_dict(self):
        return {
            "items": [
                {
                    "productId": line.product.pk,
                    "name": line.product.name,
                    "quantity": line.quantity,
                    "unitPrice": str(line.price.unit_price),
                    "originalPrice": str(line.price.original_price),
                    "discountType": line.price.discount_type,
                    "discountPercentage": str(line.price.discount_percentage),
                    "lineTotal": str(line.line_total),
                }
                for line in self.lines
            ],
            "subtotal": str(self.subtotal),
            "productDiscount": str(self.product_discount),
            "discountedSubtotal": str(self.discounted_subtotal),
            "coupon": self.coupon.code if self.coupon else None,
            "couponDiscount": str(self.coupon_discount),
            "freeDelivery": self.free_delivery,
            "total": str(self.total),
            "totalQuantity": self.total_quantity,
        }


_UNSET = object()


class PricingService:
    """
    Effective prices, cart totals and coupon application.

    Exactly one discount layer applies to a line, chosen by priority:
    product sale, then category discount, then the store-wide discount.
    """

    @staticmethod
    def get_active_global_discount(at=None) -> Optional[GlobalDiscount]:
        now = at or timezone.now()
        return (
            GlobalDiscount.objects.filter(is_active=True)
            .filter(Q(start_date__isnull=True) | Q(start_date__lte=now))
            .filter(Q(end_date__isnull=True) | Q(end_date__gte=now))
            .prefetch_related("excluded_products", "excluded_categories")
            .order_by("-created_at")
            .first()
        )

    @staticmethod
    def effective_price(product: Product, at=None, global_discount=_UNSET) -> LinePrice:
        now = at or timezone.now()
        base = Decimal(product.price)

        if product.has_active_sale(now):
            sale_price = Decimal(product.sale_price).quantize(CENT, rounding=ROUND_HALF_UP)
            percentage = ((base - sale_price) / base * 100).quantize(CENT, rounding=ROUND_HALF_UP) if base else ZERO
            return LinePrice(sale_price, base, DiscountSource.PRODUCT, percentage)

        category = product.category
        if category is not None and category.has_active_discount(now):
            return PricingService._percentage_off(base, Decimal(category.discount_percentage), DiscountSource.CATEGORY)

        if global_discount is _UNSET:
            global_discount = PricingService.get_active_global_discount(now)

        if global_discount is not None and global_discount.is_currently_active(now):
            excluded_products = {p.pk for p in global_discount.excluded_products.all()}
            excluded_categories = {c.pk for c in global_discount.excluded_categories.all()}
            if product.pk not in excluded_products and product.category_id not in excluded_categories:
                return PricingService._percentage_off(base, Decimal(global_discount.percentage), DiscountSource.GLOBAL)

        return LinePrice(base, base)

    @staticmethod
    def _percentage_off(base: Decimal, percentage: Decimal, source: str) -> LinePrice:
        unit = (base * (Decimal("1") - percentage / Decimal("100"))).quantize(CENT, rounding=ROUND_HALF_UP)
        return LinePrice(max(unit, ZERO), base, source, percentage)

    @staticmethod
    def resolve_products(items) -> ServiceResult:
        """
        Turn ``[{"productId": .., "quantity": ..}]`` into ``(product, qty)``
        pairs, rejecting the whole request on the first bad entry.
        """
        if not items or not isinstance(items, (list, tuple)):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Products array is required")

        pairs = []
        for item in items:
            product_id = item.get("productId") or item.get("product_id") if isinstance(item, dict) else None
            quantity = item.get("quantity") if isinstance(item, dict) else None
            if not product_id or quantity is None:
                return ServiceResult.fail(ErrorKind.VALIDATION, "Each product must have productId and quantity")
            if not _is_positive_int(quantity):
                return ServiceResult.fail(ErrorKind.VALIDATION, "Quantity must be a positive integer")
            product = Product.objects.select_related("category").filter(pk=product_id, is_active=True).first()
            if product is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Product not found: {product_id}")
            pairs.append((product, int(quantity)))
        return ServiceResult.ok(pairs)

    @staticmethod
    def price_lines(
        lines: Iterable[Tuple[Product, int]],
        coupon: Optional[Coupon] = None,
        user=None,
        strict_coupon: bool = True,
        at=None,
    ) -> ServiceResult:
        """
        Price ``(product, quantity)`` pairs and apply an optional coupon.

        With ``strict_coupon`` an invalid coupon fails the whole call; without
        it the coupon is dropped and the reason kept in ``coupon_message``
        (a cart whose stored coupon has since expired still prices).
        """
        now = at or timezone.now()
        global_discount = PricingService.get_active_global_discount(now)

        summary = PricingSummary()
        for product, quantity in lines:
            if not _is_positive_int(quantity):
                return ServiceResult.fail(ErrorKind.VALIDATION, "Quantity must be a positive integer")
            price = PricingService.effective_price(product, now, global_discount)
            line = PricedLine(product, int(quantity), price)
            summary.lines.append(line)
            summary.subtotal += line.original_total
            summary.product_discount += line.discount_total
            summary.total_quantity += line.quantity

        summary.subtotal = summary.subtotal.quantize(CENT)
        summary.product_discount = summary.product_discount.quantize(CENT)
        summary.discounted_subtotal = summary.subtotal - summary.product_discount

        if coupon is not None:
            quote = CouponService.validate(coupon, user, summary.lines, summary.discounted_subtotal, now)
            if quote.success:
                summary.coupon = coupon
                summary.coupon_discount = quote.data.discount
                summary.free_delivery = quote.data.free_delivery
            elif strict_coupon:
                return quote
            else:
                logger.info(f"Coupon {coupon.code} dropped from pricing: {quote.message}")
                summary.coupon_message = quote.message

        summary.total = max(ZERO, summary.discounted_subtotal - summary.coupon_discount)
        return ServiceResult.ok(summary)


class CouponService:
    @staticmethod
    def get_by_code(code: str) -> Optional[Coupon]:
        if not code:
            return None
        return Coupon.objects.prefetch_related(
            "applicable_products", "applicable_categories"
        ).filter(code=code.strip().upper()).first()

    @staticmethod
    def times_used_by(coupon: Coupon, user) -> int:
        if user is None or not getattr(user, "pk", None):
            return 0
        usage = CouponUsage.objects.filter(coupon=coupon, user=user).first()
        return usage.count if usage else 0

    @staticmethod
    def eligible_lines(coupon: Coupon, lines: Sequence[PricedLine]) -> List[PricedLine]:
        if coupon.is_global:
            return list(lines)
        product_ids = {p.pk for p in coupon.applicable_products.all()}
        category_ids = {c.pk for c in coupon.applicable_categories.all()}
        return [
            line
            for line in lines
            if line.product.pk in product_ids
            or (line.product.category_id is not None and line.product.category_id in category_ids)
        ]

    @staticmethod
    def validate(coupon: Coupon, user, lines: Sequence[PricedLine], discounted_subtotal: Decimal, at=None) -> ServiceResult:
        now = at or timezone.now()

        if not coupon.is_active:
            return ServiceResult.fail(ErrorKind.POLICY, "Coupon is not active")
        if coupon.start_date and now < coupon.start_date:
            return ServiceResult.fail(ErrorKind.POLICY, "Coupon is not yet active")
        if coupon.expiry_date and now > coupon.expiry_date:
            return ServiceResult.fail(ErrorKind.POLICY, "Coupon has expired")
        if coupon.max_usage_count is not None and coupon.usage_count >= coupon.max_usage_count:
            return ServiceResult.fail(ErrorKind.POLICY, "Coupon usage limit reached")

        if CouponService.times_used_by(coupon, user) >= coupon.max_usage_per_user:
            return ServiceResult.fail(
                ErrorKind.POLICY,
                f"You have already used this coupon {coupon.max_usage_per_user} time(s)",
            )

        if coupon.min_order_amount and discounted_subtotal < coupon.min_order_amount:
            return ServiceResult.fail(
                ErrorKind.POLICY, f"Minimum order amount of {coupon.min_order_amount} required"
            )

        eligible = CouponService.eligible_lines(coupon, lines)
        if not eligible:
            return ServiceResult.fail(ErrorKind.POLICY, "Coupon is not applicable to items in your cart")

        eligible_amount = sum((line.line_total for line in eligible), ZERO)
        strategy = CouponStrategyFactory.get_strategy(coupon)
        discount = min(strategy.apply(coupon, eligible_amount), discounted_subtotal)

        return ServiceResult.ok(
            CouponQuote(
                coupon=coupon,
                discount=discount,
                free_delivery=strategy.grants_free_delivery,
                eligible_amount=eligible_amount,
            ),
            message="Coupon is valid",
        )

    @staticmethod
    def validate_code(code: str, user, lines: Sequence[Tuple[Product, int]]) -> ServiceResult:
        coupon = CouponService.get_by_code(code)
        if coupon is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Invalid coupon code")
        result = PricingService.price_lines(lines, coupon=coupon, user=user)
        if not result.success:
            return result
        return ServiceResult.ok(result.data, message="Coupon is valid")

    @staticmethod
    @transaction.atomic
    def increment_usage(coupon: Coupon, user) -> bool:
        """
        Record one redemption. The per-user ledger row is locked first and
        the global counter only moves while it is still below
        ``max_usage_count``, so concurrent redemptions cannot overshoot
        either cap.
        """
        usage, _ = CouponUsage.objects.select_for_update().get_or_create(coupon=coupon, user=user)
        if usage.count >= coupon.max_usage_per_user:
            logger.warning(f"Coupon {coupon.code}: user {user.pk} already at per-user limit")
            return False

        updated = (
            Coupon.objects.filter(pk=coupon.pk)
            .filter(Q(max_usage_count__isnull=True) | Q(usage_count__lt=F("max_usage_count")))
            .update(usage_count=F("usage_count") + 1)
        )
        if not updated:
            logger.warning(f"Coupon {coupon.code}: usage limit reached, redemption not recorded")
            return False

        CouponUsage.objects.filter(pk=usage.pk).update(count=F("count") + 1)
        logger.info(f"Coupon {coupon.code}: redeemed by user {user.pk}")
        return True


def _is_positive_int(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 1
    if isinstance(value, str) and value.isdigit():
        return int(value) >= 1
    return False
