from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from .models import Coupon
import logging

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class CouponStrategy(ABC):
    """The interface for a coupon discount strategy."""

    grants_free_delivery = False

    @abstractmethod
    def apply(self, coupon: Coupon, eligible_amount: Decimal) -> Decimal:
        """Return the monetary discount for ``eligible_amount``."""
        pass


class PercentageCouponStrategy(CouponStrategy):
    """Takes a percentage off the eligible amount, bounded by the coupon cap."""

    def apply(self, coupon: Coupon, eligible_amount: Decimal) -> Decimal:
        if eligible_amount <= 0:
            return Decimal("0.00")

        discount_amount = eligible_amount * Decimal(coupon.discount_value) / Decimal("100")
        if coupon.max_discount_amount is not None and discount_amount > coupon.max_discount_amount:
            logger.debug(f"Coupon {coupon.code}: capped at {coupon.max_discount_amount}")
            discount_amount = Decimal(coupon.max_discount_amount)
        return min(discount_amount, eligible_amount).quantize(CENT, rounding=ROUND_HALF_UP)


class FixedAmountCouponStrategy(CouponStrategy):
    """Takes a fixed amount off, never more than the eligible amount."""

    def apply(self, coupon: Coupon, eligible_amount: Decimal) -> Decimal:
        if eligible_amount <= 0:
            return Decimal("0.00")

        discount_amount = min(eligible_amount, Decimal(coupon.discount_value))
        return discount_amount.quantize(CENT, rounding=ROUND_HALF_UP)


class FreeDeliveryCouponStrategy(CouponStrategy):
    """No monetary discount; the delivery fee is waived instead."""

    grants_free_delivery = True

    def apply(self, coupon: Coupon, eligible_amount: Decimal) -> Decimal:
        return Decimal("0.00")
