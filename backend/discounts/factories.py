from .models import Coupon
from .strategies import (
    CouponStrategy,
    PercentageCouponStrategy,
    FixedAmountCouponStrategy,
    FreeDeliveryCouponStrategy,
)


class CouponStrategyFactory:
    """
    Factory for creating a coupon strategy based on the coupon's type.
    """

    _strategies = {
        Coupon.DiscountType.PERCENTAGE: PercentageCouponStrategy,
        Coupon.DiscountType.FIXED: FixedAmountCouponStrategy,
        Coupon.DiscountType.FREE_DELIVERY: FreeDeliveryCouponStrategy,
    }

    @staticmethod
    def get_strategy(coupon: Coupon) -> CouponStrategy:
        """
        Selects and returns the appropriate strategy instance.
        """
        strategy_class = CouponStrategyFactory._strategies.get(coupon.discount_type)

        if strategy_class:
            return strategy_class()

        raise NotImplementedError(
            f"No strategy implemented for coupon type '{coupon.discount_type}'"
        )
