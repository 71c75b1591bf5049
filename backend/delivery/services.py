from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from core_backend.results import ErrorKind, ServiceResult
from .models import DeliveryLocation

logger = logging.getLogger(__name__)

ONLINE = "Online"


@dataclass(frozen=True)
class DeliveryQuote:
    fee: Decimal
    location: Optional[DeliveryLocation] = None
    free_delivery_applied: bool = False
    threshold: Decimal = Decimal("0.00")

    def as_dict(self):
        return {
            "deliveryFee": str(self.fee),
            "freeDeliveryApplied": self.free_delivery_applied,
            "freeDeliveryThreshold": str(self.threshold),
            "estimatedDeliveryTime": self.location.estimated_delivery_time if self.location else None,
        }


class DeliveryFeeResolver:
    """
    Flat per-area delivery fee, waived above the free-delivery threshold or
    by a free-delivery coupon. Only Online orders pay delivery.
    """

    @staticmethod
    def free_delivery_threshold() -> Decimal:
        """The larger of the thresholds configured on the two gateways."""
        from payments.models import PaymobConfig, StripeConfig

        thresholds = [
            config.free_delivery_threshold
            for config in (StripeConfig.load(), PaymobConfig.load())
            if config is not None and config.free_delivery_threshold
        ]
        return max(thresholds, default=Decimal("0.00"))

    @staticmethod
    def find_location(governorate: str, city: str) -> Optional[DeliveryLocation]:
        return DeliveryLocation.objects.filter(
            governorate=governorate.strip(),
            city=city.strip(),
            is_active=True,
        ).first()

    @staticmethod
    def resolve(place_type, governorate, city, subtotal: Decimal, free_delivery: bool = False) -> ServiceResult:
        if place_type != ONLINE:
            return ServiceResult.ok(DeliveryQuote(fee=Decimal("0.00")))

        if not governorate or not city:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Governorate and city are required for online orders"
            )

        location = DeliveryFeeResolver.find_location(governorate, city)
        if location is None:
            logger.info(f"No active delivery location for {governorate}/{city}")
            return ServiceResult.fail(ErrorKind.POLICY, "Delivery not available for this location")

        threshold = DeliveryFeeResolver.free_delivery_threshold()
        if free_delivery or (threshold > 0 and subtotal >= threshold):
            return ServiceResult.ok(
                DeliveryQuote(fee=Decimal("0.00"), location=location, free_delivery_applied=True, threshold=threshold)
            )

        return ServiceResult.ok(DeliveryQuote(fee=location.fee, location=location, threshold=threshold))
