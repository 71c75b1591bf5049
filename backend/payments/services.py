import logging
from typing import Optional

from django.db import transaction

from core_backend.results import ErrorKind, ServiceResult
from .models import PaymentMethod, PaymentProvider, PaymobConfig, StripeConfig

logger = logging.getLogger(__name__)


class PaymentMethodRegistry:
    """
    Single source of truth for which payment methods customers may use.

    Two checks are kept apart on purpose:
    - ``resolve`` answers "is this method switched on?"
    - ``ensure_gateway_ready`` answers "is the provider behind it configured?"
    """

    CONFIG_BY_PROVIDER = {
        PaymentProvider.STRIPE: StripeConfig,
        PaymentProvider.PAYMOB: PaymobConfig,
    }

    @staticmethod
    def is_known(name) -> bool:
        return name in PaymentMethod.Name.values

    @staticmethod
    def is_active(name) -> bool:
        if not PaymentMethodRegistry.is_known(name):
            return False
        return PaymentMethod.objects.filter(name=name, is_active=True).exists()

    @staticmethod
    def resolve(name) -> ServiceResult:
        if not PaymentMethodRegistry.is_known(name):
            return ServiceResult.fail(ErrorKind.UNSUPPORTED_METHOD, f"Unsupported payment method: {name}")

        method = PaymentMethod.objects.filter(name=name).first()
        if method is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Payment method {name} not found")
        if not method.is_active:
            return ServiceResult.fail(
                ErrorKind.METHOD_DISABLED,
                f"{name} payment method is currently unavailable. Please choose another payment method.",
            )
        return ServiceResult.ok(method)

    @staticmethod
    def config_for(provider) -> Optional[object]:
        config_class = PaymentMethodRegistry.CONFIG_BY_PROVIDER.get(provider)
        return config_class.load() if config_class else None

    @staticmethod
    def ensure_gateway_ready(method: PaymentMethod) -> ServiceResult:
        if method.provider == PaymentProvider.INTERNAL:
            return ServiceResult.ok()

        config = PaymentMethodRegistry.config_for(method.provider)
        if config is None or not config.is_active:
            logger.warning(f"{method.name} requested but {method.provider} config is missing or inactive")
            return ServiceResult.fail(
                ErrorKind.GATEWAY_NOT_CONFIGURED, f"{method.provider} payments are not configured"
            )
        return ServiceResult.ok(config)

    @staticmethod
    def bounds_config_for(method: PaymentMethod):
        """
        Config whose amount bounds apply to ``method``. Cash on delivery is
        held to the card gateway's limits when a card config exists.
        """
        if method.provider == PaymentProvider.INTERNAL:
            return StripeConfig.load()
        return PaymentMethodRegistry.config_for(method.provider)

    @staticmethod
    def active_methods():
        return PaymentMethod.objects.filter(is_active=True)

    @staticmethod
    def set_active(method: PaymentMethod, is_active: bool) -> PaymentMethod:
        method.is_active = is_active
        method.save(update_fields=["is_active", "updated_at"])
        logger.info(f"Payment method {method.name} {'enabled' if is_active else 'disabled'}")
        return method

    @staticmethod
    @transaction.atomic
    def seed_defaults():
        """
        Create a registry row for every known method. Gateway methods start
        disabled; cash on delivery starts enabled. Existing rows are left alone.
        """
        created = []
        for name in PaymentMethod.Name:
            _, was_created = PaymentMethod.objects.get_or_create(
                name=name,
                defaults={"is_active": name == PaymentMethod.Name.COD},
            )
            if was_created:
                created.append(name.value)
        if created:
            logger.info(f"Seeded payment methods: {', '.join(created)}")
        return created
