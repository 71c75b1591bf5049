from .models import PaymentMethod
from .strategies import (
    PaymentStrategy,
    CashOnDeliveryStrategy,
    PaymobStrategy,
    StripeCheckoutStrategy,
)


class PaymentStrategyFactory:
    """
    A factory for creating payment strategy instances.
    """

    _strategies = {
        PaymentMethod.Name.CARD: StripeCheckoutStrategy,
        PaymentMethod.Name.PAYMOB_CARD: PaymobStrategy,
        PaymentMethod.Name.PAYMOB_WALLET: PaymobStrategy,
        PaymentMethod.Name.PAYMOB_KIOSK: PaymobStrategy,
        PaymentMethod.Name.PAYMOB_INSTALLMENTS: PaymobStrategy,
        PaymentMethod.Name.PAYMOB_VALU: PaymobStrategy,
        PaymentMethod.Name.COD: CashOnDeliveryStrategy,
    }

    @classmethod
    def get_strategy(cls, method) -> PaymentStrategy:
        """
        Accepts a PaymentMethod row or a method name.
        """
        name = method.name if isinstance(method, PaymentMethod) else method
        strategy_class = cls._strategies.get(name)
        if strategy_class is None:
            raise ValueError(f"Unsupported payment method: {name}")
        return strategy_class()
