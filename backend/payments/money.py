"""
Monetary precision helpers for gateway calls.

Both gateways take integer minor units (cents / piastres). Amounts are
quantized to the currency's precision BEFORE conversion so that the value
sent to a gateway always matches the Decimal stored on the order.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CURRENCY_EXPONENT = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "EGP": 2,  # piastres
    "SAR": 2,
    "AED": 2,
    "JPY": 0,
    "KWD": 3,
}


def currency_exponent(currency: str) -> int:
    """
    Number of decimal places for a currency; unknown codes default to 2.

    Examples:
        >>> currency_exponent("egp")
        2
        >>> currency_exponent("JPY")
        0
    """
    return CURRENCY_EXPONENT.get((currency or "").upper(), 2)


def quantize(currency: str, amount: Union[Decimal, str, int, float]) -> Decimal:
    if isinstance(amount, float):
        amount = str(amount)
    return Decimal(amount).quantize(
        Decimal(10) ** -currency_exponent(currency), rounding=ROUND_HALF_UP
    )


def to_minor(currency: str, amount: Union[Decimal, str, int, float]) -> int:
    """
    Convert to minor units after quantization.

    Examples:
        >>> to_minor("USD", "10.125")
        1013
        >>> to_minor("EGP", Decimal("250"))
        25000
    """
    quantized = quantize(currency, amount)
    return int((quantized * (10 ** currency_exponent(currency))).to_integral_value())
