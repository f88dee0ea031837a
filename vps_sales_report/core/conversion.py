"""
Base-currency conversion.

Rate convention: a record's ``rate`` is the number of base-currency main
units paid for one main unit of the record's own currency. A USD payment
with rate 0.92 into EUR means 1 USD = 0.92 EUR.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from .errors import InvalidExchangeRate
from .units import from_smallest_units, get_scale

Rate = Union[Decimal, int, float, str]


def coerce_rate(rate: Rate, currency: Optional[str] = None) -> Decimal:
    """Normalize a rate to a positive Decimal.

    Floats go through ``str`` so 0.92 stays 0.92 rather than its binary
    approximation.

    Raises:
        InvalidExchangeRate: If the rate is not numeric, not finite or <= 0
    """
    if isinstance(rate, bool) or rate is None:
        raise InvalidExchangeRate(rate, currency)
    try:
        value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidExchangeRate(rate, currency)
    if not value.is_finite() or value <= 0:
        raise InvalidExchangeRate(rate, currency)
    return value


def to_base_currency(
    amount_smallest_units: int,
    currency: str,
    rate: Rate,
    base_currency: str,
) -> Decimal:
    """Project a native smallest-unit amount into base-currency main units.

    Args:
        amount_smallest_units: Amount in the record currency's smallest unit
        currency: Record currency code
        rate: Base main units per native main unit
        base_currency: Company reporting currency code

    Returns:
        Exact base-currency amount in main units

    Raises:
        UnknownCurrency: If either currency is not mapped
        InvalidExchangeRate: If rate <= 0
    """
    get_scale(base_currency)
    factor = coerce_rate(rate, currency)
    return from_smallest_units(amount_smallest_units, currency) * factor
