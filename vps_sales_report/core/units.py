"""
Currency unit normalization.

Converts between a currency's smallest-unit integer encoding and its
human-readable main unit. All scales come from CURRENCY_SCALES; no other
module divides by a literal.

Fiat amounts are stored in cents. Bitcoin amounts are stored in
millisatoshis (1 BTC = 100,000,000 sats = 100,000,000,000 msat). The
"sats" shown in the console are a separate, named conversion
(msats_to_sats), not a second BTC scale.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Union

from .errors import UnknownCurrency

MSATS_PER_SAT = 1000
SATS_PER_BTC = 100_000_000

Number = Union[int, str, Decimal]


@dataclass(frozen=True)
class CurrencyScale:
    """Smallest-unit encoding for one currency."""
    code: str
    exponent: int  # smallest units per main unit == 10 ** exponent
    display_places: int  # decimals shown for main-unit values

    def __post_init__(self):
        """Validate scale values."""
        if self.exponent < 0:
            raise ValueError("exponent cannot be negative")
        if self.display_places < 0:
            raise ValueError("display_places cannot be negative")

    @property
    def factor(self) -> int:
        """Smallest units per main unit."""
        return 10 ** self.exponent

    @property
    def is_bitcoin(self) -> bool:
        return self.code == "BTC"


CURRENCY_SCALES: Dict[str, CurrencyScale] = {
    scale.code: scale
    for scale in (
        CurrencyScale("USD", exponent=2, display_places=2),
        CurrencyScale("EUR", exponent=2, display_places=2),
        CurrencyScale("GBP", exponent=2, display_places=2),
        CurrencyScale("CAD", exponent=2, display_places=2),
        CurrencyScale("CHF", exponent=2, display_places=2),
        CurrencyScale("AUD", exponent=2, display_places=2),
        # The platform bills JPY in hundredths like every other fiat code.
        CurrencyScale("JPY", exponent=2, display_places=2),
        CurrencyScale("BTC", exponent=11, display_places=8),
    )
}

SUPPORTED_CURRENCIES = tuple(CURRENCY_SCALES)


def get_scale(currency: str) -> CurrencyScale:
    """Look up the scale for a currency code.

    Args:
        currency: Upper-case currency code (e.g. "USD", "BTC")

    Returns:
        CurrencyScale for the code

    Raises:
        UnknownCurrency: If the code is not in CURRENCY_SCALES
    """
    if not isinstance(currency, str) or currency not in CURRENCY_SCALES:
        raise UnknownCurrency(currency)
    return CURRENCY_SCALES[currency]


def from_smallest_units(smallest_amount: int, currency: str) -> Decimal:
    """Convert a smallest-unit integer into an exact main-unit Decimal.

    Args:
        smallest_amount: Amount in cents (fiat) or millisatoshis (BTC)
        currency: Currency code

    Returns:
        Main-unit amount, exact (no rounding)

    Raises:
        UnknownCurrency: If the currency is not mapped
        ValueError: If the amount is not an integer
    """
    scale = get_scale(currency)
    if isinstance(smallest_amount, bool) or not isinstance(smallest_amount, int):
        raise ValueError(f"Smallest-unit amount must be an int, got {smallest_amount!r}")
    return Decimal(smallest_amount).scaleb(-scale.exponent)


def to_smallest_units(main_amount: Number, currency: str) -> int:
    """Convert a main-unit amount into its smallest-unit integer.

    Floats are not accepted; pass a Decimal or a numeric string so that
    the value is exact.

    Args:
        main_amount: Amount in main units (e.g. Decimal("12.34") USD)
        currency: Currency code

    Returns:
        Integer amount in smallest units

    Raises:
        UnknownCurrency: If the currency is not mapped
        ValueError: If the amount is not numeric or is finer than the smallest unit
    """
    scale = get_scale(currency)
    if isinstance(main_amount, (bool, float)):
        raise ValueError(f"Main-unit amount must be int, str or Decimal, got {main_amount!r}")
    try:
        value = Decimal(main_amount)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Main-unit amount is not numeric: {main_amount!r}")
    if not value.is_finite():
        raise ValueError(f"Main-unit amount is not finite: {main_amount!r}")

    smallest = value.scaleb(scale.exponent)
    if smallest != smallest.to_integral_value():
        raise ValueError(
            f"{main_amount} {currency} is finer than the smallest unit "
            f"(1/{scale.factor})"
        )
    return int(smallest)


def quantize_main(main_amount: Decimal, currency: str) -> Decimal:
    """Round a main-unit amount to the currency's display places (half up)."""
    places = get_scale(currency).display_places
    return main_amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def msats_to_sats(msats: int) -> Decimal:
    """Convert millisatoshis to satoshis (exact)."""
    return Decimal(msats) / MSATS_PER_SAT


def sats_to_msats(sats: Number) -> int:
    """Convert satoshis to millisatoshis.

    Raises:
        ValueError: If the value is finer than one millisatoshi
    """
    value = Decimal(sats) * MSATS_PER_SAT
    if value != value.to_integral_value():
        raise ValueError(f"{sats} sats is finer than one millisatoshi")
    return int(value)
