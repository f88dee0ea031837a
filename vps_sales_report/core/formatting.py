"""
Human-readable amount formatting for console output.
"""

from decimal import Decimal

from .units import (
    MSATS_PER_SAT,
    SATS_PER_BTC,
    from_smallest_units,
    get_scale,
    msats_to_sats,
    quantize_main,
)


def format_amount(smallest_amount: int, currency: str) -> str:
    """Format a smallest-unit amount.

    Fiat is shown in main units with its code (``"1,234.56 USD"``). BTC is
    shown in sats with up to three decimals, the millisatoshi remainder
    (``"1,234.567 sats"``).

    Raises:
        UnknownCurrency: If the currency is not mapped
    """
    scale = get_scale(currency)
    if scale.is_bitcoin:
        sats = msats_to_sats(smallest_amount)
        return f"{_trim(f'{sats:,.3f}')} sats"
    return f"{quantize_main(from_smallest_units(smallest_amount, currency), currency):,f} {currency}"


def format_base_amount(main_amount: Decimal, currency: str) -> str:
    """Format an amount that is already in main units (e.g. base-currency totals)."""
    scale = get_scale(currency)
    if scale.is_bitcoin:
        msats = main_amount * scale.factor
        return format_amount(int(msats.to_integral_value()), currency)
    return f"{quantize_main(main_amount, currency):,f} {currency}"


def format_sats(sats: int) -> str:
    """Compact sats display: ``950 sats``, ``12.5k sats``, ``3.40M sats``, ``₿1.00000000``."""
    if sats == 0:
        return "0 sats"
    if sats < 1000:
        return f"{sats} sats"
    if sats < 1_000_000:
        return f"{sats / 1000:.1f}k sats"
    if sats < SATS_PER_BTC:
        return f"{sats / 1_000_000:.2f}M sats"
    return f"₿{Decimal(sats) / SATS_PER_BTC:.8f}"


def format_msats(msats: int) -> str:
    """Compact display of a millisatoshi amount (whole sats only)."""
    return format_sats(msats // MSATS_PER_SAT)


def _trim(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
