"""
Error types for the reporting engine.

Every failure the engine raises on bad input derives from ReportError so
callers can reject a single record without catching unrelated bugs.
"""

from typing import Optional


class ReportError(Exception):
    """Base class for reporting engine failures."""


class UnknownCurrency(ReportError):
    """Raised when a currency code has no entry in the scale table."""
    def __init__(self, currency: object):
        super().__init__(f"Unknown currency: {currency!r}")
        self.currency = currency


class InvalidExchangeRate(ReportError):
    """Raised when a record's exchange rate is not a positive number."""
    def __init__(self, rate: object, currency: Optional[str] = None):
        target = f" for {currency}" if currency else ""
        super().__init__(f"Exchange rate must be > 0{target}, got {rate!r}")
        self.rate = rate
        self.currency = currency


class InvalidRecord(ReportError):
    """Raised when a raw record is malformed (timestamp, amounts, identifiers)."""


class MixedBaseCurrency(ReportError):
    """Raised when one report run contains more than one base currency."""
    def __init__(self, currencies):
        ordered = sorted(currencies)
        super().__init__(
            f"Records use more than one base currency: {', '.join(ordered)}"
        )
        self.currencies = ordered
