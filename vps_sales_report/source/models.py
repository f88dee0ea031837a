"""
Data models for report inputs.

Defines the raw financial records returned by the admin API and the
filter used to request them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from vps_sales_report.core.errors import InvalidRecord, ReportError


class RecordKind(Enum):
    """Kind of report a record belongs to; also the CSV filename prefix."""
    PAYMENT = "payments"
    REFERRAL = "referrals"


@dataclass(frozen=True)
class RawFinancialRecord:
    """One payment or referral as fetched from the admin API.

    Amounts are smallest units of ``currency``. ``rate`` converts one main
    unit of ``currency`` into main units of ``base_currency``.
    """
    kind: RecordKind
    created: datetime
    amount: int
    currency: str
    rate: Decimal
    base_currency: str
    tax: int = 0
    record_id: Optional[str] = None
    vm_id: Optional[int] = None
    ref_code: Optional[str] = None
    payment_method: Optional[str] = None
    is_paid: Optional[bool] = None
    period: Optional[str] = None  # server-side period label, payments only

    def __post_init__(self):
        """Validate the fields the aggregator relies on."""
        if not isinstance(self.created, datetime):
            raise InvalidRecord(f"created must be a datetime, got {self.created!r}")
        for name in ("amount", "tax"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidRecord(f"{name} must be an int, got {value!r}")
            if value < 0:
                raise InvalidRecord(f"{name} cannot be negative, got {value}")
        if not self.currency:
            raise InvalidRecord("currency is required")
        if not self.base_currency:
            raise InvalidRecord("base_currency is required")

    def describe(self) -> str:
        """Short label used in log lines and rejection messages."""
        origin = self.record_id or self.vm_id or self.ref_code or "?"
        return f"{self.kind.value[:-1]} {origin} @ {self.created.isoformat()}"


@dataclass(frozen=True)
class RejectedRecord:
    """A record excluded from a report, with the reason."""
    error: ReportError
    index: Optional[int] = None
    raw: object = None

    @property
    def message(self) -> str:
        location = f"#{self.index}: " if self.index is not None else ""
        return f"{location}{self.error}"


@dataclass(frozen=True)
class ReportFilter:
    """Parameters of one report request."""
    start_date: date
    end_date: date
    company_id: Optional[int] = None
    currency: Optional[str] = None
    ref_code: Optional[str] = None

    def __post_init__(self):
        """Validate the date range is logical."""
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")


@dataclass(frozen=True)
class ReportData:
    """Records fetched for a report request."""
    kind: RecordKind
    start_date: date
    end_date: date
    records: List[RawFinancialRecord]
    rejected: List[RejectedRecord] = field(default_factory=list)

    @property
    def base_currency(self) -> Optional[str]:
        """Base currency of the run, taken from the first record."""
        return self.records[0].base_currency if self.records else None

    @property
    def date_range(self) -> Tuple[str, str]:
        return self.start_date.isoformat(), self.end_date.isoformat()
