"""
Report export.

Serializes raw records to CSV (one row per record, for audit) and period
summaries to the condensed JSON "sales format" pasted into the accounting
tool. Everything here is a pure function returning text or plain data;
writing files is left to the caller.
"""

import csv
import io
import json
import logging
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .aggregation import PeriodSummary
from .conversion import coerce_rate, to_base_currency
from .periods import Interval, period_key, to_calendar_time
from .units import from_smallest_units, quantize_main
from vps_sales_report.source.models import RawFinancialRecord, RecordKind

LOGGER = logging.getLogger(__name__)

PAYMENT_CSV_HEADERS = (
    "Period",
    "VM ID",
    "Created",
    "Amount (Main Unit)",
    "Currency",
    "Payment Method",
    "Tax (Main Unit)",
    "Is Paid",
    "Rate",
)

REFERRAL_CSV_HEADERS = (
    "VM ID",
    "Referral Code",
    "Created Date",
    "Amount (Main Unit)",
    "Currency",
    "Exchange Rate",
    "Base Currency Amount",
    "Base Currency",
)

DEFAULT_SALES_LABEL = "Sales"
DEFAULT_TAX_LABEL = "Tax Collected"

DateLike = Union[date, str]


def csv_filename(kind: RecordKind, start_date: DateLike, end_date: DateLike) -> str:
    """Return ``{kind}-{start}-to-{end}.csv``, e.g. ``payments-2024-01-01-to-2024-12-31.csv``."""
    return f"{kind.value}-{_date_text(start_date)}-to-{_date_text(end_date)}.csv"


def payments_to_csv(
    records: Iterable[RawFinancialRecord],
    interval: Optional[Interval] = None,
    tz: tzinfo = timezone.utc,
) -> str:
    """Render payment records as CSV with every field double-quoted.

    The Period column uses the server-provided label when the record has
    one, otherwise the key derived for ``interval`` (blank if no interval).

    Args:
        records: Payment records, exported in the given order
        interval: Optional interval used to fill missing period labels
        tz: Calendar timezone for derived period labels

    Returns:
        CSV text, header first, ``\\n`` line endings

    Raises:
        UnknownCurrency: If a record's currency is not mapped
    """
    rows: List[Sequence[str]] = []
    for record in records:
        period = record.period
        if not period and interval is not None:
            period = period_key(record.created, interval, tz)
        rows.append((
            period or "",
            _text(record.vm_id),
            iso_timestamp(record.created),
            _main_text(from_smallest_units(record.amount, record.currency), record.currency),
            record.currency,
            _text(record.payment_method),
            _main_text(from_smallest_units(record.tax, record.currency), record.currency),
            "Yes" if record.is_paid else "No",
            _rate_text(record.rate),
        ))
    LOGGER.debug("Rendered %d payment rows", len(rows))
    return _write_csv(PAYMENT_CSV_HEADERS, rows)


def referrals_to_csv(
    records: Iterable[RawFinancialRecord],
    split_percent: Union[Decimal, int, str] = 100,
) -> str:
    """Render referral records as CSV with every field double-quoted.

    Both amount columns are scaled by the referral split percent, the
    share of each referred payment paid out as commission.

    Args:
        records: Referral records, exported in the given order
        split_percent: Commission share in percent, 0 < split <= 100

    Returns:
        CSV text, header first, ``\\n`` line endings

    Raises:
        ValueError: If split_percent is outside (0, 100]
        UnknownCurrency: If a currency is not mapped
        InvalidExchangeRate: If a record's rate is not positive
    """
    share = referral_share(split_percent)
    rows: List[Sequence[str]] = []
    for record in records:
        native = from_smallest_units(record.amount, record.currency) * share
        base = to_base_currency(
            record.amount, record.currency, record.rate, record.base_currency
        ) * share
        rows.append((
            _text(record.vm_id),
            _text(record.ref_code),
            iso_timestamp(record.created),
            _main_text(native, record.currency),
            record.currency,
            _rate_text(record.rate),
            _main_text(base, record.base_currency),
            record.base_currency,
        ))
    LOGGER.debug("Rendered %d referral rows", len(rows))
    return _write_csv(REFERRAL_CSV_HEADERS, rows)


def referral_share(split_percent: Union[Decimal, int, str]) -> Decimal:
    """Convert a split percent into a multiplier (33 -> 0.33).

    Raises:
        ValueError: If the percent is not a number or outside (0, 100]
    """
    try:
        percent = Decimal(str(split_percent))
    except InvalidOperation:
        raise ValueError(f"split_percent must be a number, got {split_percent!r}")
    if not percent.is_finite() or percent <= 0 or percent > 100:
        raise ValueError(f"split_percent must be in (0, 100], got {split_percent}")
    return percent / 100


def exchange_rate_table(
    records: Iterable[RawFinancialRecord],
    base_currency: str,
) -> Dict[str, float]:
    """Map ``"<CUR>_<BASE>"`` to the rate of the first record seen in CUR.

    This is an approximation: rates vary per record, and only the first
    one in input order is reported for each currency.

    Raises:
        InvalidExchangeRate: If the first record of a currency has a bad rate
    """
    rates: Dict[str, float] = {}
    for record in records:
        if record.currency == base_currency:
            continue
        key = f"{record.currency}_{base_currency}"
        if key not in rates:
            rates[key] = float(coerce_rate(record.rate, record.currency))
    return rates


def sales_format(
    summaries: Iterable[PeriodSummary],
    records: Iterable[RawFinancialRecord],
    report_date: DateLike,
    base_currency: str,
    sales_label: str = DEFAULT_SALES_LABEL,
    tax_label: str = DEFAULT_TAX_LABEL,
) -> Dict[str, object]:
    """Build the condensed sales document.

    One ``sales_label`` item per summary carries its net amount in main
    units of the summary's currency; a ``tax_label`` item follows only when
    the summary collected tax.

    Args:
        summaries: Period summaries, emitted in the given order
        records: Raw records the summaries were built from (for rates)
        report_date: Date stamped on the document (the report end date)
        base_currency: Company reporting currency
        sales_label: Description of net-amount items
        tax_label: Description of tax items

    Returns:
        ``{"date", "exchange_rate", "items"}`` ready for json.dumps
    """
    items: List[Dict[str, object]] = []
    for summary in summaries:
        items.append(_sales_item(
            sales_label, summary.currency,
            from_smallest_units(summary.net_total, summary.currency),
        ))
        if summary.tax_total > 0:
            items.append(_sales_item(
                tax_label, summary.currency,
                from_smallest_units(summary.tax_total, summary.currency),
            ))

    return {
        "date": _date_text(report_date),
        "exchange_rate": exchange_rate_table(records, base_currency),
        "items": items,
    }


def sales_format_json(document: Dict[str, object]) -> str:
    """Serialize a sales document the way it is copied to the clipboard."""
    return json.dumps(document, indent=2)


def iso_timestamp(timestamp: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    utc = to_calendar_time(timestamp, timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _sales_item(description: str, currency: str, amount: Decimal) -> Dict[str, object]:
    return {
        "description": description,
        "currency": currency,
        "qty": 1,
        "rate": float(amount),
    }


def _write_csv(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def _main_text(main_amount: Decimal, currency: str) -> str:
    # fixed-point so a zero BTC amount renders "0.00000000", not "0E-8"
    return format(quantize_main(main_amount, currency), "f")


def _rate_text(rate) -> str:
    # normalize() drops trailing zeros: Decimal("0.920") -> "0.92"
    if isinstance(rate, Decimal):
        return format(rate.normalize(), "f")
    return str(rate)


def _text(value) -> str:
    return "" if value is None else str(value)


def _date_text(value: DateLike) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)
