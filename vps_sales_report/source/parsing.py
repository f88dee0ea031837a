"""
Parsing of admin API payloads into records.

Payment payloads name the reporting currency ``company_base_currency``,
referral payloads name it ``base_currency``; both are accepted for either
kind.
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from vps_sales_report.core.errors import InvalidExchangeRate, InvalidRecord, ReportError
from vps_sales_report.core.units import get_scale
from .models import RawFinancialRecord, RecordKind, RejectedRecord

LOGGER = logging.getLogger(__name__)

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


def parse_timestamp(value: Any) -> datetime:
    """Parse an API timestamp.

    Accepts ISO-8601 strings (a trailing ``Z`` means UTC), epoch seconds,
    or datetimes. Results without an offset are read as UTC. Fractional
    seconds of any length are cut to microseconds.

    Raises:
        InvalidRecord: If the value is missing or malformed
    """
    if value is None or value == "":
        raise InvalidRecord("created timestamp is missing")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise InvalidRecord(f"created timestamp out of range: {value!r}")
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(_microseconds, text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidRecord(f"created timestamp is malformed: {value!r}")
    else:
        raise InvalidRecord(f"created timestamp has unsupported type: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_record(raw: Dict[str, Any], kind: RecordKind) -> RawFinancialRecord:
    """Build a record from one API payload object.

    Args:
        raw: Payload dictionary
        kind: Payment or referral

    Returns:
        Validated RawFinancialRecord

    Raises:
        InvalidRecord: If required fields are missing or malformed
        UnknownCurrency: If the currency or base currency is not mapped
    """
    if not isinstance(raw, dict):
        raise InvalidRecord(f"record must be an object, got {type(raw).__name__}")

    currency = _currency(raw.get("currency"), "currency")
    base_currency = _currency(
        raw.get("base_currency") or raw.get("company_base_currency"),
        "base_currency",
    )
    return RawFinancialRecord(
        kind=kind,
        created=parse_timestamp(raw.get("created")),
        amount=_smallest_units(raw.get("amount"), "amount"),
        tax=_smallest_units(raw.get("tax", 0) or 0, "tax"),
        currency=currency,
        rate=_rate(raw.get("rate"), currency),
        base_currency=base_currency,
        record_id=_optional_text(raw.get("id")),
        vm_id=raw.get("vm_id"),
        ref_code=_optional_text(raw.get("ref_code")),
        payment_method=_optional_text(raw.get("payment_method")),
        is_paid=raw.get("is_paid"),
        period=_optional_text(raw.get("period")),
    )


def parse_records(
    raw_records: Iterable[Dict[str, Any]],
    kind: RecordKind,
) -> Tuple[List[RawFinancialRecord], List[RejectedRecord]]:
    """Parse a payload list, collecting failures instead of stopping.

    Returns:
        (records, rejected); each rejected entry keeps its index and payload
    """
    records: List[RawFinancialRecord] = []
    rejected: List[RejectedRecord] = []
    for index, raw in enumerate(raw_records):
        try:
            records.append(parse_record(raw, kind))
        except ReportError as e:
            LOGGER.warning("Rejected %s payload #%d: %s", kind.value, index, e)
            rejected.append(RejectedRecord(error=e, index=index, raw=raw))
    return records, rejected


def _microseconds(match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def _currency(value: Any, name: str) -> str:
    if not value or not isinstance(value, str):
        raise InvalidRecord(f"{name} is missing")
    code = value.strip().upper()
    get_scale(code)
    return code


def _rate(value: Any, currency: str) -> Decimal:
    # Sign is checked by the converter so a bad rate rejects the record there.
    if value is None:
        raise InvalidRecord("rate is missing")
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise InvalidExchangeRate(value, currency)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise InvalidExchangeRate(value, currency)


def _smallest_units(value: Any, name: str) -> int:
    if value is None:
        raise InvalidRecord(f"{name} is missing")
    if isinstance(value, bool):
        raise InvalidRecord(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidRecord(f"{name} must be an integer, got {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise InvalidRecord(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidRecord(f"{name} cannot be negative, got {value}")
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
