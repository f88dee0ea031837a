"""Shared fixtures and record builders for the test suite."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from vps_sales_report.source.models import RawFinancialRecord, RecordKind


def make_record(
    created="2024-01-05T12:00:00",
    amount=1000,
    currency="USD",
    tax=0,
    rate="1",
    base_currency="USD",
    kind=RecordKind.PAYMENT,
    **extra,
):
    """Build a record from short literals; ``created`` is read as UTC."""
    if isinstance(created, str):
        created = datetime.fromisoformat(created).replace(tzinfo=timezone.utc)
    return RawFinancialRecord(
        kind=kind,
        created=created,
        amount=amount,
        currency=currency,
        tax=tax,
        rate=Decimal(str(rate)),
        base_currency=base_currency,
        **extra,
    )


@pytest.fixture
def mixed_records():
    """Payments in EUR, USD and BTC for a EUR company across three months."""
    return [
        make_record("2024-01-05T09:30:00", 1000, "EUR", tax=210, base_currency="EUR", vm_id=101),
        make_record("2024-01-20T14:00:00", 1500, "USD", rate="0.92", base_currency="EUR", vm_id=102),
        make_record("2024-01-28T10:00:00", 2500, "USD", rate="0.93", base_currency="EUR", vm_id=103),
        make_record("2024-02-05T09:30:00", 21_000_000, "BTC", rate="58000", base_currency="EUR", vm_id=101),
        make_record("2024-02-14T08:00:00", 4000, "EUR", tax=840, base_currency="EUR", vm_id=104),
        make_record("2024-03-31T23:59:59", 2000, "EUR", tax=420, base_currency="EUR", vm_id=103),
        make_record("2024-03-02T07:15:00", 700, "USD", tax=70, rate="0.91", base_currency="EUR", vm_id=105),
    ]


@pytest.fixture
def build_record():
    """Factory fixture wrapping make_record."""
    return make_record
