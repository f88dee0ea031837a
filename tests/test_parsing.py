"""
Unit tests for API payload parsing.

Tests timestamp parsing, field validation and batch rejection.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vps_sales_report.core.errors import InvalidExchangeRate, InvalidRecord, UnknownCurrency
from vps_sales_report.source.models import RecordKind
from vps_sales_report.source.parsing import parse_record, parse_records, parse_timestamp


def _payload(**overrides):
    payload = {
        "id": "p-1",
        "vm_id": 101,
        "created": "2024-01-05T09:30:00Z",
        "amount": 1234,
        "tax": 259,
        "currency": "usd",
        "rate": 0.92,
        "company_base_currency": "EUR",
        "payment_method": "stripe",
        "is_paid": True,
    }
    payload.update(overrides)
    return payload


class TestParseTimestamp:
    """Test timestamp parsing."""

    def test_iso_with_z_suffix(self):
        parsed = parse_timestamp("2024-01-05T09:30:00Z")
        assert parsed == datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)

    def test_iso_with_offset_keeps_instant(self):
        parsed = parse_timestamp("2024-01-05T11:30:00+02:00")
        assert parsed.utcoffset() == timedelta(hours=2)
        assert parsed == datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)

    def test_nanosecond_fraction_cut_to_microseconds(self):
        parsed = parse_timestamp("2024-01-05T09:30:56.123456789Z")
        assert parsed == datetime(2024, 1, 5, 9, 30, 56, 123456, tzinfo=timezone.utc)

    def test_short_fraction_padded(self):
        parsed = parse_timestamp("2024-01-05T09:30:56.1+02:00")
        assert parsed.microsecond == 100000
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_naive_iso_read_as_utc(self):
        assert parse_timestamp("2024-01-05T09:30:00").tzinfo == timezone.utc

    def test_epoch_seconds(self):
        assert parse_timestamp(1704412800) == datetime(2024, 1, 5, tzinfo=timezone.utc)

    def test_datetime_passes_through(self):
        ts = datetime(2024, 1, 5, tzinfo=timezone.utc)
        assert parse_timestamp(ts) == ts

    @pytest.mark.parametrize("value,message", [
        (None, "missing"),
        ("", "missing"),
        ("yesterday", "malformed"),
        (["2024"], "unsupported type"),
        (True, "unsupported type"),
    ])
    def test_bad_values(self, value, message):
        with pytest.raises(InvalidRecord, match=message):
            parse_timestamp(value)


class TestParseRecord:
    """Test single payload parsing."""

    def test_payment_fields(self):
        record = parse_record(_payload(), RecordKind.PAYMENT)

        assert record.kind is RecordKind.PAYMENT
        assert record.amount == 1234
        assert record.tax == 259
        assert record.currency == "USD"
        assert record.rate == Decimal("0.92")
        assert record.base_currency == "EUR"
        assert record.record_id == "p-1"
        assert record.vm_id == 101
        assert record.payment_method == "stripe"
        assert record.is_paid is True

    def test_referral_base_currency_key(self):
        payload = _payload(base_currency="EUR", ref_code="ALICE")
        del payload["company_base_currency"]
        record = parse_record(payload, RecordKind.REFERRAL)
        assert record.base_currency == "EUR"
        assert record.ref_code == "ALICE"

    def test_missing_tax_defaults_to_zero(self):
        payload = _payload()
        del payload["tax"]
        assert parse_record(payload, RecordKind.PAYMENT).tax == 0

    def test_integral_float_amount_accepted(self):
        assert parse_record(_payload(amount=1500.0), RecordKind.PAYMENT).amount == 1500

    @pytest.mark.parametrize("amount", [None, 12.5, "1000", True, -1])
    def test_bad_amount_rejected(self, amount):
        with pytest.raises(InvalidRecord):
            parse_record(_payload(amount=amount), RecordKind.PAYMENT)

    def test_unknown_currency(self):
        with pytest.raises(UnknownCurrency):
            parse_record(_payload(currency="DOGE"), RecordKind.PAYMENT)

    def test_missing_base_currency(self):
        payload = _payload()
        del payload["company_base_currency"]
        with pytest.raises(InvalidRecord, match="base_currency is missing"):
            parse_record(payload, RecordKind.PAYMENT)

    def test_missing_rate(self):
        with pytest.raises(InvalidRecord, match="rate is missing"):
            parse_record(_payload(rate=None), RecordKind.PAYMENT)

    def test_non_numeric_rate(self):
        with pytest.raises(InvalidExchangeRate):
            parse_record(_payload(rate="n/a"), RecordKind.PAYMENT)

    def test_negative_rate_left_for_converter(self):
        record = parse_record(_payload(rate=-1), RecordKind.PAYMENT)
        assert record.rate == Decimal("-1")

    def test_non_object_payload(self):
        with pytest.raises(InvalidRecord, match="must be an object"):
            parse_record(["not", "a", "dict"], RecordKind.PAYMENT)


class TestParseRecords:
    """Test batch parsing with rejection."""

    def test_collects_failures(self, caplog):
        payloads = [_payload(), _payload(currency="XYZ"), _payload(created="bad")]

        with caplog.at_level(logging.WARNING):
            records, rejected = parse_records(payloads, RecordKind.PAYMENT)

        assert len(records) == 1
        assert [r.index for r in rejected] == [1, 2]
        assert rejected[0].raw is payloads[1]
        assert "payload #1" in caplog.text

    def test_empty_list(self):
        assert parse_records([], RecordKind.REFERRAL) == ([], [])
