"""
Period aggregation of financial records.

Folds raw payment/referral records into per-period buckets with native
and base-currency totals. The fold is built from immutable summaries:
every record becomes a one-record PeriodSummary and buckets are combined
with PeriodSummary.combine, which is associative and commutative. Any
partition of the input therefore aggregates to the same result once the
partial results are merged.
"""

import logging
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .conversion import to_base_currency
from .errors import InvalidRecord, MixedBaseCurrency, ReportError
from .periods import Interval, period_key
from .units import get_scale
from vps_sales_report.source.models import RawFinancialRecord, RejectedRecord

LOGGER = logging.getLogger(__name__)

BucketKey = Tuple[str, str, str]  # (period, ref_code or "", currency)


class Dimension(Enum):
    """Secondary grouping inside a period."""
    CURRENCY = "currency"
    REF_CODE = "ref_code"


@dataclass(frozen=True)
class PeriodSummary:
    """Totals for one (period, [ref_code,] currency) bucket.

    ``net_total``/``tax_total`` are smallest units of ``currency``;
    ``base_currency_net``/``base_currency_tax`` are exact main units of
    ``base_currency``.
    """
    period: str
    currency: str
    base_currency: str
    record_count: int = 0
    net_total: int = 0
    tax_total: int = 0
    base_currency_net: Decimal = Decimal("0")
    base_currency_tax: Decimal = Decimal("0")
    ref_code: Optional[str] = None

    def __post_init__(self):
        """Validate totals are non-negative."""
        if self.record_count < 0:
            raise ValueError("record_count cannot be negative")
        if self.net_total < 0 or self.tax_total < 0:
            raise ValueError("totals cannot be negative")

    @property
    def key(self) -> BucketKey:
        return (self.period, self.ref_code or "", self.currency)

    @property
    def base_currency_gross(self) -> Decimal:
        return self.base_currency_net + self.base_currency_tax

    def combine(self, other: "PeriodSummary") -> "PeriodSummary":
        """Return a new summary holding the totals of both buckets.

        Raises:
            ValueError: If the buckets or base currencies differ
        """
        if other.key != self.key:
            raise ValueError(f"Cannot combine bucket {other.key} into {self.key}")
        if other.base_currency != self.base_currency:
            raise MixedBaseCurrency({self.base_currency, other.base_currency})
        return PeriodSummary(
            period=self.period,
            currency=self.currency,
            base_currency=self.base_currency,
            ref_code=self.ref_code,
            record_count=self.record_count + other.record_count,
            net_total=self.net_total + other.net_total,
            tax_total=self.tax_total + other.tax_total,
            base_currency_net=self.base_currency_net + other.base_currency_net,
            base_currency_tax=self.base_currency_tax + other.base_currency_tax,
        )


@dataclass(frozen=True)
class PeriodTotal:
    """Base-currency totals for one period across all native currencies."""
    period: str
    base_currency: str
    record_count: int
    net: Decimal
    tax: Decimal

    @property
    def gross(self) -> Decimal:
        return self.net + self.tax


@dataclass(frozen=True)
class AggregationResult:
    """Summaries plus the records that went into them and the ones excluded."""
    summaries: List[PeriodSummary]
    rejected: List[RejectedRecord] = field(default_factory=list)
    accepted: List[RawFinancialRecord] = field(default_factory=list)


def summarize_record(
    record: RawFinancialRecord,
    interval: Interval,
    dimension: Dimension = Dimension.CURRENCY,
    tz: tzinfo = timezone.utc,
) -> PeriodSummary:
    """Build the one-record summary a record contributes to its bucket.

    Raises:
        InvalidRecord: If the timestamp is unusable or the ref code is missing
        UnknownCurrency: If either currency is not mapped
        InvalidExchangeRate: If the rate is not positive
    """
    get_scale(record.currency)
    ref_code = None
    if dimension is Dimension.REF_CODE:
        if not record.ref_code:
            raise InvalidRecord(f"{record.describe()} has no ref_code")
        ref_code = record.ref_code

    return PeriodSummary(
        period=period_key(record.created, interval, tz),
        currency=record.currency,
        base_currency=record.base_currency,
        ref_code=ref_code,
        record_count=1,
        net_total=record.amount,
        tax_total=record.tax,
        base_currency_net=to_base_currency(
            record.amount, record.currency, record.rate, record.base_currency
        ),
        base_currency_tax=to_base_currency(
            record.tax, record.currency, record.rate, record.base_currency
        ),
    )


def merge_summaries(*partials: Iterable[PeriodSummary]) -> List[PeriodSummary]:
    """Merge partial aggregates bucket-wise.

    Args:
        *partials: Any number of summary collections

    Returns:
        New sorted list with one summary per bucket

    Raises:
        MixedBaseCurrency: If the partials disagree on the base currency
    """
    buckets: Dict[BucketKey, PeriodSummary] = {}
    for partial in partials:
        for summary in partial:
            existing = buckets.get(summary.key)
            buckets[summary.key] = (
                summary if existing is None else existing.combine(summary)
            )
    _check_single_base(s.base_currency for s in buckets.values())
    return sorted(buckets.values(), key=lambda s: s.key)


def aggregate(
    records: Iterable[RawFinancialRecord],
    interval: Interval,
    dimension: Dimension = Dimension.CURRENCY,
    tz: tzinfo = timezone.utc,
) -> List[PeriodSummary]:
    """Aggregate records into period summaries, failing on the first bad record.

    Args:
        records: Raw records of one report run
        interval: Bucket width
        dimension: Secondary grouping (currency, or ref_code then currency)
        tz: Calendar timezone for period keys

    Returns:
        Summaries sorted by period, then dimension value, then currency.
        Empty input gives an empty list.

    Raises:
        ReportError: The first record's error (InvalidRecord, UnknownCurrency,
            InvalidExchangeRate) or MixedBaseCurrency
    """
    records = list(records)
    _check_single_base(r.base_currency for r in records)
    summaries = merge_summaries(
        summarize_record(record, interval, dimension, tz) for record in records
    )
    LOGGER.debug(
        "Aggregated %d records into %d %s buckets",
        len(records), len(summaries), interval.value,
    )
    return summaries


def aggregate_lenient(
    records: Iterable[RawFinancialRecord],
    interval: Interval,
    dimension: Dimension = Dimension.CURRENCY,
    tz: tzinfo = timezone.utc,
) -> AggregationResult:
    """Aggregate records, excluding and reporting the ones that fail.

    Each excluded record appears in ``rejected`` and is logged as a
    warning; the records that contributed are returned in ``accepted``.
    A mixed base currency among the accepted records still fails the
    whole run, since no single record is at fault.

    Raises:
        MixedBaseCurrency: If valid records disagree on the base currency
    """
    records = list(records)

    contributions: List[PeriodSummary] = []
    accepted: List[RawFinancialRecord] = []
    rejected: List[RejectedRecord] = []
    for index, record in enumerate(records):
        try:
            contributions.append(summarize_record(record, interval, dimension, tz))
        except ReportError as e:
            LOGGER.warning("Excluding %s from report: %s", record.describe(), e)
            rejected.append(RejectedRecord(error=e, index=index, raw=record))
        else:
            accepted.append(record)

    summaries = merge_summaries(contributions)
    LOGGER.info(
        "Aggregated %d of %d records into %d buckets (%d rejected)",
        len(contributions), len(records), len(summaries), len(rejected),
    )
    return AggregationResult(summaries=summaries, rejected=rejected, accepted=accepted)


def period_totals(summaries: Iterable[PeriodSummary]) -> List[PeriodTotal]:
    """Roll summaries up to one base-currency total per period.

    This is the only place native currencies (and ref codes) are merged.

    Raises:
        MixedBaseCurrency: If summaries disagree on the base currency
    """
    summaries = list(summaries)
    _check_single_base(s.base_currency for s in summaries)

    totals: Dict[str, PeriodTotal] = {}
    for summary in summaries:
        current = totals.get(summary.period)
        if current is None:
            totals[summary.period] = PeriodTotal(
                period=summary.period,
                base_currency=summary.base_currency,
                record_count=summary.record_count,
                net=summary.base_currency_net,
                tax=summary.base_currency_tax,
            )
        else:
            totals[summary.period] = PeriodTotal(
                period=current.period,
                base_currency=current.base_currency,
                record_count=current.record_count + summary.record_count,
                net=current.net + summary.base_currency_net,
                tax=current.tax + summary.base_currency_tax,
            )
    return [totals[period] for period in sorted(totals)]


def _check_single_base(base_currencies: Iterable[str]) -> None:
    distinct = set(base_currencies)
    if len(distinct) > 1:
        raise MixedBaseCurrency(distinct)
