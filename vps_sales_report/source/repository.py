"""
Record sources for reports.

The admin API is the production source; it is called elsewhere and its
responses can be saved as JSON dumps of the shape::

    {"start_date": "2024-01-01", "end_date": "2024-12-31",
     "payments": [...]}            # or "referrals": [...]

JsonReportRepository serves such a dump through the same fetch interface.
Read and decode errors propagate to the caller unchanged.
"""

import json
import logging
from datetime import date, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from vps_sales_report.core.periods import to_calendar_time
from .models import RawFinancialRecord, RecordKind, ReportData, ReportFilter
from .parsing import parse_records

LOGGER = logging.getLogger(__name__)


class JsonReportRepository:
    """Serves payment or referral records from a saved API response."""

    def __init__(self, path: Union[str, Path]):
        """Initialize the repository with the dump location.

        Args:
            path: Path to the JSON file
        """
        self.path = Path(path)

    def load_payload(self) -> Dict[str, Any]:
        """Read and decode the JSON document.

        Raises:
            FileNotFoundError: If the file doesn't exist
            json.JSONDecodeError: If the content is not JSON
            ValueError: If the document is not an object
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Report data file not found: {self.path}")
        with open(self.path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError("Report data must be a JSON object")
        return payload

    def detect_kind(self, payload: Optional[Dict[str, Any]] = None) -> RecordKind:
        """Tell whether the dump holds payments or referrals.

        Raises:
            ValueError: If it holds neither or both
        """
        payload = payload if payload is not None else self.load_payload()
        kinds = [kind for kind in RecordKind if kind.value in payload]
        if len(kinds) != 1:
            raise ValueError(
                "Report data must contain exactly one of: "
                + ", ".join(kind.value for kind in RecordKind)
            )
        return kinds[0]

    def default_filter(self, payload: Optional[Dict[str, Any]] = None) -> ReportFilter:
        """Filter covering the date range recorded in the dump."""
        payload = payload if payload is not None else self.load_payload()
        try:
            start = date.fromisoformat(str(payload["start_date"]))
            end = date.fromisoformat(str(payload["end_date"]))
        except KeyError as e:
            raise ValueError(f"Report data is missing {e.args[0]!r}")
        return ReportFilter(start_date=start, end_date=end)

    def fetch(self, report_filter: Optional[ReportFilter] = None) -> ReportData:
        """Return the records matching a filter.

        Args:
            report_filter: Date range and optional currency/ref code; defaults
                to the range stored in the dump

        Returns:
            ReportData with parsed records and rejected payloads
        """
        payload = self.load_payload()
        kind = self.detect_kind(payload)
        if report_filter is None:
            report_filter = self.default_filter(payload)

        raw_records = payload[kind.value]
        if not isinstance(raw_records, list):
            raise ValueError(f"'{kind.value}' must be a list")

        records, rejected = parse_records(raw_records, kind)
        matching = [r for r in records if _matches(r, report_filter)]
        LOGGER.info(
            "Loaded %d %s from %s (%d outside filter, %d rejected)",
            len(matching), kind.value, self.path,
            len(records) - len(matching), len(rejected),
        )
        return ReportData(
            kind=kind,
            start_date=report_filter.start_date,
            end_date=report_filter.end_date,
            records=matching,
            rejected=rejected,
        )


def _matches(record: RawFinancialRecord, report_filter: ReportFilter) -> bool:
    # Date bounds are inclusive and compared on the UTC calendar date.
    day = to_calendar_time(record.created, timezone.utc).date()
    if day < report_filter.start_date or day > report_filter.end_date:
        return False
    if report_filter.currency and record.currency != report_filter.currency.upper():
        return False
    if report_filter.ref_code and record.ref_code != report_filter.ref_code:
        return False
    return True
