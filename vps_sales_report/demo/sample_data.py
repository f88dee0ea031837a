# vps_sales_report/demo/sample_data.py

"""
Demo API dumps for trying the CLI without access to the admin API.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

DEMO_START = "2024-01-01"
DEMO_END = "2024-06-30"


def build_demo_payments() -> Dict[str, Any]:
    """A half-year of mixed-currency payments for a EUR company."""
    return {
        "start_date": DEMO_START,
        "end_date": DEMO_END,
        "payments": [
            {"id": "p-1", "vm_id": 101, "created": "2024-01-05T09:30:00Z",
             "amount": 1000, "tax": 210, "currency": "EUR", "rate": 1.0,
             "company_base_currency": "EUR", "payment_method": "revolut",
             "is_paid": True},
            {"id": "p-2", "vm_id": 102, "created": "2024-01-20T14:00:00Z",
             "amount": 1500, "tax": 0, "currency": "USD", "rate": 0.92,
             "company_base_currency": "EUR", "payment_method": "stripe",
             "is_paid": True},
            {"id": "p-3", "vm_id": 101, "created": "2024-02-05T09:30:00Z",
             # 21,000 sats
             "amount": 21_000_000, "tax": 0, "currency": "BTC", "rate": 58000.0,
             "company_base_currency": "EUR", "payment_method": "lightning",
             "is_paid": True},
            {"id": "p-4", "vm_id": 103, "created": "2024-03-31T23:59:59Z",
             "amount": 2000, "tax": 420, "currency": "EUR", "rate": 1.0,
             "company_base_currency": "EUR", "payment_method": "revolut",
             "is_paid": True},
            {"id": "p-5", "vm_id": 104, "created": "2024-05-12T08:00:00Z",
             "amount": 2500, "tax": 0, "currency": "USD", "rate": 0.93,
             "company_base_currency": "EUR", "payment_method": "stripe",
             "is_paid": False},
        ],
    }


def build_demo_referrals() -> Dict[str, Any]:
    """Referral usage for two ref codes."""
    return {
        "start_date": DEMO_START,
        "end_date": DEMO_END,
        "referrals": [
            {"vm_id": 101, "ref_code": "ALICE", "created": "2024-01-05T09:30:00Z",
             "amount": 1000, "currency": "EUR", "rate": 1.0, "base_currency": "EUR"},
            {"vm_id": 102, "ref_code": "BOB", "created": "2024-01-20T14:00:00Z",
             "amount": 1500, "currency": "USD", "rate": 0.92, "base_currency": "EUR"},
            {"vm_id": 101, "ref_code": "ALICE", "created": "2024-02-05T09:30:00Z",
             "amount": 21_000_000, "currency": "BTC", "rate": 58000.0,
             "base_currency": "EUR"},
        ],
    }


def write_demo_file(path: Union[str, Path], referrals: bool = False) -> Path:
    """Write a demo dump and return its path."""
    payload = build_demo_referrals() if referrals else build_demo_payments()
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return target
