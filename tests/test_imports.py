"""
Smoke test that the public modules import together.
"""
import importlib

import pytest


@pytest.mark.parametrize("module", [
    "vps_sales_report.core.aggregation",
    "vps_sales_report.core.conversion",
    "vps_sales_report.core.export",
    "vps_sales_report.core.formatting",
    "vps_sales_report.core.periods",
    "vps_sales_report.core.units",
    "vps_sales_report.source.repository",
    "vps_sales_report.config.loader",
    "vps_sales_report.cli.main",
])
def test_module_imports(module):
    assert importlib.import_module(module) is not None
