"""
Core modules for VPS Sales Report.

This package contains the reporting engine: period bucketing, currency
unit normalization, base-currency conversion, aggregation and export.
"""
