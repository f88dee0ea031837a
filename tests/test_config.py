"""
Unit tests for configuration loading and validation.

Tests strict validation and error handling for report configs.
"""

import os
import shutil
import tempfile
from datetime import timezone
from decimal import Decimal

import pytest
import yaml

from vps_sales_report.config.loader import (
    DEFAULT_REFERRAL_SPLIT_PERCENT,
    ExportSettings,
    ReportSettings,
    default_report_config,
    load_report_config,
    resolve_timezone,
)
from vps_sales_report.core.aggregation import Dimension
from vps_sales_report.core.periods import Interval


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_data = {
            "report": {
                "interval": "weekly",
                "dimension": "ref_code",
                "timezone": "UTC",
            },
            "export": {
                "sales_label": "LNVPS Sales",
                "tax_label": "VAT",
                "referral_split_percent": 12.5,
            },
        }

        config = load_report_config(self._write_config(config_data))

        assert config.report.interval == Interval.WEEKLY
        assert config.report.dimension == Dimension.REF_CODE
        assert config.report.tz is timezone.utc
        assert config.export.sales_label == "LNVPS Sales"
        assert config.export.tax_label == "VAT"
        assert config.export.referral_split_percent == Decimal("12.5")

    def test_sections_fall_back_to_defaults(self):
        """Test that omitted sections and keys use defaults."""
        config = load_report_config(self._write_config({"report": {"interval": "Quarterly"}}))

        assert config.report.interval == Interval.QUARTERLY
        assert config.report.dimension == Dimension.CURRENCY
        assert config.export == ExportSettings()
        assert config.export.referral_split_percent == DEFAULT_REFERRAL_SPLIT_PERCENT

    def test_missing_file_raises_error(self):
        """Test that a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Report config file not found"):
            load_report_config(os.path.join(self.temp_dir, "nope.yaml"))

    def test_invalid_yaml_raises_error(self):
        """Test that invalid YAML raises YAMLError."""
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("report: [interval: monthly\n")

        with pytest.raises(yaml.YAMLError, match="Invalid YAML"):
            load_report_config(config_path)

    def test_empty_config_raises_error(self):
        """Test that an empty file is rejected."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        open(config_path, 'w', encoding='utf-8').close()

        with pytest.raises(ValueError, match="Configuration file is empty"):
            load_report_config(config_path)

    def test_non_mapping_raises_error(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            load_report_config(self._write_config(["monthly"]))

    def test_unknown_top_level_key_raises_error(self):
        """Test that a typo at top level is not silently ignored."""
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_report_config(self._write_config({"reports": {"interval": "daily"}}))

    def test_unknown_report_key_raises_error(self):
        with pytest.raises(ValueError, match="Unknown keys in report"):
            load_report_config(self._write_config({"report": {"intervall": "daily"}}))

    def test_unknown_export_key_raises_error(self):
        with pytest.raises(ValueError, match="Unknown keys in export"):
            load_report_config(self._write_config({"export": {"label": "x"}}))

    def test_section_must_be_dictionary(self):
        with pytest.raises(ValueError, match="'report' must be a dictionary"):
            load_report_config(self._write_config({"report": "monthly"}))

    def test_invalid_interval_raises_error(self):
        with pytest.raises(ValueError, match="'report.interval' must be one of"):
            load_report_config(self._write_config({"report": {"interval": "hourly"}}))

    def test_invalid_dimension_raises_error(self):
        with pytest.raises(ValueError, match="'report.dimension' must be one of"):
            load_report_config(self._write_config({"report": {"dimension": "vm"}}))

    def test_unknown_timezone_raises_error(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            load_report_config(self._write_config({"report": {"timezone": "Mars/Olympus"}}))

    @pytest.mark.parametrize("split", [0, 150, -10])
    def test_split_out_of_range_raises_error(self, split):
        with pytest.raises(ValueError, match="referral_split_percent must be in"):
            load_report_config(self._write_config({"export": {"referral_split_percent": split}}))

    @pytest.mark.parametrize("split", ["33", True])
    def test_split_must_be_number(self, split):
        with pytest.raises(ValueError, match="must be a number"):
            load_report_config(self._write_config({"export": {"referral_split_percent": split}}))

    def test_empty_label_raises_error(self):
        with pytest.raises(ValueError, match="sales_label cannot be empty"):
            load_report_config(self._write_config({"export": {"sales_label": "  "}}))


class TestDefaults:
    """Test default configuration values."""

    def test_default_config(self):
        config = default_report_config()
        assert config.report == ReportSettings()
        assert config.report.interval == Interval.MONTHLY
        assert config.report.timezone_name == "UTC"
        assert config.export.sales_label == "Sales"
        assert config.export.tax_label == "Tax Collected"
        assert config.export.referral_split_percent == Decimal("33")

    def test_resolve_utc(self):
        assert resolve_timezone("utc") is timezone.utc

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_resolve_blank_timezone(self, name):
        with pytest.raises(ValueError, match="non-empty string"):
            resolve_timezone(name)
