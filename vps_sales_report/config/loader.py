"""
Configuration management and loading.

Handles report defaults and export labels read from a YAML file.
"""

from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from vps_sales_report.core.aggregation import Dimension
from vps_sales_report.core.export import DEFAULT_SALES_LABEL, DEFAULT_TAX_LABEL
from vps_sales_report.core.periods import Interval

DEFAULT_REFERRAL_SPLIT_PERCENT = Decimal("33")


@dataclass(frozen=True)
class ReportSettings:
    """How records are bucketed."""
    interval: Interval = Interval.MONTHLY
    dimension: Dimension = Dimension.CURRENCY
    timezone_name: str = "UTC"

    def __post_init__(self):
        """Validate the timezone resolves."""
        resolve_timezone(self.timezone_name)

    @property
    def tz(self) -> tzinfo:
        return resolve_timezone(self.timezone_name)


@dataclass(frozen=True)
class ExportSettings:
    """Labels and multipliers used by the exporters."""
    sales_label: str = DEFAULT_SALES_LABEL
    tax_label: str = DEFAULT_TAX_LABEL
    referral_split_percent: Decimal = DEFAULT_REFERRAL_SPLIT_PERCENT

    def __post_init__(self):
        """Validate labels and split percent."""
        if not self.sales_label.strip():
            raise ValueError("sales_label cannot be empty")
        if not self.tax_label.strip():
            raise ValueError("tax_label cannot be empty")
        if self.referral_split_percent <= 0 or self.referral_split_percent > 100:
            raise ValueError("referral_split_percent must be in (0, 100]")


@dataclass(frozen=True)
class ReportConfig:
    """Complete report configuration."""
    report: ReportSettings = field(default_factory=ReportSettings)
    export: ExportSettings = field(default_factory=ExportSettings)


def default_report_config() -> ReportConfig:
    """Configuration used when no file is given."""
    return ReportConfig()


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is unknown
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError("timezone must be a non-empty string")
    if name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}")


def load_report_config(path: str) -> ReportConfig:
    """Load and validate report configuration from a YAML file.

    Unknown keys are rejected so that a typo cannot silently fall back to
    a default bucket width or label.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ReportConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Report config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'report', 'export'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    report = _parse_report_section(_section(raw_config, 'report'))
    export = _parse_export_section(_section(raw_config, 'export'))
    return ReportConfig(report=report, export=export)


def _section(raw_config: Dict, name: str) -> Dict:
    data = raw_config.get(name) or {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _parse_report_section(data: Dict) -> ReportSettings:
    """Parse and validate the ``report`` section.

    Raises:
        ValueError: If a key is unknown or a value is invalid
    """
    allowed_keys = {'interval', 'dimension', 'timezone'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in report: {unknown_keys}")

    defaults = ReportSettings()
    interval = _parse_enum(Interval, data.get('interval', defaults.interval.value), 'report.interval')
    dimension = _parse_enum(Dimension, data.get('dimension', defaults.dimension.value), 'report.dimension')

    timezone_name = data.get('timezone', defaults.timezone_name)
    if not isinstance(timezone_name, str):
        raise ValueError("'timezone' in report must be a string")

    return ReportSettings(
        interval=interval,
        dimension=dimension,
        timezone_name=timezone_name,
    )


def _parse_export_section(data: Dict) -> ExportSettings:
    """Parse and validate the ``export`` section.

    Raises:
        ValueError: If a key is unknown or a value is invalid
    """
    allowed_keys = {'sales_label', 'tax_label', 'referral_split_percent'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in export: {unknown_keys}")

    defaults = ExportSettings()
    labels = {}
    for key in ('sales_label', 'tax_label'):
        value = data.get(key, getattr(defaults, key))
        if not isinstance(value, str):
            raise ValueError(f"'{key}' in export must be a string")
        labels[key] = value

    split = data.get('referral_split_percent', defaults.referral_split_percent)
    if isinstance(split, bool) or not isinstance(split, (int, float, Decimal)):
        raise ValueError("'referral_split_percent' in export must be a number")
    try:
        split = Decimal(str(split))
    except InvalidOperation:
        raise ValueError("'referral_split_percent' in export must be a number")

    return ExportSettings(referral_split_percent=split, **labels)


def _parse_enum(enum_cls, value, path: str):
    if not isinstance(value, str):
        raise ValueError(f"'{path}' must be a string")
    try:
        return enum_cls(value.lower())
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValueError(f"'{path}' must be one of: {valid}")
