"""
CLI interface for VPS Sales Report.

Reads a saved admin API response and prints period summaries, writes the
audit CSV or produces the condensed sales JSON.
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from vps_sales_report.config.loader import (
    ReportConfig,
    default_report_config,
    load_report_config,
)
from vps_sales_report.core.aggregation import (
    AggregationResult,
    Dimension,
    PeriodSummary,
    aggregate,
    aggregate_lenient,
    period_totals,
)
from vps_sales_report.core.errors import ReportError
from vps_sales_report.core.export import (
    csv_filename,
    payments_to_csv,
    referrals_to_csv,
    sales_format,
    sales_format_json,
)
from vps_sales_report.core.formatting import format_amount, format_base_amount
from vps_sales_report.core.periods import Interval
from vps_sales_report.demo.sample_data import write_demo_file
from vps_sales_report.source.models import RecordKind, RejectedRecord, ReportData, ReportFilter
from vps_sales_report.source.repository import JsonReportRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_path: Optional[Path]) -> ReportConfig:
    if config_path is None:
        return default_report_config()
    return load_report_config(str(config_path))


def _load_data(
    path: Path,
    currency: Optional[str],
    ref_code: Optional[str],
    start: Optional[str],
    end: Optional[str],
) -> ReportData:
    repository = JsonReportRepository(path)
    payload = repository.load_payload()
    report_filter = repository.default_filter(payload)
    report_filter = ReportFilter(
        start_date=date.fromisoformat(start) if start else report_filter.start_date,
        end_date=date.fromisoformat(end) if end else report_filter.end_date,
        currency=currency,
        ref_code=ref_code,
    )
    LOGGER.debug("Fetching %s with %s", path, report_filter)
    return repository.fetch(report_filter)


def _summaries(
    data: ReportData,
    interval: Interval,
    dimension: Dimension,
    config: ReportConfig,
    strict: bool,
) -> AggregationResult:
    if strict:
        if data.rejected:
            raise data.rejected[0].error
        summaries = aggregate(data.records, interval, dimension, config.report.tz)
        return AggregationResult(summaries=summaries, accepted=list(data.records))
    result = aggregate_lenient(data.records, interval, dimension, config.report.tz)
    return AggregationResult(
        summaries=result.summaries,
        rejected=list(data.rejected) + list(result.rejected),
        accepted=result.accepted,
    )


def _report_rejections(rejected: List[RejectedRecord]) -> None:
    if not rejected:
        return
    console.print(f"\n[bold yellow]{len(rejected)} record(s) excluded:[/]")
    for entry in rejected:
        console.print(f"  [yellow]-[/] {entry.message}")


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    sys.exit(EXIT_CODE_FAIL)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """VPS Sales Report CLI."""
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        console.print("VPS Sales Report - Use --help to see available commands")


@app.command()
def summary(
    path: Path = typer.Argument(..., help="Saved payments/referrals API response"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML report config"),
    interval: Optional[Interval] = typer.Option(None, "--interval", "-i", help="Bucket width"),
    dimension: Optional[Dimension] = typer.Option(None, "--dimension", "-d", help="Grouping inside a period"),
    currency: Optional[str] = typer.Option(None, "--currency", help="Only records in this currency"),
    ref_code: Optional[str] = typer.Option(None, "--ref-code", help="Only records with this ref code"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="End date (YYYY-MM-DD)"),
    strict: bool = typer.Option(False, "--strict/--lenient", help="Fail on the first invalid record"),
):
    """Print period summaries and base-currency period totals."""
    try:
        config = _load_config(config_path)
        data = _load_data(path, currency, ref_code, start, end)
        interval = interval or config.report.interval
        dimension = dimension or config.report.dimension
        result = _summaries(data, interval, dimension, config, strict)
        summaries, rejected = result.summaries, result.rejected
    except (ReportError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(str(e))

    if not summaries:
        console.print("\n[bold yellow]No records found for this report[/]")
        _report_rejections(rejected)
        sys.exit(EXIT_CODE_PASS)

    _display_summaries(summaries, data.kind, interval, dimension)
    _display_totals(summaries)
    _report_rejections(rejected)
    sys.exit(EXIT_CODE_PASS)


@app.command("export-csv")
def export_csv(
    path: Path = typer.Argument(..., help="Saved payments/referrals API response"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Directory for the CSV file"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML report config"),
    interval: Optional[Interval] = typer.Option(None, "--interval", "-i", help="Fills missing payment periods"),
    currency: Optional[str] = typer.Option(None, "--currency", help="Only records in this currency"),
    ref_code: Optional[str] = typer.Option(None, "--ref-code", help="Only records with this ref code"),
    split: Optional[float] = typer.Option(None, "--split", help="Referral split percent"),
):
    """Write one CSV row per raw record."""
    try:
        config = _load_config(config_path)
        data = _load_data(path, currency, ref_code, None, None)
        if data.kind is RecordKind.PAYMENT:
            content = payments_to_csv(
                data.records,
                interval=interval or config.report.interval,
                tz=config.report.tz,
            )
        else:
            split_percent = config.export.referral_split_percent if split is None else str(split)
            content = referrals_to_csv(data.records, split_percent=split_percent)
    except (ReportError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(str(e))

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / csv_filename(data.kind, data.start_date, data.end_date)
    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    console.print(f"[green]✓[/] Wrote {len(data.records)} rows to {target}")
    _report_rejections(data.rejected)
    sys.exit(EXIT_CODE_PASS)


@app.command("sales-format")
def sales_format_command(
    path: Path = typer.Argument(..., help="Saved payments API response"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML report config"),
    interval: Optional[Interval] = typer.Option(None, "--interval", "-i", help="Bucket width"),
    report_date: Optional[str] = typer.Option(None, "--date", help="Document date, defaults to the end date"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
    strict: bool = typer.Option(False, "--strict/--lenient", help="Fail on the first invalid record"),
):
    """Produce the condensed sales JSON for the accounting tool."""
    try:
        config = _load_config(config_path)
        data = _load_data(path, None, None, None, None)
        if data.kind is not RecordKind.PAYMENT:
            raise ValueError(f"sales-format needs a payments report, got {data.kind.value}")
        interval = interval or config.report.interval
        result = _summaries(data, interval, Dimension.CURRENCY, config, strict)
        rejected = result.rejected
        base_currency = result.accepted[0].base_currency if result.accepted else "USD"
        document = sales_format(
            result.summaries,
            result.accepted,
            report_date or data.end_date,
            base_currency,
            sales_label=config.export.sales_label,
            tax_label=config.export.tax_label,
        )
    except (ReportError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(str(e))

    text = sales_format_json(document)
    if output is None:
        # Plain stdout keeps the JSON free of rich markup.
        typer.echo(text)
    else:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/] Wrote sales format to {output}")
    _report_rejections(rejected)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def demo(
    path: Path = typer.Argument(..., help="Where to write the demo API response"),
    referrals: bool = typer.Option(False, "--referrals", help="Write referral records instead of payments"),
):
    """Write a demo API response to try the other commands."""
    target = write_demo_file(path, referrals=referrals)
    console.print(f"[green]✓[/] Demo data written to {target}")
    sys.exit(EXIT_CODE_PASS)


def _display_summaries(
    summaries: List[PeriodSummary],
    kind: RecordKind,
    interval: Interval,
    dimension: Dimension,
) -> None:
    base = summaries[0].base_currency
    table = Table(title=f"{kind.value.capitalize()} by {interval.value} period")
    table.add_column("Period")
    if dimension is Dimension.REF_CODE:
        table.add_column("Ref Code")
    table.add_column("Currency")
    table.add_column("Records", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Tax", justify="right")
    table.add_column(f"Net ({base})", justify="right")
    table.add_column(f"Tax ({base})", justify="right")

    for s in summaries:
        row = [s.period]
        if dimension is Dimension.REF_CODE:
            row.append(s.ref_code or "")
        row.extend([
            s.currency,
            f"{s.record_count:,}",
            format_amount(s.net_total, s.currency),
            format_amount(s.tax_total, s.currency),
            format_base_amount(s.base_currency_net, base),
            format_base_amount(s.base_currency_tax, base),
        ])
        table.add_row(*row)
    console.print(table)


def _display_totals(summaries: List[PeriodSummary]) -> None:
    totals = period_totals(summaries)
    base = totals[0].base_currency
    table = Table(title=f"Period totals ({base} base currency)")
    table.add_column("Period")
    table.add_column("Records", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Tax", justify="right")
    table.add_column("Total", justify="right")
    for total in totals:
        table.add_row(
            total.period,
            f"{total.record_count:,}",
            format_base_amount(total.net, base),
            format_base_amount(total.tax, base),
            format_base_amount(total.gross, base),
        )
    console.print(table)


if __name__ == "__main__":
    app()
