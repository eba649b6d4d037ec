#!/usr/bin/env python3
"""
CLI for the District Transaction Dashboard

Commands:
    summary         - KPIs, period comparison and time series for a filter selection
    filter-options  - Available property types, tenures, streets and date range

Usage:
    python cli.py summary --csv data/d16_landed.csv
    python cli.py summary --source https://example.com/sheet.json --granularity quarter

Examples:
    # Terrace houses since 2024, quarterly buckets
    python cli.py summary --csv data/d16_landed.csv --start-date 2024-01-01 \\
        --property-type Terrace --granularity quarter

    # Median-PSF snapshot as JSON
    python cli.py summary --csv data/d16_landed.csv --variant basic --json
"""

import json
import logging
import sys

import click
from pydantic import ValidationError as PydanticValidationError

from config import Config
from constants import CategoryField, KpiVariant, TimeGrain


def _load(source, csv_path):
    from services.data_source import DataSourceError, load_transactions

    try:
        return load_transactions(url=source, csv_path=csv_path)
    except DataSourceError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


def _params(**kwargs):
    from schemas.filters import DashboardParams

    raw = {k: v for k, v in kwargs.items() if v not in (None, (), [])}
    try:
        return DashboardParams.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        click.secho(f"Invalid {first['loc'][0]}: {first['msg']}", fg="red", err=True)
        sys.exit(2)


def _fmt_trend(value):
    if value is None:
        return click.style("n/a", fg="white")
    color = "green" if value > 0 else "red" if value < 0 else "white"
    return click.style(f"{value:+.1f}%", fg=color)


@click.group()
@click.version_option(version="1.0.0", prog_name="dashboard-cli")
@click.option("--verbose", "-v", is_flag=True, help="Log at INFO (default: WARNING)")
def cli(verbose):
    """District Transaction Dashboard CLI - run the analytics pipeline offline."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


@cli.command("summary")
@click.option("--source", help="Spreadsheet JSON endpoint (default: DATA_SOURCE_URL)")
@click.option("--csv", "csv_path", type=click.Path(exists=True, dir_okay=False),
              help="CSV export of the sheet (default: DATA_CSV_PATH)")
@click.option("--start-date", help="Inclusive start day, YYYY-MM-DD")
@click.option("--end-date", help="Inclusive end day, YYYY-MM-DD")
@click.option("--property-type", "property_types", multiple=True, help="Repeatable")
@click.option("--tenure", "tenures", multiple=True, help="Repeatable")
@click.option("--street", "street_names", multiple=True, help="Repeatable")
@click.option("--granularity", type=click.Choice([g.value for g in TimeGrain]),
              default=TimeGrain.MONTH.value, show_default=True)
@click.option("--variant", type=click.Choice([v.value for v in KpiVariant]),
              default=KpiVariant.EXTENDED.value, show_default=True)
@click.option("--category-field", type=click.Choice([c.value for c in CategoryField]),
              default=CategoryField.PROPERTY_TYPE.value, show_default=True)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def summary(source, csv_path, start_date, end_date, property_types, tenures,
            street_names, granularity, variant, category_field, output_json):
    """
    Print KPIs, the period comparison and the time series for a selection.
    """
    from services.json_serializer import safe_json_dumps
    from services.kpi import compare_periods, compute_kpis, run_all_kpis
    from services.time_series import build_chart_data
    from utils.filter_builder import apply_filters

    params = _params(
        start_date=start_date,
        end_date=end_date,
        property_types=list(property_types),
        tenures=list(tenures),
        street_names=list(street_names),
        granularity=granularity,
        kpi_variant=variant,
        category_field=category_field,
    )

    if not (source or csv_path or Config.DATA_SOURCE_URL or Config.DATA_CSV_PATH):
        click.secho("Error: pass --source or --csv (or set DATA_SOURCE_URL / DATA_CSV_PATH)",
                    fg="red", err=True)
        sys.exit(1)

    loaded = _load(source, csv_path)
    filtered = apply_filters(loaded.transactions, params)
    snapshot = compute_kpis(filtered, params.kpi_variant)
    report = compare_periods(filtered, params.kpi_variant)
    charts = build_chart_data(filtered, params.granularity, params.category_field)

    if output_json:
        click.echo(safe_json_dumps({
            'filters': params.to_api(),
            'source': loaded.to_dict(),
            'matched': len(filtered),
            'kpis': snapshot.to_dict(),
            'comparison': report.to_dict(),
            'charts': charts.to_dict(),
        }, indent=2))
        return

    click.echo("=" * 60)
    click.secho("KPI SUMMARY", fg="cyan", bold=True)
    click.echo("=" * 60)
    click.echo(f"Source:  {loaded.source}")
    click.echo(f"Rows:    {len(loaded.transactions)} loaded, "
               f"{loaded.report.dropped} dropped, {len(filtered)} matched")
    click.echo()

    for card in run_all_kpis(snapshot, report):
        trend = card.get('trend')
        suffix = ""
        if trend:
            suffix = f"  {_fmt_trend(trend['value'])} {trend['label']}"
        click.echo(f"  {card['title']:<22} {card['formatted_value']:>16}{suffix}")
    click.echo()

    click.secho("PERIOD COMPARISON", fg="cyan", bold=True)
    if report.anchor_date is None:
        click.echo("  No transactions match the current filters")
    else:
        click.echo(f"  Anchor: {report.anchor_date.date().isoformat()}")
        for comparison in report.comparisons:
            current = comparison.current.total_transactions if comparison.current else 0
            previous = comparison.previous.total_transactions if comparison.previous else 0
            click.echo(
                f"  {comparison.label:<4} {comparison.current_period.label:>10} vs "
                f"{comparison.previous_period.label:<10} "
                f"transactions {current} vs {previous} "
                f"({_fmt_trend(comparison.trends.get('total_transactions'))})"
            )
    click.echo()

    click.secho(f"TIME SERIES ({charts.granularity.value})", fg="cyan", bold=True)
    for bucket in charts.time_series:
        click.echo(
            f"  {bucket.period:<8} {bucket.transactions:>4} txns  "
            f"avg ${bucket.avg_price_psf:,.0f} psf  avg profit ${bucket.avg_profit:,.0f}"
        )


@cli.command("filter-options")
@click.option("--source", help="Spreadsheet JSON endpoint (default: DATA_SOURCE_URL)")
@click.option("--csv", "csv_path", type=click.Path(exists=True, dir_okay=False),
              help="CSV export of the sheet (default: DATA_CSV_PATH)")
def filter_options(source, csv_path):
    """List available filter values as JSON."""
    from services.dashboard_service import DatasetStore, get_filter_options

    loaded = _load(source, csv_path)
    store = DatasetStore.from_transactions(loaded.transactions)
    click.echo(json.dumps(get_filter_options(store), indent=2))


if __name__ == "__main__":
    cli()
