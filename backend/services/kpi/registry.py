"""
KPI Registry - Maps a KPI snapshot + period comparison to display cards.

The endpoint calls this, not the snapshot fields directly.

Usage:
    from services.kpi.registry import run_all_kpis

    results = run_all_kpis(snapshot, comparison_report)
    # Returns list of KPIResult dicts, in KPI_ORDER
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from constants import TREND_NEUTRAL_BAND_PCT
from services.kpi.base import KPIResult, KpiSnapshot
from services.kpi.comparison import ComparisonReport

logger = logging.getLogger('kpi.registry')


# =============================================================================
# FORMATTERS
# =============================================================================

def format_count(value: float) -> str:
    return f"{int(value):,}"


def format_currency(value: float) -> str:
    """$1,234 style (whole dollars)."""
    return f"${round(value):,}"


def format_compact_currency(value: float) -> str:
    """$12.35M / $850K style for large totals."""
    if abs(value) >= 1_000_000:
        return f"${value / 1_000_000:,.2f}M"
    if abs(value) >= 1_000:
        return f"${value / 1_000:,.0f}K"
    return f"${value:,.0f}"


def format_psf(value: float) -> str:
    return f"${round(value):,} psf"


def trend_direction(pct: float) -> str:
    if pct > TREND_NEUTRAL_BAND_PCT:
        return "up"
    if pct < -TREND_NEUTRAL_BAND_PCT:
        return "down"
    return "neutral"


# =============================================================================
# KPI CARDS
# =============================================================================

@dataclass(frozen=True)
class KpiCardSpec:
    kpi_id: str
    title: str
    metric: str
    formatter: Callable[[float], str]
    subtitle: Optional[str] = None
    # Which period comparison supplies the trend badge
    comparison: str = 'month'


KPI_REGISTRY = {
    'total_transactions': KpiCardSpec(
        kpi_id='total_transactions',
        title='Total Transactions',
        metric='total_transactions',
        formatter=format_count,
        subtitle='filtered period',
    ),
    'total_sales_volume': KpiCardSpec(
        kpi_id='total_sales_volume',
        title='Total Sales Volume',
        metric='total_sales_volume',
        formatter=format_compact_currency,
        subtitle='sum of transacted prices',
    ),
    'average_price_psf': KpiCardSpec(
        kpi_id='average_price_psf',
        title='Average Price PSF',
        metric='average_price_psf',
        formatter=format_psf,
        subtitle='mean unit price',
    ),
    'median_price_psf': KpiCardSpec(
        kpi_id='median_price_psf',
        title='Median Price PSF',
        metric='median_price_psf',
        formatter=format_psf,
        subtitle='pooled median',
        comparison='quarter',
    ),
    'average_profit': KpiCardSpec(
        kpi_id='average_profit',
        title='Average Profit',
        metric='average_profit',
        formatter=format_currency,
        subtitle='profitable resales only',
        comparison='year_to_date',
    ),
    'highest_transaction': KpiCardSpec(
        kpi_id='highest_transaction',
        title='Highest Transaction',
        metric='highest_transaction',
        formatter=format_compact_currency,
        subtitle='single largest sale',
    ),
}

# Explicit order - frontend relies on this (stable, deterministic).
# Cards whose metric the snapshot variant lacks are skipped.
KPI_ORDER = [
    'total_transactions',
    'total_sales_volume',
    'average_price_psf',
    'median_price_psf',
    'average_profit',
    'highest_transaction',
]


# =============================================================================
# EXECUTION
# =============================================================================

def _trend(spec: KpiCardSpec, report: Optional[ComparisonReport]) -> Optional[Dict[str, Any]]:
    if report is None:
        return None
    comparison = report.get(spec.comparison)
    if comparison is None:
        return None
    pct = comparison.trends.get(spec.metric)
    if pct is None:
        return None
    return {
        "value": round(pct, 1),
        "direction": trend_direction(pct),
        "label": comparison.label,
    }


def build_card(
    spec: KpiCardSpec,
    snapshot: KpiSnapshot,
    report: Optional[ComparisonReport] = None,
) -> KPIResult:
    """Build one card from the snapshot metric and its comparison trend."""
    value = snapshot.metric(spec.metric)
    comparison = report.get(spec.comparison) if report else None

    meta: Dict[str, Any] = {"variant": snapshot.variant.value}
    if comparison is not None:
        meta["comparison"] = spec.comparison
        meta["current"] = comparison.current.metric(spec.metric) if comparison.current else None
        meta["previous"] = comparison.previous.metric(spec.metric) if comparison.previous else None

    insight = None
    if snapshot.total_transactions == 0:
        insight = "No transactions match the current filters"

    return KPIResult(
        kpi_id=spec.kpi_id,
        title=spec.title,
        value=round(value, 2) if isinstance(value, float) else value,
        formatted_value=spec.formatter(value),
        subtitle=spec.subtitle,
        trend=_trend(spec, report),
        insight=insight,
        meta=meta,
    )


def run_all_kpis(
    snapshot: KpiSnapshot,
    report: Optional[ComparisonReport] = None,
) -> List[Dict[str, Any]]:
    """
    Build every card the snapshot variant supports and return them as dicts.

    Args:
        snapshot: KPI snapshot over the filtered collection
        report: Period comparison over the same collection (trend badges)

    Returns:
        List of KPIResult dicts ready for JSON serialization
    """
    results = []
    for kpi_id in KPI_ORDER:
        spec = KPI_REGISTRY[kpi_id]
        if spec.metric not in snapshot.METRICS:
            continue
        results.append(asdict(build_card(spec, snapshot, report)))
    return results


def get_kpi_by_id(
    kpi_id: str,
    snapshot: KpiSnapshot,
    report: Optional[ComparisonReport] = None,
) -> Dict[str, Any]:
    """
    Build a single card by ID.

    Useful for testing or when frontend only needs one metric.
    """
    spec = KPI_REGISTRY.get(kpi_id)
    if spec and spec.metric in snapshot.METRICS:
        return asdict(build_card(spec, snapshot, report))

    logger.warning(f"Unknown KPI requested: {kpi_id}")
    return {
        "kpi_id": kpi_id,
        "error": f"Unknown KPI: {kpi_id}. Available: {list(KPI_REGISTRY.keys())}"
    }


def list_enabled_kpis() -> List[Dict[str, str]]:
    """List all KPI IDs and titles."""
    return [
        {"kpi_id": spec.kpi_id, "title": spec.title, "subtitle": spec.subtitle}
        for spec in (KPI_REGISTRY[kpi_id] for kpi_id in KPI_ORDER)
    ]
