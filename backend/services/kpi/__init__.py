"""
KPI Services Package

KPI snapshots over a filtered transaction collection with:
- Two snapshot shapes (basic: median PSF, extended: average profit)
- Period comparisons anchored on the latest sale
- Display cards in a fixed order

Usage:
    from services.kpi import compute_kpis, compare_periods, run_all_kpis

    snapshot = compute_kpis(transactions)
    report = compare_periods(transactions)
    cards = run_all_kpis(snapshot, report)
"""

from services.kpi.base import (
    KPIResult,
    KpiSnapshot,
    BasicKpiSnapshot,
    ExtendedKpiSnapshot,
    compute_kpis,
    empty_snapshot,
    median,
    pct_change,
)

from services.kpi.comparison import (
    ComparisonReport,
    PeriodComparison,
    compare_periods,
)

from services.kpi.registry import (
    run_all_kpis,
    get_kpi_by_id,
    list_enabled_kpis,
    KPI_ORDER,
)

__all__ = [
    'KPIResult',
    'KpiSnapshot',
    'BasicKpiSnapshot',
    'ExtendedKpiSnapshot',
    'compute_kpis',
    'empty_snapshot',
    'median',
    'pct_change',
    'ComparisonReport',
    'PeriodComparison',
    'compare_periods',
    'run_all_kpis',
    'get_kpi_by_id',
    'list_enabled_kpis',
    'KPI_ORDER',
]
