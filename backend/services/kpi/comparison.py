"""
Period Comparison - current vs previous period KPIs

The anchor is the latest sale in the (filtered) collection. From it four
pairs are derived, each side reduced through compute_kpis():

    month            anchor month       vs previous month (Jan -> Dec of prior year)
    quarter          anchor quarter     vs previous quarter (Q1 -> Q4 of prior year)
    year_to_date     anchor year so far vs the full prior calendar year
    year_over_year   anchor year so far vs the same window one year earlier

A side with no transactions has a None snapshot. Trends are percentage
changes per metric, None unless both sides exist and the previous value is
non-zero.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from constants import KpiVariant, DEFAULT_KPI_VARIANT, MONTHS_PER_QUARTER
from models.transaction import Transaction
from services.kpi.base import SNAPSHOT_CLASSES, KpiSnapshot, compute_kpis, pct_change
from utils.periods import (
    add_months,
    month_start,
    previous_month,
    previous_quarter,
    quarter_first_month,
    quarter_of,
)

logger = logging.getLogger('kpi.comparison')


# Trend label shown on KPI cards for each pair
COMPARISON_LABELS = {
    'month': 'MoM',
    'quarter': 'QoQ',
    'year_to_date': 'YTD',
    'year_over_year': 'YoY',
}

COMPARISON_ORDER = ('month', 'quarter', 'year_to_date', 'year_over_year')


@dataclass(frozen=True)
class Period:
    """Half-open UTC window [start, end)."""
    label: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }


@dataclass
class PeriodComparison:
    key: str
    label: str
    current_period: Optional[Period] = None
    previous_period: Optional[Period] = None
    current: Optional[KpiSnapshot] = None
    previous: Optional[KpiSnapshot] = None
    trends: Dict[str, Optional[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'label': self.label,
            'current_period': self.current_period.to_dict() if self.current_period else None,
            'previous_period': self.previous_period.to_dict() if self.previous_period else None,
            'current': self.current.to_dict() if self.current else None,
            'previous': self.previous.to_dict() if self.previous else None,
            'trends': dict(self.trends),
        }


@dataclass
class ComparisonReport:
    anchor_date: Optional[datetime]
    variant: KpiVariant
    comparisons: List[PeriodComparison] = field(default_factory=list)

    def get(self, key: str) -> Optional[PeriodComparison]:
        for comparison in self.comparisons:
            if comparison.key == key:
                return comparison
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'anchor_date': self.anchor_date.isoformat() if self.anchor_date else None,
            'variant': self.variant.value,
            'comparisons': [c.to_dict() for c in self.comparisons],
        }


# =============================================================================
# PERIOD WINDOWS
# =============================================================================

def month_period(year: int, month: int) -> Period:
    next_year, next_month = add_months(year, month, 1)
    return Period(
        label=f"{year}-{month:02d}",
        start=month_start(year, month),
        end=month_start(next_year, next_month),
    )


def quarter_period(year: int, quarter: int) -> Period:
    first = quarter_first_month(quarter)
    next_year, next_month = add_months(year, first, MONTHS_PER_QUARTER)
    return Period(
        label=f"{year}-Q{quarter}",
        start=month_start(year, first),
        end=month_start(next_year, next_month),
    )


def year_period(year: int) -> Period:
    return Period(label=f"{year}", start=month_start(year, 1), end=month_start(year + 1, 1))


def year_to_date_period(anchor: datetime, years_back: int = 0) -> Period:
    """
    Jan 1 through the end of the anchor's calendar day, optionally shifted
    back whole years. Feb 29 maps to Feb 28 in a non-leap year.
    """
    year = anchor.year - years_back
    day = anchor.day
    if anchor.month == 2 and day == 29:
        try:
            datetime(year, 2, 29)
        except ValueError:
            day = 28
    last_day = anchor.replace(year=year, day=day, hour=0, minute=0, second=0, microsecond=0)
    return Period(
        label=f"{year} YTD",
        start=month_start(year, 1),
        end=last_day + timedelta(days=1),
    )


def _select(transactions: Sequence[Transaction], period: Period) -> List[Transaction]:
    return [t for t in transactions if period.contains(t.sale_date)]


def _snapshot(
    transactions: Sequence[Transaction],
    period: Period,
    variant: KpiVariant,
) -> Optional[KpiSnapshot]:
    members = _select(transactions, period)
    if not members:
        return None
    return compute_kpis(members, variant)


def metric_trends(
    current: Optional[KpiSnapshot],
    previous: Optional[KpiSnapshot],
    variant: KpiVariant = DEFAULT_KPI_VARIANT,
) -> Dict[str, Optional[float]]:
    """Percentage change per metric; every value None when a side is missing."""
    metrics = SNAPSHOT_CLASSES[variant].METRICS
    if current is None or previous is None:
        return {name: None for name in metrics}
    return {name: pct_change(current.metric(name), previous.metric(name)) for name in metrics}


def _compare(
    key: str,
    transactions: Sequence[Transaction],
    current_period: Period,
    previous_period: Period,
    variant: KpiVariant,
) -> PeriodComparison:
    current = _snapshot(transactions, current_period, variant)
    previous = _snapshot(transactions, previous_period, variant)
    return PeriodComparison(
        key=key,
        label=COMPARISON_LABELS[key],
        current_period=current_period,
        previous_period=previous_period,
        current=current,
        previous=previous,
        trends=metric_trends(current, previous, variant),
    )


def compare_periods(
    transactions: Sequence[Transaction],
    variant: KpiVariant = DEFAULT_KPI_VARIANT,
) -> ComparisonReport:
    """
    Build the four period comparisons anchored on the latest sale.

    Args:
        transactions: Filtered collection (any order)
        variant: Snapshot shape used for every side

    Returns:
        ComparisonReport with comparisons in COMPARISON_ORDER. For an empty
        collection anchor_date is None and every pair has no periods, no
        snapshots and null trends.
    """
    if not transactions:
        return ComparisonReport(
            anchor_date=None,
            variant=variant,
            comparisons=[
                PeriodComparison(
                    key=key,
                    label=COMPARISON_LABELS[key],
                    trends=metric_trends(None, None, variant),
                )
                for key in COMPARISON_ORDER
            ],
        )

    anchor = max(t.sale_date for t in transactions)
    year, month = anchor.year, anchor.month
    quarter = quarter_of(month)

    pairs = {
        'month': (month_period(year, month), month_period(*previous_month(year, month))),
        'quarter': (quarter_period(year, quarter), quarter_period(*previous_quarter(year, quarter))),
        'year_to_date': (year_to_date_period(anchor), year_period(year - 1)),
        'year_over_year': (year_to_date_period(anchor), year_to_date_period(anchor, years_back=1)),
    }

    report = ComparisonReport(anchor_date=anchor, variant=variant)
    for key in COMPARISON_ORDER:
        current_period, previous_period = pairs[key]
        report.comparisons.append(
            _compare(key, transactions, current_period, previous_period, variant)
        )

    logger.debug(f"Compared periods anchored at {anchor.isoformat()} ({variant.value})")
    return report
