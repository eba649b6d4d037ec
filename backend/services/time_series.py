"""
Time Series Service - Calendar bucketing for trend charts

Buckets a filtered transaction collection into contiguous calendar periods
(month / quarter / year) for the volume, PSF and profit charts, and counts
transactions per category for the stacked and distribution charts.

Period keys (lexicographically sortable, fixed width per component):
    month   -> "2025-03"
    quarter -> "2025-Q1"
    year    -> "2025"

Every period between the earliest and latest sale is present, including
periods without a single transaction, so charts never skip a gap silently.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from constants import (
    CategoryField,
    TimeGrain,
    DEFAULT_CATEGORY_FIELD,
    DEFAULT_TIME_GRAIN,
)
from models.transaction import Transaction
from services.kpi.base import positive_profits, safe_mean
from utils.periods import iter_period_starts, period_key

logger = logging.getLogger('dashboard.time_series')


# =============================================================================
# BUCKETS
# =============================================================================

@dataclass
class TimeSeriesBucket:
    """Aggregates for one calendar period."""
    period: str
    transactions: int = 0
    avg_price_psf: float = 0.0
    avg_profit: float = 0.0
    categories: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'period': self.period,
            'transactions': self.transactions,
            'avg_price_psf': round(self.avg_price_psf, 2),
            'avg_profit': round(self.avg_profit, 2),
            'categories': dict(self.categories),
        }


@dataclass
class ChartData:
    """Distribution + time series for one filtered collection."""
    granularity: TimeGrain
    category_field: CategoryField
    categories: List[str]
    distribution: List[Dict[str, Any]]
    time_series: List[TimeSeriesBucket]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'granularity': self.granularity.value,
            'category_field': self.category_field.value,
            'categories': list(self.categories),
            'distribution': [dict(item) for item in self.distribution],
            'time_series': [bucket.to_dict() for bucket in self.time_series],
        }


def category_distribution(
    transactions: Sequence[Transaction],
    category_field: CategoryField = DEFAULT_CATEGORY_FIELD,
) -> List[Dict[str, Any]]:
    """
    Count transactions per category over the whole collection.

    Returns [{"name": category, "value": count}, ...] in first-seen order.
    Independent of the time grain.
    """
    counts: Dict[str, int] = {}
    for txn in transactions:
        name = getattr(txn, category_field.value)
        counts[name] = counts.get(name, 0) + 1
    return [{'name': name, 'value': value} for name, value in counts.items()]


def build_time_series(
    transactions: Sequence[Transaction],
    granularity: TimeGrain = DEFAULT_TIME_GRAIN,
    category_field: CategoryField = DEFAULT_CATEGORY_FIELD,
) -> List[TimeSeriesBucket]:
    """
    Bucket transactions into contiguous calendar periods.

    - One bucket per period between the earliest and latest sale, inclusive
    - Empty periods carry zero count, zero means and zero per category
    - Every category present in the collection is seeded at 0 in every
      bucket, so stacked charts see the same keys for each period
    - avg_profit averages profitable sales only (losses excluded)

    Returns:
        Buckets sorted ascending by period key; [] for an empty collection.
    """
    if not transactions:
        return []

    dates = [txn.sale_date for txn in transactions]
    categories = sorted({getattr(txn, category_field.value) for txn in transactions})

    grouped: Dict[str, List[Transaction]] = {}
    for start in iter_period_starts(min(dates), max(dates), granularity):
        grouped[period_key(start, granularity)] = []

    for txn in transactions:
        grouped[period_key(txn.sale_date, granularity)].append(txn)

    buckets = []
    for key, members in grouped.items():
        counts = {name: 0 for name in categories}
        for txn in members:
            counts[getattr(txn, category_field.value)] += 1
        buckets.append(TimeSeriesBucket(
            period=key,
            transactions=len(members),
            avg_price_psf=safe_mean([t.unit_price_psf for t in members]),
            avg_profit=safe_mean(positive_profits(members)),
            categories=counts,
        ))

    buckets.sort(key=lambda b: b.period)
    return buckets


def build_chart_data(
    transactions: Sequence[Transaction],
    granularity: TimeGrain = DEFAULT_TIME_GRAIN,
    category_field: CategoryField = DEFAULT_CATEGORY_FIELD,
) -> ChartData:
    """Distribution + time series in one call (the /charts payload)."""
    series = build_time_series(transactions, granularity, category_field)
    logger.debug(
        f"Built {len(series)} {granularity.value} buckets from {len(transactions)} transactions"
    )
    return ChartData(
        granularity=granularity,
        category_field=category_field,
        categories=sorted({getattr(t, category_field.value) for t in transactions}),
        distribution=category_distribution(transactions, category_field),
        time_series=series,
    )
