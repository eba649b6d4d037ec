"""
KPI Base Module - Shared infrastructure for all KPI computation.

Core components:
- KpiSnapshot: fixed-shape aggregate over a transaction collection
  (BasicKpiSnapshot carries the median PSF, ExtendedKpiSnapshot the
  average profit)
- KPIResult: display card shape for the frontend
- compute_kpis(): reduce a collection to a snapshot
- safe_mean() / median() / pct_change(): zero-safe arithmetic

Usage:
    from services.kpi.base import compute_kpis, KpiVariant

    snapshot = compute_kpis(transactions, KpiVariant.BASIC)
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence

from constants import KpiVariant, DEFAULT_KPI_VARIANT
from models.transaction import Transaction

logger = logging.getLogger('kpi')


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class KpiSnapshot:
    """Fields shared by both snapshot shapes."""
    total_transactions: int = 0
    total_sales_volume: float = 0.0
    average_price_psf: float = 0.0
    highest_transaction: float = 0.0

    variant: ClassVar[KpiVariant]

    # Metric names compared by the period comparator, in display order
    METRICS: ClassVar[tuple] = (
        'total_transactions',
        'total_sales_volume',
        'average_price_psf',
        'highest_transaction',
    )

    def metric(self, name: str) -> float:
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload['variant'] = self.variant.value
        return payload


@dataclass(frozen=True)
class BasicKpiSnapshot(KpiSnapshot):
    """Snapshot with the median PSF."""
    median_price_psf: float = 0.0

    variant: ClassVar[KpiVariant] = KpiVariant.BASIC
    METRICS: ClassVar[tuple] = (
        'total_transactions',
        'total_sales_volume',
        'average_price_psf',
        'median_price_psf',
        'highest_transaction',
    )


@dataclass(frozen=True)
class ExtendedKpiSnapshot(KpiSnapshot):
    """Snapshot with the average profit of profitable resales."""
    average_profit: float = 0.0

    variant: ClassVar[KpiVariant] = KpiVariant.EXTENDED
    METRICS: ClassVar[tuple] = (
        'total_transactions',
        'total_sales_volume',
        'average_price_psf',
        'average_profit',
        'highest_transaction',
    )


SNAPSHOT_CLASSES = {
    KpiVariant.BASIC: BasicKpiSnapshot,
    KpiVariant.EXTENDED: ExtendedKpiSnapshot,
}


@dataclass
class KPIResult:
    """Standardized KPI card shape for frontend."""
    kpi_id: str
    title: str
    value: Any
    formatted_value: str
    subtitle: Optional[str] = None
    trend: Optional[Dict[str, Any]] = None  # {value, direction, label}
    insight: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


# =============================================================================
# ARITHMETIC (zero-safe)
# =============================================================================

def safe_mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Iterable[float]) -> float:
    """
    Median of the values, 0.0 for an empty input.

    Even count: mean of the two middle values after sorting ascending.
        [10, 20, 30]     -> 20
        [10, 20, 30, 40] -> 25
    """
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return float(ordered[mid])


def positive_profits(transactions: Iterable[Transaction]) -> List[float]:
    """
    Profits of profitable transactions only.

    Losses and missing profits are excluded from the denominator, not
    counted as zero.
    """
    return [t.profit for t in transactions if t.profit is not None and t.profit > 0]


def pct_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """
    Percentage change (current - previous) / previous * 100.

    Returns None when either side is missing or previous is zero, so callers
    never see NaN or an infinite/flipped percentage.
    """
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


# =============================================================================
# AGGREGATION
# =============================================================================

def empty_snapshot(variant: KpiVariant = DEFAULT_KPI_VARIANT) -> KpiSnapshot:
    """All-zero snapshot of the requested shape."""
    return SNAPSHOT_CLASSES[variant]()


def compute_kpis(
    transactions: Sequence[Transaction],
    variant: KpiVariant = DEFAULT_KPI_VARIANT,
) -> KpiSnapshot:
    """
    Reduce a transaction collection to a KPI snapshot.

    Args:
        transactions: Filtered collection (any order)
        variant: BASIC (median PSF) or EXTENDED (average profit)

    Returns:
        Snapshot of the requested shape; the all-zero snapshot when the
        collection is empty (never None, never NaN).
    """
    count = len(transactions)
    if count == 0:
        logger.debug(f"No transactions, returning zero {variant.value} snapshot")
        return empty_snapshot(variant)

    prices = [t.transacted_price for t in transactions]
    psfs = [t.unit_price_psf for t in transactions]

    common = dict(
        total_transactions=count,
        total_sales_volume=sum(prices),
        average_price_psf=safe_mean(psfs),
        highest_transaction=max(prices),
    )

    if variant == KpiVariant.BASIC:
        return BasicKpiSnapshot(median_price_psf=median(psfs), **common)
    return ExtendedKpiSnapshot(
        average_profit=safe_mean(positive_profits(transactions)),
        **common,
    )
