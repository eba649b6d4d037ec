"""
Calendar period helpers (UTC).

Shared by the time series bucketizer and the period comparator so both use
the same quarter numbering and the same period keys:
    month   -> "2025-03"
    quarter -> "2025-Q1"
    year    -> "2025"
"""

from datetime import datetime, timezone
from typing import List, Tuple

from constants import (
    TimeGrain,
    DEFAULT_TIME_GRAIN,
    MONTHS_PER_QUARTER,
    MONTHS_PER_YEAR,
    TIME_GRAIN_MONTHS,
)


def quarter_of(month: int) -> int:
    """1-based quarter of a 1-based month (Jan-Mar = Q1)."""
    return (month - 1) // MONTHS_PER_QUARTER + 1


def quarter_first_month(quarter: int) -> int:
    return (quarter - 1) * MONTHS_PER_QUARTER + 1


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    """Shift (year, month) by a number of months, rolling the year over."""
    index = year * MONTHS_PER_YEAR + (month - 1) + months
    return index // MONTHS_PER_YEAR, index % MONTHS_PER_YEAR + 1


def previous_month(year: int, month: int) -> Tuple[int, int]:
    """January -> December of the prior year."""
    return add_months(year, month, -1)


def previous_quarter(year: int, quarter: int) -> Tuple[int, int]:
    """Q1 -> Q4 of the prior year."""
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def period_start(moment: datetime, grain: TimeGrain) -> datetime:
    """First instant (UTC) of the period containing moment."""
    moment = moment.astimezone(timezone.utc)
    if grain == TimeGrain.YEAR:
        return month_start(moment.year, 1)
    if grain == TimeGrain.QUARTER:
        return month_start(moment.year, quarter_first_month(quarter_of(moment.month)))
    return month_start(moment.year, moment.month)


def period_key(moment: datetime, grain: TimeGrain = DEFAULT_TIME_GRAIN) -> str:
    """Bucket key for an instant, using its UTC calendar fields."""
    moment = moment.astimezone(timezone.utc)
    if grain == TimeGrain.YEAR:
        return f"{moment.year}"
    if grain == TimeGrain.QUARTER:
        return f"{moment.year}-Q{quarter_of(moment.month)}"
    return f"{moment.year}-{moment.month:02d}"


def iter_period_starts(first: datetime, last: datetime, grain: TimeGrain) -> List[datetime]:
    """
    Start of every period from the one containing first to the one
    containing last, inclusive.

    The cursor is aligned to the start of first's period, then stepped one
    unit at a time, so a range such as Mar -> Apr at quarter grain yields
    both Q1 and Q2.
    """
    step = TIME_GRAIN_MONTHS[grain]
    cursor = period_start(first, grain)
    end = period_start(last, grain)
    starts = []
    while cursor <= end:
        starts.append(cursor)
        year, month = add_months(cursor.year, cursor.month, step)
        cursor = month_start(year, month)
    return starts
