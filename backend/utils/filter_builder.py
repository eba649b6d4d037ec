"""
Filter builder utilities.

Single source of truth for applying a FilterConfig to a transaction
collection. Every route, the CLI and the dashboard service go through
apply_filters(); nothing else re-implements the date or category checks.
"""

from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional, Tuple

from models.transaction import Transaction
from schemas.filters import FilterConfig
from utils.normalize import to_date

# Inclusive end-of-day instant (23:59:59.999)
END_OF_DAY = time(23, 59, 59, 999000)


def parse_utc_day(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD bound into a calendar date.

    Components are split and rebuilt; the host's local timezone never takes
    part, so a viewer in UTC+8 and one in UTC-5 get the same day.
    """
    return to_date(value)


def day_bounds_utc(
    start_date: Optional[date],
    end_date: Optional[date],
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Convert inclusive calendar bounds to UTC instants.

    Returns:
        (start, end) where start is 00:00:00.000 UTC of start_date and end is
        23:59:59.999 UTC of end_date. Missing bounds stay None.
    """
    start = None
    end = None
    if start_date is not None:
        start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    if end_date is not None:
        end = datetime.combine(end_date, END_OF_DAY, tzinfo=timezone.utc)
    return start, end


def matches(
    txn: Transaction,
    filters: FilterConfig,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> bool:
    """
    Check one transaction against the filters.

    Dimensions are ANDed; values inside a dimension are ORed. An empty set
    does not restrict.
    """
    if start is not None and txn.sale_date < start:
        return False
    if end is not None and txn.sale_date > end:
        return False
    if filters.property_types and txn.property_type not in filters.property_types:
        return False
    if filters.tenures and txn.tenure not in filters.tenures:
        return False
    if filters.street_names and txn.street_name not in filters.street_names:
        return False
    return True


def apply_filters(
    transactions: Iterable[Transaction],
    filters: FilterConfig,
) -> List[Transaction]:
    """
    Apply date range and category filters.

    Pure: the input is not modified and the returned list keeps the input's
    relative order.
    """
    start, end = day_bounds_utc(filters.start_date, filters.end_date)
    return [txn for txn in transactions if matches(txn, filters, start, end)]


def unique_values(transactions: Iterable[Transaction], attribute: str) -> List[str]:
    """Sorted distinct values of a categorical attribute (filter dropdowns)."""
    return sorted({getattr(txn, attribute) for txn in transactions})


def date_range(transactions: Iterable[Transaction]) -> Tuple[Optional[date], Optional[date]]:
    """
    Earliest and latest sale day in the collection (UTC calendar days).

    Used as the default (and reset) date range for the filter panel.
    """
    dates = [txn.sale_date for txn in transactions]
    if not dates:
        return None, None
    return min(dates).date(), max(dates).date()
