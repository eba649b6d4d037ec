"""
Record Normalizer - Transform raw sheet rows into Transaction records

Maps loosely-typed rows (as returned by the spreadsheet endpoint or read from
a CSV export) to immutable Transaction values.
Handles:
- Field aliasing (sheet layout and URA REALIS export layout)
- Numeric coercion ("$1,250,000" -> 1250000.0, "-" -> 0.0, junk -> 0.0)
- Sale date parsing (ISO-8601, DD-Mon-YY, Mon-YY) into UTC datetimes
- Derived street name (address minus leading house number)

PARSE-OR-DROP POLICY:
    A row without a usable sale date is dropped and logged. It never becomes
    a Transaction with a placeholder date. Bad numeric cells never drop a
    row; they coerce to 0 and the row flows through.

Usage:
    from services.record_normalizer import normalize_records

    transactions = normalize_records(rows)
"""

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from constants import (
    MISSING_VALUE_PLACEHOLDER,
    MONTH_ABBREVIATIONS,
    PAYLOAD_DATA_KEY,
    RAW_FIELD_ALIASES,
    TWO_DIGIT_YEAR_BASE,
    UNKNOWN_CATEGORY,
)
from models.transaction import Transaction
from utils.normalize import to_str

logger = logging.getLogger(__name__)

__all__ = [
    'RecordNormalizer',
    'NormalizationReport',
    'parse_number',
    'parse_sale_date',
    'extract_street_name',
    'extract_rows',
    'normalize_record',
    'normalize_records',
]


# =============================================================================
# Patterns
# =============================================================================

# Currency markers and thousands separators removed before float()
_NUMERIC_NOISE = re.compile(r'(?i)sgd|s\$|[$,\s]')

# "22-Sep-25", "5-sept-2025"
_DAY_MON_YEAR = re.compile(r'^(\d{1,2})-([A-Za-z]{3,})-(\d{2}|\d{4})$')

# "Sep-25", "Sept-2025"
_MON_YEAR = re.compile(r'^([A-Za-z]{3,})-(\d{2}|\d{4})$')

# Leading house number: "8 ", "33 ", "3B ", "527B "
_HOUSE_NUMBER = re.compile(r'^\d+[A-Za-z]*\s+')


# =============================================================================
# Field Parsing Helpers
# =============================================================================

def parse_number(value: Any) -> float:
    """
    Coerce a loosely-typed cell to float. Never raises.

    None, "", whitespace, "-" and anything non-numeric become 0.0, as do
    NaN and infinities.

    Examples:
        >>> parse_number("$1,250,000")
        1250000.0
        >>> parse_number("-")
        0.0
        >>> parse_number("n/a")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).strip()
        if not text or text == MISSING_VALUE_PLACEHOLDER:
            return 0.0
        try:
            result = float(_NUMERIC_NOISE.sub('', text))
        except ValueError:
            return 0.0

    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def _expand_year(year_text: str) -> int:
    year = int(year_text)
    return TWO_DIGIT_YEAR_BASE + year if year < 100 else year


def _month_from_token(token: str) -> Optional[int]:
    return MONTH_ABBREVIATIONS.get(token[:3].lower())


def _parse_compact_date(text: str) -> Optional[datetime]:
    """DD-Mon-YY / Mon-YY -> UTC midnight, or None."""
    day = 1
    match = _DAY_MON_YEAR.match(text)
    if match:
        day_text, month_token, year_text = match.groups()
        day = int(day_text)
    else:
        match = _MON_YEAR.match(text)
        if not match:
            return None
        month_token, year_text = match.groups()

    month = _month_from_token(month_token)
    if month is None:
        return None
    try:
        return datetime(_expand_year(year_text), month, day, tzinfo=timezone.utc)
    except ValueError:
        # e.g. 31-Feb-25
        return None


def _parse_iso_date(text: str) -> Optional[datetime]:
    """ISO-8601 date or timestamp -> UTC datetime, or None."""
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_sale_date(value: Any) -> Optional[datetime]:
    """
    Parse a raw sale date into a timezone-aware UTC datetime.

    Accepted shapes:
        "2025-02-19T16:00:00.000Z"  exact instant (kept as-is, in UTC)
        "2025-02-19"                UTC midnight
        "22-Sep-25"                 UTC midnight, year 2000 + YY
        "Sep-25"                    first of month, UTC midnight

    Returns:
        datetime in UTC, or None if the value is missing, "-" or unparseable
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or text == MISSING_VALUE_PLACEHOLDER:
        return None
    return _parse_compact_date(text) or _parse_iso_date(text)


def extract_street_name(full_address: Any) -> str:
    """
    Derive the street from a free-text address by dropping the house number.

    Examples:
        >>> extract_street_name("527B Bedok North Street 3")
        'Bedok North Street 3'
        >>> extract_street_name("  8 Jalan Bilal ")
        'Jalan Bilal'
    """
    if not isinstance(full_address, str) or not full_address.strip():
        return UNKNOWN_CATEGORY
    return _HOUSE_NUMBER.sub('', full_address.strip()).strip()


def _raw_value(record: Mapping[str, Any], canonical: str) -> Any:
    """First present alias wins."""
    for alias in RAW_FIELD_ALIASES[canonical]:
        if alias in record:
            return record[alias]
    return None


def _has_field(record: Mapping[str, Any], canonical: str) -> bool:
    return any(alias in record for alias in RAW_FIELD_ALIASES[canonical])


def _category(value: Any) -> str:
    if value is None:
        return UNKNOWN_CATEGORY
    return to_str(str(value), default=UNKNOWN_CATEGORY)


def extract_rows(payload: Any) -> List[Dict[str, Any]]:
    """
    Unwrap the decoded JSON payload into a list of row dicts.

    Accepts a bare array or {"data": [...]}. Any other shape is not an error:
    it is logged and treated as zero rows.
    """
    rows = payload
    if isinstance(payload, dict):
        rows = payload.get(PAYLOAD_DATA_KEY)
    if not isinstance(rows, list):
        logger.error(
            f"Payload is not in the expected format (expected an array), "
            f"got {type(payload).__name__}"
        )
        return []
    return rows


# =============================================================================
# Record Normalizer
# =============================================================================

@dataclass
class NormalizationReport:
    """Outcome of one batch."""
    total: int = 0
    accepted: int = 0
    dropped: int = 0
    drop_reasons: Counter = field(default_factory=Counter)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'accepted': self.accepted,
            'dropped': self.dropped,
            'drop_reasons': dict(self.drop_reasons),
        }


class RecordNormalizer:
    """
    Maps raw rows to Transaction records, keeping per-batch statistics.

    Example:
        normalizer = RecordNormalizer()
        transactions = normalizer.normalize_all(rows)
        print(normalizer.report.to_dict())
    """

    def __init__(self):
        self.report = NormalizationReport()

    def reset(self) -> None:
        self.report = NormalizationReport()

    def _drop(self, reason: str, record: Any) -> None:
        self.report.dropped += 1
        self.report.drop_reasons[reason] += 1
        logger.warning(f"Skipping row ({reason}): {record!r}")

    def normalize(self, record: Any) -> Optional[Transaction]:
        """Map one row, or return None (and count the drop)."""
        self.report.total += 1

        if not isinstance(record, Mapping):
            self._drop('not_an_object', record)
            return None

        raw_date = _raw_value(record, 'sale_date')
        if not isinstance(raw_date, str) or not raw_date.strip() \
                or raw_date.strip() == MISSING_VALUE_PLACEHOLDER:
            self._drop('missing_date', record)
            return None

        sale_date = parse_sale_date(raw_date)
        if sale_date is None:
            self._drop('invalid_date', record)
            return None

        full_address = to_str(_raw_value(record, 'address'), default='')
        explicit_street = _raw_value(record, 'street_name')
        if isinstance(explicit_street, str) and explicit_street.strip():
            street_name = explicit_street.strip()
        else:
            street_name = extract_street_name(full_address)

        profit = None
        if _has_field(record, 'profit'):
            profit = parse_number(_raw_value(record, 'profit'))

        txn = Transaction(
            sale_date=sale_date,
            transacted_price=parse_number(_raw_value(record, 'transacted_price')),
            area_sqft=parse_number(_raw_value(record, 'area_sqft')),
            unit_price_psf=parse_number(_raw_value(record, 'unit_price_psf')),
            property_type=_category(_raw_value(record, 'property_type')),
            tenure=_category(_raw_value(record, 'tenure')),
            street_name=street_name,
            original_sale_date=raw_date.strip(),
            full_address=full_address,
            profit=profit,
            purchase_price=parse_number(_raw_value(record, 'purchase_price')),
            purchase_psf=parse_number(_raw_value(record, 'purchase_psf')),
            project_name=to_str(_raw_value(record, 'project_name'), default=''),
            postal_district=to_str(
                str(_raw_value(record, 'postal_district') or ''), default=''
            ),
        )
        self.report.accepted += 1
        return txn

    def normalize_all(self, records: Iterable[Any]) -> List[Transaction]:
        """Map a batch in source order; dropped rows are skipped."""
        transactions = []
        for record in records:
            txn = self.normalize(record)
            if txn is not None:
                transactions.append(txn)

        if self.report.dropped:
            logger.warning(
                f"Normalized {self.report.accepted}/{self.report.total} rows, "
                f"dropped {self.report.dropped}: {dict(self.report.drop_reasons)}"
            )
        else:
            logger.info(f"Normalized {self.report.accepted} rows")
        return transactions


def normalize_record(record: Any) -> Optional[Transaction]:
    """Parse-or-drop a single row."""
    return RecordNormalizer().normalize(record)


def normalize_records(records: Iterable[Any]) -> List[Transaction]:
    """Normalize a batch of rows, preserving source order."""
    return RecordNormalizer().normalize_all(records)
