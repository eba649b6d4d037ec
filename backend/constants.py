"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Raw field names, placeholder tokens, month tokens and the enumerations used
by the transformation pipeline are defined here and imported elsewhere.

DO NOT duplicate these definitions in other files.

Reference: the District 16 landed transactions sheet (Sale Date, Sale PSF,
Sub Type, ...) and the URA REALIS export (Transacted Price ($), Unit Price
($ PSF), Property Type, ...). Both layouts are accepted by the normalizer.
"""

from enum import Enum


# =============================================================================
# DISTRICT
# =============================================================================

DISTRICT_CODE = 'D16'
DISTRICT_LABEL = 'District 16 (Bedok, Upper East Coast, Eastwood, Kew Drive)'


# =============================================================================
# RAW FIELD ALIASES
# =============================================================================
#
# Each canonical field maps to the raw column names that may carry it.
# The first alias present in a record wins.

RAW_FIELD_ALIASES = {
    'sale_date': ('Sale Date',),
    'transacted_price': ('Sale Price', 'Transacted Price ($)'),
    'area_sqft': ('Area (sqft)', 'Area (SQFT)'),
    'unit_price_psf': ('Sale PSF', 'Unit Price ($ PSF)'),
    'property_type': ('Sub Type', 'Property Type'),
    'tenure': ('Tenure',),
    'address': ('Address',),
    'street_name': ('Street Name',),
    'project_name': ('Project Name',),
    'postal_district': ('Postal District',),
    'profit': ('Profit',),
    'purchase_price': ('Purchase Price',),
    'purchase_psf': ('Purchase PSF',),
}

# Payload envelope key used when the endpoint wraps rows in an object
PAYLOAD_DATA_KEY = 'data'


# =============================================================================
# PLACEHOLDERS
# =============================================================================

# Spreadsheet placeholder for an empty cell
MISSING_VALUE_PLACEHOLDER = '-'

# Display value for a categorical field the source did not supply
UNKNOWN_CATEGORY = 'N/A'


# =============================================================================
# DATES
# =============================================================================

# Three-letter month token -> month number (1-12)
MONTH_ABBREVIATIONS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

# Two-digit years are interpreted as 2000 + YY
TWO_DIGIT_YEAR_BASE = 2000

MONTHS_PER_QUARTER = 3
MONTHS_PER_YEAR = 12


class TimeGrain(str, Enum):
    """Bucket granularity for time series."""
    MONTH = 'month'
    QUARTER = 'quarter'
    YEAR = 'year'


# Months the bucket cursor advances per step
TIME_GRAIN_MONTHS = {
    TimeGrain.MONTH: 1,
    TimeGrain.QUARTER: MONTHS_PER_QUARTER,
    TimeGrain.YEAR: MONTHS_PER_YEAR,
}


# =============================================================================
# KPI / CHART OPTIONS
# =============================================================================

class KpiVariant(str, Enum):
    """
    KPI snapshot shape.

    BASIC carries the median PSF, EXTENDED carries the average profit.
    The two are never merged into one record.
    """
    BASIC = 'basic'
    EXTENDED = 'extended'


DEFAULT_KPI_VARIANT = KpiVariant.EXTENDED


class CategoryField(str, Enum):
    """Transaction attribute used for stacked counts and the distribution."""
    PROPERTY_TYPE = 'property_type'
    TENURE = 'tenure'
    STREET_NAME = 'street_name'


DEFAULT_TIME_GRAIN = TimeGrain.MONTH
DEFAULT_CATEGORY_FIELD = CategoryField.PROPERTY_TYPE

# Trend direction thresholds (percent); inside the band reads as neutral
TREND_NEUTRAL_BAND_PCT = 0.5


# =============================================================================
# TRANSACTIONS TABLE
# =============================================================================

TRANSACTION_SORT_FIELDS = (
    'sale_date',
    'street_name',
    'property_type',
    'transacted_price',
    'area_sqft',
    'unit_price_psf',
    'tenure',
    'profit',
)
DEFAULT_TRANSACTION_SORT = 'sale_date'
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 500
