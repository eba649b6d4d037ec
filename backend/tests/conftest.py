"""
Root pytest configuration for backend tests.

Provides:
- Sample sheet rows and their normalized transactions
- make_txn factory for hand-built Transactions
- Shared fixtures (store, app, client) with the dataset injected, so no test
  touches the network
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Add backend directory to Python path so imports like
# `from services.kpi import ...` and `from utils.normalize import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest


SAMPLE_ROWS = [
    {
        "Sale Date": "22-Sep-25",
        "Sale Price": "$3,200,000",
        "Area (sqft)": "2,000",
        "Sale PSF": "$1,600",
        "Sub Type": "Terrace",
        "Tenure": "Freehold",
        "Address": "8 Jalan Bilal",
        "Profit": "$800,000",
        "Purchase Price": "$2,400,000",
        "Purchase PSF": "$1,200",
    },
    {
        "Sale Date": "2025-09-03",
        "Sale Price": "2500000",
        "Area (sqft)": "2000",
        "Sale PSF": "1250",
        "Sub Type": "Semi-Detached House",
        "Tenure": "99 yrs",
        "Address": "527B Bedok North Ave 4",
        "Profit": "-50,000",
    },
    {
        "Sale Date": "Aug-25",
        "Sale Price": "$2,800,000",
        "Area (sqft)": "2,000",
        "Sale PSF": "$1,400",
        "Sub Type": "Terrace",
        "Tenure": "Freehold",
        "Address": "33 Jalan Bilal",
        "Profit": "-",
    },
    {
        "Sale Date": "15-Jan-25",
        "Sale Price": "$6,000,000",
        "Area (sqft)": "4,000",
        "Sale PSF": "$1,500",
        "Sub Type": "Detached House",
        "Tenure": "Freehold",
        "Address": "12 Kew Drive",
        "Profit": "$1,200,000",
    },
    {
        "Sale Date": "2024-11-20T16:00:00.000Z",
        "Sale Price": "$2,400,000",
        "Area (sqft)": "2,000",
        "Sale PSF": "$1,200",
        "Sub Type": "Terrace",
        "Tenure": "999 yrs",
        "Address": "3 Eastwood Road",
        "Profit": "$400,000",
    },
    # Dropped: placeholder date
    {"Sale Date": "-", "Sale Price": "$1,000,000", "Sub Type": "Terrace"},
    # Dropped: impossible calendar date
    {"Sale Date": "31-Feb-25", "Sale Price": "$1,000,000", "Sub Type": "Terrace"},
    # Dropped: no date column at all
    {"Sale Price": "$1,000,000", "Sub Type": "Terrace"},
]


@pytest.fixture(autouse=True)
def fresh_dashboard_cache():
    """Cache keys restart at v1 for every new store; start each test cold."""
    from services.dashboard_service import clear_dashboard_cache
    clear_dashboard_cache()
    yield


@pytest.fixture
def sample_rows():
    """Raw sheet rows: five valid, three that must be dropped."""
    return [dict(row) for row in SAMPLE_ROWS]


@pytest.fixture
def transactions(sample_rows):
    """The five normalized sample transactions, in source order."""
    from services.record_normalizer import normalize_records
    return normalize_records(sample_rows)


@pytest.fixture
def make_txn():
    """Factory for Transactions with sensible defaults."""
    from models.transaction import Transaction

    def _make(day, price=1_000_000.0, psf=1_000.0, property_type="Terrace",
              tenure="Freehold", street="Jalan Bilal", profit=None, area=1_000.0):
        if isinstance(day, str):
            year, month, dom = (int(p) for p in day.split("-"))
            sale_date = datetime(year, month, dom, tzinfo=timezone.utc)
        else:
            sale_date = day
        return Transaction(
            sale_date=sale_date,
            transacted_price=price,
            area_sqft=area,
            unit_price_psf=psf,
            property_type=property_type,
            tenure=tenure,
            street_name=street,
            profit=profit,
        )

    return _make


@pytest.fixture
def store(transactions):
    """In-memory dataset store seeded with the sample transactions."""
    from services.dashboard_service import DatasetStore
    return DatasetStore.from_transactions(transactions)


@pytest.fixture
def app(store):
    """Create test Flask application."""
    from app import create_app
    from services.ai_service import set_ai_service
    from services.dashboard_service import set_dataset_store

    app = create_app(store=store)
    app.config['TESTING'] = True
    yield app

    set_dataset_store(None)
    set_ai_service(None)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
