"""
Data Source - Raw transaction rows from the spreadsheet endpoint or a CSV export

The sheet is published as a JSON endpoint that returns either a bare array of
row objects or {"data": [...]}. A CSV export of the same sheet can be used
instead (local development, offline runs).

Failure policy:
- Transport failures RAISE (DataSourceHTTPError, DataSourceConnectionError,
  DataSourcePayloadError for a body that is not JSON at all)
- A JSON body of the wrong shape is not a failure: it yields zero rows and is
  logged (see record_normalizer.extract_rows)
- No retries; the caller decides when to try again

Usage:
    from services.data_source import SheetDataClient, load_transactions

    client = SheetDataClient("https://example.com/sheet.json")
    rows = client.fetch_rows()

    result = load_transactions(url=Config.DATA_SOURCE_URL)
    print(len(result.transactions), result.report.to_dict())
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from config import Config
from models.transaction import Transaction
from services.record_normalizer import NormalizationReport, RecordNormalizer, extract_rows

logger = logging.getLogger(__name__)


USER_AGENT = "LandedDashboard/1.0 (district transaction dashboard)"


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class DataSourceError(Exception):
    """Base exception for data source failures."""
    pass


class DataSourceConfigError(DataSourceError):
    """Neither an endpoint URL nor a CSV path is configured."""
    pass


class DataSourceHTTPError(DataSourceError):
    """Endpoint answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DataSourceConnectionError(DataSourceError):
    """Network failure or timeout before a response arrived."""
    pass


class DataSourcePayloadError(DataSourceError):
    """Response body (or CSV file) could not be decoded."""
    pass


@dataclass
class LoadResult:
    """Normalized dataset plus where and when it came from."""
    transactions: List[Transaction]
    report: NormalizationReport
    source: str
    loaded_at: datetime = field(default_factory=_utcnow)
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'loaded_at': self.loaded_at.isoformat(),
            'duration_seconds': round(self.duration_seconds, 3),
            'rows': len(self.transactions),
            'normalization': self.report.to_dict(),
        }


class SheetDataClient:
    """
    HTTP client for the spreadsheet-backed JSON endpoint.

    Example:
        client = SheetDataClient(url)
        rows = client.fetch_rows()
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        self.url = url or Config.DATA_SOURCE_URL
        if not self.url:
            raise DataSourceConfigError(
                "DATA_SOURCE_URL not found. Set DATA_SOURCE_URL environment variable "
                "or pass url to constructor."
            )
        self.timeout = timeout or Config.DATA_SOURCE_TIMEOUT_SECONDS
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def fetch_payload(self) -> Any:
        """
        GET the endpoint and decode its JSON body.

        Raises:
            DataSourceConnectionError: network failure or timeout
            DataSourceHTTPError: non-2xx status
            DataSourcePayloadError: body is not JSON
        """
        try:
            response = self._session.get(self.url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise DataSourceConnectionError(
                f"Data source timed out after {self.timeout}s: {e}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise DataSourceConnectionError(f"Data source request failed: {e}") from e

        if not response.ok:
            raise DataSourceHTTPError(
                f"Data source returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DataSourcePayloadError(f"Data source returned a non-JSON body: {e}") from e

    def fetch_rows(self) -> List[Dict[str, Any]]:
        """Fetch and unwrap the row list ([] for an unexpected JSON shape)."""
        rows = extract_rows(self.fetch_payload())
        logger.info(f"Fetched {len(rows)} rows from data source")
        return rows


def load_csv_records(csv_path: str) -> List[Dict[str, Any]]:
    """
    Read a CSV export of the sheet into row dicts.

    Every cell is read as text (blank cells as ''), so the normalizer sees the
    same loosely-typed values the JSON endpoint returns.
    """
    df = None
    for encoding in ['utf-8', 'latin-1']:
        try:
            df = pd.read_csv(csv_path, encoding=encoding, dtype=str, keep_default_na=False)
            break
        except UnicodeDecodeError:
            continue
        except FileNotFoundError as e:
            raise DataSourceConfigError(f"CSV export not found: {csv_path}") from e
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataSourcePayloadError(f"Could not parse CSV export {csv_path}: {e}") from e

    if df is None:
        raise DataSourcePayloadError(f"Could not decode CSV export {csv_path}")

    df.columns = [str(c).strip() for c in df.columns]
    logger.info(f"Read {len(df)} rows from {csv_path}")
    return df.to_dict('records')


def load_transactions(
    url: Optional[str] = None,
    csv_path: Optional[str] = None,
    client: Optional[SheetDataClient] = None,
) -> LoadResult:
    """
    Load and normalize the dataset from the endpoint (preferred) or a CSV.

    Config values are used only when neither url nor csv_path is passed, so
    an explicit CSV is never overridden by DATA_SOURCE_URL.

    Args:
        url: Endpoint URL (defaults to Config.DATA_SOURCE_URL)
        csv_path: CSV export path (defaults to Config.DATA_CSV_PATH)
        client: Pre-built client (tests)

    Raises:
        DataSourceError subclasses on transport or configuration failure.
    """
    start_time = time.time()

    if client is None and not (url or csv_path):
        url = Config.DATA_SOURCE_URL
        csv_path = Config.DATA_CSV_PATH

    if client is not None or url:
        client = client or SheetDataClient(url)
        rows = client.fetch_rows()
        source = client.url
    elif csv_path:
        rows = load_csv_records(csv_path)
        source = csv_path
    else:
        raise DataSourceConfigError(
            "No data source configured. Set DATA_SOURCE_URL or DATA_CSV_PATH."
        )

    normalizer = RecordNormalizer()
    transactions = normalizer.normalize_all(rows)

    result = LoadResult(
        transactions=transactions,
        report=normalizer.report,
        source=source,
        duration_seconds=time.time() - start_time,
    )
    logger.info(
        f"Loaded {len(transactions)} transactions from {source} "
        f"in {result.duration_seconds:.2f}s"
    )
    return result
