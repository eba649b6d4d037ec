"""
Dashboard Service - Dataset store and unified dashboard aggregation

Owns the currently loaded transaction collection and composes the derived
views for one DashboardParams:

    filtered   -> utils.filter_builder.apply_filters
    kpis       -> services.kpi.compute_kpis + KPI cards
    comparison -> services.kpi.compare_periods
    charts     -> services.time_series.build_chart_data

Key Features:
- Dataset loaded lazily from the data source and reloaded after a TTL
- Every reload bumps a dataset version; responses carry it in meta
- Normalized cache keys include the version, so results computed from a
  superseded dataset are never served
- Per-key locking against cache stampedes

Usage:
    from services.dashboard_service import get_dashboard_data

    result = get_dashboard_data(DashboardParams(granularity='quarter'))
"""

import hashlib
import json
import logging
import threading
import time
import uuid
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from config import Config
from constants import (
    TRANSACTION_SORT_FIELDS,
    DEFAULT_TRANSACTION_SORT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from models.transaction import Transaction
from schemas.filters import DashboardParams, FilterConfig
from services.data_source import LoadResult, load_transactions
from services.record_normalizer import NormalizationReport
from services.kpi import compare_periods, compute_kpis, run_all_kpis
from services.time_series import build_chart_data
from utils.filter_builder import apply_filters, date_range, unique_values
from utils.normalize import ValidationError

logger = logging.getLogger('dashboard')

# ============================================================================
# CONFIGURATION
# ============================================================================

PANELS = ('kpis', 'comparison', 'charts', 'transactions')
DEFAULT_PANELS = ['kpis', 'comparison', 'charts']


# ============================================================================
# CACHING
# ============================================================================

class TTLCache:
    """Simple TTL cache with max size limit."""

    def __init__(self, maxsize: int = 256, ttl: int = 300):
        self._cache = {}
        self._maxsize = maxsize
        self._ttl = ttl
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            if key in self._cache:
                value, timestamp = self._cache[key]
                if time.time() - timestamp < self._ttl:
                    self._hits += 1
                    return value
                else:
                    del self._cache[key]
            self._misses += 1
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            # Evict oldest entries if at capacity
            if key not in self._cache and len(self._cache) >= self._maxsize:
                oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][1])
                del self._cache[oldest_key]
            self._cache[key] = (value, time.time())

    def live_keys(self) -> set:
        """Keys that are present and not yet expired."""
        now = time.time()
        with self._lock:
            return {k for k, (_, ts) in self._cache.items() if now - ts < self._ttl}

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        return {
            'size': len(self._cache),
            'maxsize': self._maxsize,
            'ttl': self._ttl,
            'hits': self._hits,
            'misses': self._misses,
        }


# Global cache instance
_dashboard_cache = TTLCache(
    maxsize=Config.DASHBOARD_CACHE_MAX_SIZE,
    ttl=Config.DASHBOARD_CACHE_TTL_SECONDS,
)

# Locks for cache stampede prevention
_key_locks = {}
_key_locks_lock = threading.Lock()


def get_cache_stats() -> Dict[str, Any]:
    """Get cache statistics for monitoring."""
    return _dashboard_cache.stats()


def _prune_key_locks() -> None:
    """Drop stampede locks whose cache entry was evicted or expired."""
    live = _dashboard_cache.live_keys()
    with _key_locks_lock:
        for key in [k for k, lock in _key_locks.items() if k not in live and not lock.locked()]:
            del _key_locks[key]


def clear_dashboard_cache() -> None:
    """Clear all cached dashboard data."""
    _dashboard_cache.clear()
    with _key_locks_lock:
        _key_locks.clear()
    logger.info("Dashboard cache cleared")


# ============================================================================
# CACHE KEY GENERATION
# ============================================================================

def build_cache_key(version: int, params: DashboardParams, panels: Sequence[str],
                    store_id: str = '') -> str:
    """
    Build deterministic cache key from store id + dataset version + normalized params.

    Same params always produce the same key regardless of the order in which
    list values were supplied. Versions restart at 1 for every store, so the
    store id keeps two stores from sharing entries.
    """
    cache_input = {
        'store': store_id,
        'version': version,
        'params': params.to_api(),
        'panels': sorted(panels),
    }
    cache_str = json.dumps(cache_input, sort_keys=True)
    hash_key = hashlib.md5(cache_str.encode()).hexdigest()[:16]
    return f"dashboard:v{version}:{hash_key}"


# ============================================================================
# TIMING DECORATOR
# ============================================================================

def log_timing(operation: str):
    """Decorator to log operation timing."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000
                logger.info(f"{operation} completed in {elapsed:.1f}ms")
                if elapsed > 1000:
                    logger.warning(f"SLOW OPERATION: {operation} took {elapsed:.1f}ms")
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.error(f"{operation} failed after {elapsed:.1f}ms: {e}")
                raise
        return wrapper
    return decorator


# ============================================================================
# DATASET STORE
# ============================================================================

class DatasetStore:
    """
    Holds the loaded transaction collection behind a lock.

    Readers call snapshot() and get (version, transactions) from one
    consistent load. The collection is a tuple of frozen Transactions, so a
    snapshot can be read without holding the lock.

    Example:
        store = DatasetStore()                       # loads from Config on first use
        store = DatasetStore(loader=lambda: result)  # tests / CLI
        version, transactions = store.snapshot()
    """

    def __init__(self, loader: Optional[Callable[[], LoadResult]] = None,
                 ttl: Optional[int] = None):
        self._loader = loader or load_transactions
        self._ttl = Config.DATASET_CACHE_TTL_SECONDS if ttl is None else ttl
        self._lock = threading.RLock()
        self._transactions: Tuple[Transaction, ...] = ()
        self._version = 0
        self._loaded_at: Optional[float] = None
        self._last_load: Optional[LoadResult] = None
        self.store_id = uuid.uuid4().hex

    @classmethod
    def from_transactions(cls, transactions: Sequence[Transaction]) -> 'DatasetStore':
        """Store pre-seeded with an in-memory collection (never reloads on its own)."""
        transactions = list(transactions)
        store = cls(loader=lambda: LoadResult(
            transactions=transactions,
            report=NormalizationReport(total=len(transactions), accepted=len(transactions)),
            source='memory',
        ), ttl=0)
        store.replace(transactions, source='memory')
        return store

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_loaded(self) -> bool:
        return self._loaded_at is not None

    def _is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        if self._ttl <= 0:
            return False
        return time.time() - self._loaded_at >= self._ttl

    def replace(self, transactions: Sequence[Transaction], source: str = 'memory') -> int:
        """Swap in a new collection and bump the version."""
        with self._lock:
            self._transactions = tuple(transactions)
            self._version += 1
            self._loaded_at = time.time()
            logger.info(
                f"Dataset v{self._version} installed from {source}: "
                f"{len(self._transactions)} transactions"
            )
            return self._version

    def reload(self) -> LoadResult:
        """
        Load from the source now and install the result.

        Raises:
            DataSourceError: the previous collection stays in place
        """
        with self._lock:
            result = self._loader()
            self._last_load = result
            self.replace(result.transactions, source=result.source)
            return result

    def snapshot(self) -> Tuple[int, Tuple[Transaction, ...]]:
        """Current (version, transactions), loading first if missing or expired."""
        with self._lock:
            if self._is_stale():
                self.reload()
            return self._version, self._transactions

    def status(self) -> Dict[str, Any]:
        with self._lock:
            status = {
                'loaded': self.is_loaded,
                'version': self._version,
                'row_count': len(self._transactions),
                'ttl_seconds': self._ttl,
                'age_seconds': (
                    round(time.time() - self._loaded_at, 1) if self._loaded_at else None
                ),
            }
            if self._last_load is not None:
                status['last_load'] = self._last_load.to_dict()
            return status


_store: Optional[DatasetStore] = None
_store_lock = threading.Lock()


def get_dataset_store() -> DatasetStore:
    """Get the process-wide dataset store (created on first use)."""
    global _store
    with _store_lock:
        if _store is None:
            _store = DatasetStore()
        return _store


def set_dataset_store(store: Optional[DatasetStore]) -> None:
    """Install a store (app factory, tests). None resets to lazy creation."""
    global _store
    with _store_lock:
        _store = store
    clear_dashboard_cache()


# ============================================================================
# VIEWS
# ============================================================================

def filtered_snapshot(
    params: FilterConfig,
    store: Optional[DatasetStore] = None,
) -> Tuple[int, List[Transaction]]:
    """(version, filtered transactions) from one consistent dataset snapshot."""
    store = store or get_dataset_store()
    version, transactions = store.snapshot()
    return version, apply_filters(transactions, params)


def get_filter_options(store: Optional[DatasetStore] = None) -> Dict[str, Any]:
    """Dropdown values and the full date range of the loaded dataset."""
    store = store or get_dataset_store()
    version, transactions = store.snapshot()
    min_day, max_day = date_range(transactions)
    return {
        'property_types': unique_values(transactions, 'property_type'),
        'tenures': unique_values(transactions, 'tenure'),
        'street_names': unique_values(transactions, 'street_name'),
        'date_range': {
            'min': min_day.isoformat() if min_day else None,
            'max': max_day.isoformat() if max_day else None,
        },
        'total_transactions': len(transactions),
        'meta': {'version': version},
    }


def build_kpi_panel(transactions: Sequence[Transaction], params: DashboardParams) -> Dict[str, Any]:
    snapshot = compute_kpis(transactions, params.kpi_variant)
    report = compare_periods(transactions, params.kpi_variant)
    return {
        'snapshot': snapshot.to_dict(),
        'cards': run_all_kpis(snapshot, report),
    }


def build_comparison_panel(transactions: Sequence[Transaction], params: DashboardParams) -> Dict[str, Any]:
    return compare_periods(transactions, params.kpi_variant).to_dict()


def build_charts_panel(transactions: Sequence[Transaction], params: DashboardParams) -> Dict[str, Any]:
    return build_chart_data(transactions, params.granularity, params.category_field).to_dict()


def build_transactions_panel(transactions: Sequence[Transaction], params: DashboardParams) -> List[Dict[str, Any]]:
    return [txn.to_dict() for txn in transactions]


PANEL_BUILDERS = {
    'kpis': build_kpi_panel,
    'comparison': build_comparison_panel,
    'charts': build_charts_panel,
    'transactions': build_transactions_panel,
}


def _validate_panels(panels: Sequence[str]) -> None:
    invalid = sorted(set(panels) - set(PANELS))
    if invalid:
        raise ValidationError(
            f"Invalid panels: {invalid}. Valid: {list(PANELS)}",
            field='panels',
            received_value=list(panels),
        )


@log_timing("dashboard")
def get_dashboard_data(
    params: DashboardParams,
    panels: Optional[Sequence[str]] = None,
    skip_cache: bool = False,
    store: Optional[DatasetStore] = None,
) -> Dict[str, Any]:
    """
    Get all dashboard views in a single call.

    Args:
        params: Filters + aggregation options
        panels: Subset of PANELS. Default: DEFAULT_PANELS
        skip_cache: If True, bypass cache and compute fresh
        store: Dataset store (defaults to the process-wide store)

    Returns:
        {
            'data': { panel_name: panel_data, ... },
            'meta': {
                'cache_hit': bool,
                'elapsed_ms': float,
                'version': int,
                'filters_applied': dict,
                'panels_returned': list,
                'total_records_matched': int
            }
        }

    Raises:
        ValidationError: unknown panel names
        DataSourceError: the dataset could not be loaded
    """
    start_time = time.perf_counter()
    panels = list(panels) if panels else list(DEFAULT_PANELS)
    _validate_panels(panels)

    store = store or get_dataset_store()
    version, transactions = store.snapshot()
    cache_key = build_cache_key(version, params, panels, store.store_id)

    if not skip_cache:
        cached = _dashboard_cache.get(cache_key)
        if cached is not None:
            return _with_cache_meta(cached, start_time, cache_hit=True)

    with _key_locks_lock:
        if cache_key not in _key_locks:
            _key_locks[cache_key] = threading.Lock()
        key_lock = _key_locks[cache_key]

    with key_lock:
        # Double-check cache (another thread may have populated it)
        if not skip_cache:
            cached = _dashboard_cache.get(cache_key)
            if cached is not None:
                return _with_cache_meta(cached, start_time, cache_hit=True)

        filtered = apply_filters(transactions, params)
        data = {panel: PANEL_BUILDERS[panel](filtered, params) for panel in panels}

        result = {
            'data': data,
            'meta': {
                'cache_hit': False,
                'elapsed_ms': 0.0,
                'version': version,
                'filters_applied': params.to_api(),
                'panels_returned': panels,
                'total_records_matched': len(filtered),
                'total_records': len(transactions),
            }
        }
        _dashboard_cache.set(cache_key, result)
        _prune_key_locks()

        logger.info(
            f"Dashboard v{version} computed, {len(filtered)}/{len(transactions)} records matched"
        )
        return _with_cache_meta(result, start_time, cache_hit=False)


def _with_cache_meta(result: Dict[str, Any], start_time: float, cache_hit: bool) -> Dict[str, Any]:
    """Shallow copy with per-request meta; the cached dict is never mutated."""
    elapsed = (time.perf_counter() - start_time) * 1000
    meta = dict(result['meta'])
    meta['cache_hit'] = cache_hit
    meta['elapsed_ms'] = round(elapsed, 1)
    return {'data': result['data'], 'meta': meta}


def get_kpi_summary(params: DashboardParams, store: Optional[DatasetStore] = None) -> Dict[str, Any]:
    result = get_dashboard_data(params, panels=['kpis'], store=store)
    return {**result['data']['kpis'], 'meta': result['meta']}


def get_comparison(params: DashboardParams, store: Optional[DatasetStore] = None) -> Dict[str, Any]:
    result = get_dashboard_data(params, panels=['comparison'], store=store)
    return {**result['data']['comparison'], 'meta': result['meta']}


def get_chart_data(params: DashboardParams, store: Optional[DatasetStore] = None) -> Dict[str, Any]:
    result = get_dashboard_data(params, panels=['charts'], store=store)
    return {**result['data']['charts'], 'meta': result['meta']}


# ============================================================================
# TRANSACTIONS TABLE
# ============================================================================

def _sort_key(field: str):
    def key(txn: Transaction):
        value = getattr(txn, field)
        # Missing profits sort before any number
        if value is None:
            return (0, 0)
        return (1, value)
    return key


def get_transactions_page(
    params: FilterConfig,
    sort: str = DEFAULT_TRANSACTION_SORT,
    order: str = 'desc',
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    store: Optional[DatasetStore] = None,
) -> Dict[str, Any]:
    """
    Filtered transactions, sorted and paginated for the table view.

    Raises:
        ValidationError: unknown sort field, bad order, page/limit out of range
    """
    if sort not in TRANSACTION_SORT_FIELDS:
        raise ValidationError(
            f"Invalid sort field: {sort}. Valid: {list(TRANSACTION_SORT_FIELDS)}",
            field='sort',
            received_value=sort,
        )
    order = (order or 'desc').lower()
    if order not in ('asc', 'desc'):
        raise ValidationError(
            f"Invalid order: {order}. Valid: ['asc', 'desc']",
            field='order',
            received_value=order,
        )
    if page < 1:
        raise ValidationError("page must be >= 1", field='page', received_value=page)
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(
            f"limit must be between 1 and {MAX_PAGE_SIZE}",
            field='limit',
            received_value=limit,
        )

    version, filtered = filtered_snapshot(params, store)
    ordered = sorted(filtered, key=_sort_key(sort), reverse=(order == 'desc'))

    total = len(ordered)
    total_pages = (total + limit - 1) // limit
    offset = (page - 1) * limit

    return {
        'transactions': [txn.to_dict() for txn in ordered[offset:offset + limit]],
        'pagination': {
            'page': page,
            'limit': limit,
            'total_records': total,
            'total_pages': total_pages,
            'has_next': page < total_pages,
            'has_prev': page > 1,
        },
        'meta': {
            'version': version,
            'sort': sort,
            'order': order,
            'filters_applied': params.to_api(),
        },
    }


# ============================================================================
# REFRESH
# ============================================================================

def refresh_dataset(store: Optional[DatasetStore] = None) -> Dict[str, Any]:
    """
    Reload the dataset from the source and drop cached responses.

    Raises:
        DataSourceError: the previous dataset stays in place
    """
    store = store or get_dataset_store()
    result = store.reload()
    clear_dashboard_cache()
    return {
        'version': store.version,
        'load': result.to_dict(),
    }
