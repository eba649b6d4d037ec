"""
KPI Aggregator Tests

Covers compute_kpis() and its zero-safe helpers:
1. Median uses the mean of the two middle values for even counts
2. Average profit counts profitable sales only
3. An empty collection yields the all-zero snapshot of the requested shape
4. The two snapshot shapes never share the variant-specific metric

Run with: pytest tests/test_kpi_aggregator.py -v
"""
import math

import pytest

from constants import KpiVariant
from services.kpi.base import (
    BasicKpiSnapshot,
    ExtendedKpiSnapshot,
    compute_kpis,
    empty_snapshot,
    median,
    pct_change,
    positive_profits,
    safe_mean,
)


# =============================================================================
# HELPERS
# =============================================================================

class TestMedian:

    def test_odd_count(self):
        assert median([10, 20, 30]) == 20

    def test_even_count_averages_middle_pair(self):
        assert median([10, 20, 30, 40]) == 25

    def test_unsorted_input(self):
        assert median([40, 10, 30, 20]) == 25

    def test_single_value(self):
        assert median([1250]) == 1250.0

    def test_empty_is_zero(self):
        assert median([]) == 0.0


class TestSafeMean:

    def test_mean(self):
        assert safe_mean([1200, 1600]) == 1400

    def test_empty_is_zero(self):
        assert safe_mean([]) == 0.0


class TestPositiveProfits:

    def test_excludes_losses_zero_and_missing(self, make_txn):
        transactions = [
            make_txn("2025-01-01", profit=100),
            make_txn("2025-01-02", profit=-50),
            make_txn("2025-01-03", profit=200),
            make_txn("2025-01-04", profit=0),
            make_txn("2025-01-05", profit=None),
        ]
        assert positive_profits(transactions) == [100, 200]


class TestPctChange:

    def test_increase(self):
        assert pct_change(150, 100) == 50.0

    def test_decrease(self):
        assert pct_change(75, 100) == -25.0

    def test_zero_previous_is_none(self):
        assert pct_change(100, 0) is None

    def test_missing_side_is_none(self):
        assert pct_change(None, 100) is None
        assert pct_change(100, None) is None


# =============================================================================
# SNAPSHOTS
# =============================================================================

class TestComputeKpis:

    def test_extended_snapshot(self, transactions):
        snapshot = compute_kpis(transactions, KpiVariant.EXTENDED)

        assert isinstance(snapshot, ExtendedKpiSnapshot)
        assert snapshot.total_transactions == 5
        assert snapshot.total_sales_volume == 16_900_000.0
        assert snapshot.average_price_psf == 1390.0
        assert snapshot.highest_transaction == 6_000_000.0
        assert snapshot.average_profit == 800_000.0

    def test_basic_snapshot(self, transactions):
        snapshot = compute_kpis(transactions, KpiVariant.BASIC)

        assert isinstance(snapshot, BasicKpiSnapshot)
        assert snapshot.median_price_psf == 1400.0
        assert snapshot.total_transactions == 5

    def test_shapes_do_not_mix(self, transactions):
        basic = compute_kpis(transactions, KpiVariant.BASIC).to_dict()
        extended = compute_kpis(transactions, KpiVariant.EXTENDED).to_dict()

        assert "average_profit" not in basic
        assert "median_price_psf" not in extended
        assert basic["variant"] == "basic"
        assert extended["variant"] == "extended"

    def test_default_is_extended(self, transactions):
        assert isinstance(compute_kpis(transactions), ExtendedKpiSnapshot)

    def test_average_profit_excludes_losses(self, make_txn):
        transactions = [
            make_txn("2025-01-01", profit=100),
            make_txn("2025-01-02", profit=-50),
            make_txn("2025-01-03", profit=200),
        ]
        assert compute_kpis(transactions).average_profit == 150

    def test_all_losses_profit_is_zero(self, make_txn):
        transactions = [make_txn("2025-01-01", profit=-10), make_txn("2025-01-02")]
        assert compute_kpis(transactions).average_profit == 0.0

    @pytest.mark.parametrize("variant", list(KpiVariant))
    def test_empty_collection_is_all_zero(self, variant):
        snapshot = compute_kpis([], variant)

        assert snapshot == empty_snapshot(variant)
        for name in snapshot.METRICS:
            value = snapshot.metric(name)
            assert value == 0
            assert not math.isnan(value)

    def test_zero_price_rows_still_counted(self, make_txn):
        transactions = [make_txn("2025-01-01", price=0.0, psf=0.0), make_txn("2025-01-02")]
        snapshot = compute_kpis(transactions)

        assert snapshot.total_transactions == 2
        assert snapshot.average_price_psf == 500.0

    def test_order_independent(self, transactions):
        assert compute_kpis(transactions) == compute_kpis(list(reversed(transactions)))

    def test_metric_names_are_fields(self):
        for cls in (BasicKpiSnapshot, ExtendedKpiSnapshot):
            snapshot = cls()
            for name in cls.METRICS:
                assert snapshot.metric(name) == 0
