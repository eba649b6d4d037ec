"""
KPI Registry Tests

Cards come out in KPI_ORDER, carry the formatted value, and take their trend
badge from the configured period comparison.
"""
import pytest

from constants import KpiVariant
from services.kpi import compare_periods, compute_kpis, run_all_kpis
from services.kpi.registry import (
    KPI_ORDER,
    KPI_REGISTRY,
    format_compact_currency,
    format_count,
    format_currency,
    format_psf,
    get_kpi_by_id,
    list_enabled_kpis,
    trend_direction,
)


@pytest.fixture
def extended_cards(transactions):
    snapshot = compute_kpis(transactions, KpiVariant.EXTENDED)
    report = compare_periods(transactions, KpiVariant.EXTENDED)
    return {card["kpi_id"]: card for card in run_all_kpis(snapshot, report)}


class TestFormatters:

    def test_count(self):
        assert format_count(12345) == "12,345"

    def test_currency(self):
        assert format_currency(800000.4) == "$800,000"

    @pytest.mark.parametrize("value,expected", [
        (16_900_000, "$16.90M"),
        (850_000, "$850K"),
        (999, "$999"),
        (0, "$0"),
    ])
    def test_compact_currency(self, value, expected):
        assert format_compact_currency(value) == expected

    def test_psf(self):
        assert format_psf(1390.0) == "$1,390 psf"

    @pytest.mark.parametrize("pct,direction", [
        (12.0, "up"),
        (-3.2, "down"),
        (0.4, "neutral"),
        (-0.5, "neutral"),
    ])
    def test_trend_direction(self, pct, direction):
        assert trend_direction(pct) == direction


class TestRunAllKpis:

    def test_extended_order_skips_median(self, transactions):
        cards = run_all_kpis(compute_kpis(transactions, KpiVariant.EXTENDED))
        assert [c["kpi_id"] for c in cards] == [
            "total_transactions",
            "total_sales_volume",
            "average_price_psf",
            "average_profit",
            "highest_transaction",
        ]

    def test_basic_order_skips_profit(self, transactions):
        cards = run_all_kpis(compute_kpis(transactions, KpiVariant.BASIC))
        ids = [c["kpi_id"] for c in cards]
        assert "median_price_psf" in ids
        assert "average_profit" not in ids
        assert ids == [k for k in KPI_ORDER if k != "average_profit"]

    def test_values_and_formatting(self, extended_cards):
        assert extended_cards["total_transactions"]["value"] == 5
        assert extended_cards["total_transactions"]["formatted_value"] == "5"
        assert extended_cards["total_sales_volume"]["formatted_value"] == "$16.90M"
        assert extended_cards["average_price_psf"]["formatted_value"] == "$1,390 psf"
        assert extended_cards["average_profit"]["formatted_value"] == "$800,000"
        assert extended_cards["highest_transaction"]["formatted_value"] == "$6.00M"

    def test_month_trend_badge(self, extended_cards):
        assert extended_cards["total_transactions"]["trend"] == {
            "value": 100.0, "direction": "up", "label": "MoM",
        }
        assert extended_cards["average_price_psf"]["trend"]["value"] == 1.8

    def test_profit_trend_is_year_to_date(self, extended_cards):
        card = extended_cards["average_profit"]
        assert card["trend"]["label"] == "YTD"
        assert card["trend"]["value"] == 150.0
        assert card["meta"]["comparison"] == "year_to_date"
        assert card["meta"]["current"] == 1_000_000.0
        assert card["meta"]["previous"] == 400_000.0

    def test_median_trend_missing_previous_quarter(self, transactions):
        snapshot = compute_kpis(transactions, KpiVariant.BASIC)
        report = compare_periods(transactions, KpiVariant.BASIC)
        card = get_kpi_by_id("median_price_psf", snapshot, report)

        assert card["trend"] is None
        assert card["meta"]["comparison"] == "quarter"
        assert card["meta"]["previous"] is None

    def test_no_report_no_trend(self, transactions):
        for card in run_all_kpis(compute_kpis(transactions)):
            assert card["trend"] is None
            assert card["meta"] == {"variant": "extended"}

    def test_empty_snapshot_insight(self):
        cards = run_all_kpis(compute_kpis([]), compare_periods([]))
        assert all(c["insight"] == "No transactions match the current filters" for c in cards)
        assert all(c["trend"] is None for c in cards)


class TestRegistryLookup:

    def test_unknown_kpi(self, transactions):
        result = get_kpi_by_id("market_momentum", compute_kpis(transactions))
        assert "error" in result

    def test_metric_missing_from_variant(self, transactions):
        result = get_kpi_by_id("median_price_psf", compute_kpis(transactions, KpiVariant.EXTENDED))
        assert "error" in result

    def test_list_enabled(self):
        listed = list_enabled_kpis()
        assert [k["kpi_id"] for k in listed] == KPI_ORDER
        assert all(k["title"] == KPI_REGISTRY[k["kpi_id"]].title for k in listed)
