"""
KPI Endpoints

Endpoints:
- /kpi-summary - KPI snapshot + display cards
- /comparison - Current vs previous period report
"""

from flask import jsonify
from routes.analytics import analytics_bp
from routes.analytics._param_utils import parse_params
from schemas.filters import DashboardParams


@analytics_bp.route("/kpi-summary", methods=["GET"])
def kpi_summary():
    """
    KPI snapshot of the filtered set plus cards in a fixed order.

    Query params: the dashboard filters plus kpiVariant (basic | extended).

    Returns standardized KPIResult format:
    {
        "snapshot": {"variant": "extended", "total_transactions": 42, ...},
        "cards": [
            {
                "kpi_id": "total_transactions",
                "title": "Total Transactions",
                "value": 42,
                "formatted_value": "42",
                "subtitle": "filtered period",
                "trend": {"value": 12.5, "direction": "up", "label": "MoM"},
                "insight": null,
                "meta": {...}
            },
            ...
        ],
        "meta": {"version": 3, "cache_hit": false, "elapsed_ms": 4.1, ...}
    }
    """
    from services.dashboard_service import get_kpi_summary

    return jsonify(get_kpi_summary(parse_params(DashboardParams)))


@analytics_bp.route("/comparison", methods=["GET"])
def comparison():
    """
    Period comparison anchored on the latest sale in the filtered set.

    Returns:
    {
        "anchor_date": "2025-03-14T00:00:00+00:00" | null,
        "variant": "extended",
        "comparisons": [
            {"key": "month", "label": "MoM", "current": {...} | null,
             "previous": {...} | null, "trends": {"total_transactions": 50.0, ...}},
            ...
        ],
        "meta": {...}
    }
    """
    from services.dashboard_service import get_comparison

    return jsonify(get_comparison(parse_params(DashboardParams)))
