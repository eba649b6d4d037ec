"""
Chart Data Endpoints

Endpoints:
- /charts - Category distribution + contiguous time series
"""

from flask import jsonify
from routes.analytics import analytics_bp
from routes.analytics._param_utils import parse_params
from schemas.filters import DashboardParams


@analytics_bp.route("/charts", methods=["GET"])
def charts():
    """
    Distribution and time series for the filtered set.

    Query params: the dashboard filters plus
      - granularity: month, quarter, year (default: month)
      - categoryField: property_type, tenure, street_name (default: property_type)

    Returns:
    {
        "granularity": "quarter",
        "category_field": "property_type",
        "categories": ["Detached House", "Terrace"],
        "distribution": [{"name": "Terrace", "value": 12}, ...],
        "time_series": [
            {"period": "2024-Q4", "transactions": 3, "avg_price_psf": 1510.0,
             "avg_profit": 820000.0, "categories": {"Detached House": 1, "Terrace": 2}},
            ...
        ],
        "meta": {...}
    }

    Every period between the first and last sale is present; empty periods
    carry zeros.
    """
    from services.dashboard_service import get_chart_data

    return jsonify(get_chart_data(parse_params(DashboardParams)))
