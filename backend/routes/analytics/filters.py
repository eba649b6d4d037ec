"""
Filter Options Endpoint

Returns available filter values based on the loaded dataset.

Endpoints:
- /filter-options - Available filter values for all dimensions
"""

from flask import jsonify
from routes.analytics import analytics_bp


@analytics_bp.route("/filter-options", methods=["GET"])
def filter_options():
    """
    Get available filter options based on current data.

    Returns:
      {
        "property_types": [...],   sorted, unique
        "tenures": [...],
        "street_names": [...],
        "date_range": {"min": "YYYY-MM-DD", "max": "YYYY-MM-DD"},
        "total_transactions": int,
        "meta": {"version": int}
      }

    date_range is the full span of the dataset; the frontend uses it as the
    default (and reset) date filter.
    """
    from services.dashboard_service import get_filter_options

    return jsonify(get_filter_options())
