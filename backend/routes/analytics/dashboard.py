"""
Dashboard Endpoints

Main unified dashboard endpoint that returns all derived views in one response.

Endpoints:
- /dashboard - Unified dashboard data (GET/POST)
- /dashboard/cache - Cache management
"""

from flask import request, jsonify
from routes.analytics import analytics_bp
from routes.analytics._param_utils import parse_panels, parse_params, request_params
from schemas.filters import DashboardParams
from utils.normalize import to_bool


@analytics_bp.route("/dashboard", methods=["GET", "POST"])
def dashboard():
    """
    Unified dashboard endpoint - returns KPIs, comparison and charts in one response.

    Supports both GET (query params) and POST (JSON body, flat or grouped
    as {"filters": {...}, "options": {...}}).

    Query params / JSON body:
      Filters:
        - startDate, endDate: YYYY-MM-DD (inclusive, UTC days)
        - propertyType: repeat or comma-separate (Terrace,Detached House)
        - tenure: repeat or comma-separate
        - streetName: repeat or comma-separate

      Options:
        - granularity: month, quarter, year (default: month)
        - kpiVariant: basic, extended (default: extended)
        - categoryField: property_type, tenure, street_name (default: property_type)
        - panels: kpis, comparison, charts, transactions (default: all but transactions)
        - skip_cache: if 'true', bypass cache

    Returns:
      {
        "data": {
          "kpis": {"snapshot": {...}, "cards": [...]},
          "comparison": {...},
          "charts": {...}
        },
        "meta": {
          "cache_hit": bool,
          "elapsed_ms": float,
          "version": int,
          "filters_applied": {...},
          "total_records_matched": int
        }
      }

    Example:
      GET /api/dashboard?propertyType=Terrace&granularity=quarter
      GET /api/dashboard?panels=kpis,charts&kpiVariant=basic
    """
    from services.dashboard_service import get_dashboard_data

    raw = request_params()
    params = parse_params(DashboardParams, raw)
    panels = parse_panels(raw.get('panels'))
    skip_cache = to_bool(raw.get('skip_cache'), default=False, field='skip_cache')

    result = get_dashboard_data(params, panels=panels, skip_cache=skip_cache)
    return jsonify(result)


@analytics_bp.route("/dashboard/cache", methods=["GET", "DELETE"])
def dashboard_cache():
    """
    Dashboard cache management endpoint.

    GET: Return cache statistics
    DELETE: Clear cache
    """
    from services.dashboard_service import get_cache_stats, clear_dashboard_cache

    if request.method == 'DELETE':
        clear_dashboard_cache()
        return jsonify({"status": "cache cleared"})

    return jsonify(get_cache_stats())
