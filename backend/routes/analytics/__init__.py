"""
Analytics API Routes - Split into domain-specific modules

This package organizes the analytics endpoints into logical domains:
- dashboard.py: Unified dashboard endpoint
- filters.py: Filter options endpoint
- kpi.py: KPI summary and period comparison endpoints
- charts.py: Distribution + time series endpoint
- transactions.py: Filtered, sorted, paginated transaction list
- admin.py: Ping, health, refresh, cache management

All modules share the same blueprint (analytics_bp) registered at /api.
"""

from flask import Blueprint

# Create the shared blueprint
analytics_bp = Blueprint('analytics', __name__)


# Import all route modules to register their routes with the blueprint
# Order doesn't matter since Flask routes are matched by specificity
from routes.analytics import dashboard  # noqa: E402,F401
from routes.analytics import filters  # noqa: E402,F401
from routes.analytics import kpi  # noqa: E402,F401
from routes.analytics import charts  # noqa: E402,F401
from routes.analytics import transactions  # noqa: E402,F401
from routes.analytics import admin  # noqa: E402,F401
