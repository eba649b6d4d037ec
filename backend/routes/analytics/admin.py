"""
Admin and Health Endpoints

Endpoints:
- /ping - Liveness probe (no dataset access)
- /health - Dataset status
- /refresh - Reload the dataset from the source
"""

import logging
from flask import jsonify
from routes.analytics import analytics_bp

logger = logging.getLogger('dashboard')


@analytics_bp.route("/ping", methods=["GET"])
def ping():
    """Liveness probe."""
    return jsonify({"ok": True})


@analytics_bp.route("/health", methods=["GET"])
def health():
    """
    Health check endpoint.

    Reports the dataset store without forcing a load, so a data source
    outage never makes the health check itself fail.
    """
    from services.dashboard_service import get_cache_stats, get_dataset_store

    status = get_dataset_store().status()
    return jsonify({
        "status": "healthy" if status['loaded'] else "starting",
        "data_loaded": status['loaded'] and status['row_count'] > 0,
        "row_count": status['row_count'],
        "dataset": status,
        "cache": get_cache_stats(),
    })


@analytics_bp.route("/refresh", methods=["POST"])
def refresh():
    """
    Reload the dataset from the configured source.

    A failed reload keeps the previous dataset and returns 502
    DATA_SOURCE_UNAVAILABLE.
    """
    from services.dashboard_service import refresh_dataset

    result = refresh_dataset()
    logger.info(f"Dataset refreshed to v{result['version']}")
    return jsonify({"status": "refreshed", **result})
