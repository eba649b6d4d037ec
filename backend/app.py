"""
Flask Application Factory - District Transaction Dashboard API

All analytics run in memory over the normalized transaction collection held
by the dataset store (services.dashboard_service). The raw rows come from the
spreadsheet JSON endpoint or a CSV export; nothing is persisted.

Public API, no authentication.
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from config import Config
from constants import DISTRICT_CODE

logger = logging.getLogger('dashboard')


def create_app(store=None, ai_service=None):
    """
    Build the Flask app.

    Args:
        store: DatasetStore to serve from (tests inject one; default is the
               process-wide store, loaded lazily from Config)
        ai_service: AIService override (tests)
    """
    app = Flask(__name__)
    app.config.from_object(Config)

    # Initialize CORS - allow all origins
    # Note: Flask-CORS handles all CORS headers automatically, no after_request needed
    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS", "DELETE"],
         allow_headers=["Content-Type", "X-Request-ID"],
         expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
         supports_credentials=False,
         send_wildcard=True)  # Always send '*' instead of echoing Origin header

    # Request ID injection for request correlation and debugging
    from api.middleware import setup_request_id_middleware, setup_error_handlers
    setup_request_id_middleware(app)

    # Standard error envelope (validation 400, data source 502, AI 503, 404/405, 500)
    setup_error_handlers(app)

    if store is not None:
        from services.dashboard_service import set_dataset_store
        set_dataset_store(store)

    if ai_service is not None:
        from services.ai_service import set_ai_service
        set_ai_service(ai_service)

    # Register routes
    from routes.analytics import analytics_bp
    app.register_blueprint(analytics_bp, url_prefix='/api')

    from routes.ai import ai_bp
    app.register_blueprint(ai_bp, url_prefix='/api/ai')

    @app.route("/", methods=["GET"])
    def index():
        from services.dashboard_service import get_dataset_store

        status = get_dataset_store().status()
        return jsonify({
            "name": f"{DISTRICT_CODE} Landed Transactions API",
            "status": "running",
            "data_loaded": status['loaded'],
            "row_count": status['row_count'],
            "version": status['version'],
        })

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )

    app = create_app()

    # Warm the dataset so the first request does not pay for the fetch
    from services.dashboard_service import get_dataset_store
    from services.data_source import DataSourceError
    try:
        version, transactions = get_dataset_store().snapshot()
        logger.info(f"Dataset v{version} ready: {len(transactions):,} transactions")
    except DataSourceError as e:
        logger.warning(f"Dataset not loaded at startup, will retry on first request: {e}")

    app.run(debug=Config.DEBUG, host="0.0.0.0", port=5000)


if __name__ == "__main__":
    run_app()
