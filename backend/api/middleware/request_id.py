"""
Request ID middleware - Inject X-Request-ID for request correlation.

Provides:
- Request ID injection on every request
- Response headers (X-Request-ID, X-Response-Time-Ms)
- One access log line per /api request
"""

import logging
import time
import uuid
from flask import Flask, request, g


logger = logging.getLogger("api.request")


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects X-Request-ID into:
    - Flask's g object (g.request_id)
    - Response headers (X-Request-ID)

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_id():
        """Inject request ID before each request."""
        # Use existing header if provided, otherwise generate new
        request_id = request.headers.get('X-Request-ID')
        if not request_id:
            request_id = str(uuid.uuid4())
        g.request_id = request_id
        g.request_start = time.perf_counter()

    @app.after_request
    def add_request_id_header(response):
        """Add request ID and elapsed time to response headers."""
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id

        if hasattr(g, 'request_start'):
            duration_ms = round((time.perf_counter() - g.request_start) * 1000, 2)
            response.headers['X-Response-Time-Ms'] = str(duration_ms)
            if request.path.startswith('/api'):
                logger.info(
                    "api_request path=%s method=%s status=%s duration_ms=%s request_id=%s",
                    request.path,
                    request.method,
                    response.status_code,
                    duration_ms,
                    getattr(g, 'request_id', None),
                )
        return response
