"""
Error envelope middleware - Standardize all error responses.

Provides consistent error response format:
{
    "error": {
        "code": "DATA_SOURCE_UNAVAILABLE",
        "message": "Data source returned HTTP 503",
        "requestId": "uuid"
    }
}

Input validation errors keep the flat shape routes have always returned:
{"error": "...", "type": "validation_error", "field": "startDate"}
"""

import logging
from flask import Flask, jsonify, g
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from services.ai_service import AINotConfiguredError
from services.data_source import DataSourceError, DataSourceHTTPError
from utils.normalize import ValidationError, validation_error_response


logger = logging.getLogger('api.middleware.error')


# Error codes reference
ERROR_CODES = {
    # Client errors (4xx)
    "BAD_REQUEST": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "INVALID_PARAMS": 400,

    # Upstream / configuration errors
    "DATA_SOURCE_UNAVAILABLE": 502,
    "AI_NOT_CONFIGURED": 503,

    # Server errors (5xx)
    "INTERNAL_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    field: str = None,
    details: dict = None,
):
    """
    Create a standardized error response.

    Args:
        code: Error code (e.g., "DATA_SOURCE_UNAVAILABLE")
        message: Human-readable error message
        status_code: HTTP status code (defaults based on error code)
        field: Optional field name that caused the error
        details: Optional additional details dict

    Returns:
        Tuple of (response, status_code)
    """
    request_id = getattr(g, 'request_id', None)

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    error = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }
    if field:
        error["error"]["field"] = field
    if details:
        error["error"]["details"] = details

    response = jsonify(error)
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code


def pydantic_error_response(error: PydanticValidationError) -> tuple:
    """
    Convert a pydantic ValidationError to the same 400 shape as
    utils.normalize.validation_error_response.
    """
    first = error.errors()[0] if error.errors() else {}
    loc = first.get('loc') or ()
    field = str(loc[0]) if loc else None
    message = first.get('msg', str(error))
    response = {
        "error": f"{field}: {message}" if field else message,
        "type": "validation_error",
    }
    if field:
        response["field"] = field
    if 'input' in first and first['input'] is not None:
        response["received_value"] = str(first['input'])
    return response, 400


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - Input validation errors -> 400
    - DataSourceError -> 502 DATA_SOURCE_UNAVAILABLE
    - AINotConfiguredError -> 503 AI_NOT_CONFIGURED
    - HTTP exceptions (404, 405, etc.)
    - Unhandled Python exceptions -> 500

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        body, status = validation_error_response(error)
        return jsonify(body), status

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_error(error):
        body, status = pydantic_error_response(error)
        return jsonify(body), status

    @app.errorhandler(DataSourceError)
    def handle_data_source_error(error):
        logger.error(f"Data source unavailable: {error}")
        details = None
        if isinstance(error, DataSourceHTTPError) and error.status_code:
            details = {"upstreamStatus": error.status_code}
        return make_error_response(
            "DATA_SOURCE_UNAVAILABLE",
            str(error),
            details=details,
        )

    @app.errorhandler(AINotConfiguredError)
    def handle_ai_not_configured(error):
        logger.error("ANTHROPIC_API_KEY not configured")
        return make_error_response("AI_NOT_CONFIGURED", "AI service not configured")

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        """Handle Flask/Werkzeug HTTP exceptions."""
        # "Not Found" -> "NOT_FOUND"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        """Handle unhandled Python exceptions."""
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )
        return make_error_response(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            status_code=500,
        )
