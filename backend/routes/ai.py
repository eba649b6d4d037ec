"""
AI Routes - Performance Summary Endpoints

Provides the SSE streaming endpoint for the AI-generated performance summary
of the current filter selection.

Endpoint:
    POST /api/ai/summary
    - Body: the dashboard filters (flat or {"filters": {...}})
    - Returns SSE stream with meta, token, done / error events
"""

import logging
from flask import Blueprint, Response, jsonify

from config import Config
from routes.analytics._param_utils import parse_params
from schemas.filters import DashboardParams

logger = logging.getLogger(__name__)

ai_bp = Blueprint('ai', __name__)


@ai_bp.route('/summary', methods=['POST'])
def summary():
    """
    Summarize the KPIs and period comparison of a filter selection.

    Request body:
    {
        "startDate": "2024-01-01",
        "propertyType": ["Terrace"],
        "kpiVariant": "extended"
    }

    Returns SSE stream:
        data: {"type": "meta", "version": 3, "cache_key": "summary:..."}
        data: {"type": "token", "content": "Terrace sales..."}
        data: {"type": "done", "cached": false}

    Errors before streaming starts use the error envelope:
        400 invalid params, 502 data source unavailable, 503 AI_NOT_CONFIGURED
    """
    from services.ai_service import AINotConfiguredError, get_ai_service
    from services.dashboard_service import get_dashboard_data

    params = parse_params(DashboardParams)

    ai_service = get_ai_service()
    if not ai_service.is_configured:
        raise AINotConfiguredError("ANTHROPIC_API_KEY not configured")

    result = get_dashboard_data(params, panels=['kpis', 'comparison'])
    logger.info(
        f"AI summary requested: v{result['meta']['version']}, "
        f"{result['meta']['total_records_matched']} transactions matched"
    )
    context = {
        'filters': params.to_api(),
        'kpis': result['data']['kpis']['snapshot'],
        'comparison': result['data']['comparison'],
        'meta': {'version': result['meta']['version']},
    }

    def generate():
        for event in ai_service.stream_summary(context):
            yield event.to_sse()

    return Response(
        generate(),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'Connection': 'keep-alive',
            'X-Accel-Buffering': 'no',  # Disable nginx buffering
        }
    )


@ai_bp.route('/health', methods=['GET'])
def health():
    """Health check for AI service."""
    has_key = bool(Config.ANTHROPIC_API_KEY)
    return jsonify({
        "status": "ok" if has_key else "unconfigured",
        "api_key_configured": has_key,
        "model": Config.AI_MODEL if has_key else None,
    })
