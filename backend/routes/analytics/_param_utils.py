"""
Small parameter normalization helpers shared by analytics routes.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from flask import request

from schemas.base import BaseParamsModel
from schemas.filters import DashboardParams, params_from_query
from utils.normalize import ValidationError, to_list

M = TypeVar('M', bound=BaseParamsModel)

# Body keys that hold grouped params ({"filters": {...}, "options": {...}})
_BODY_GROUPS = ('filters', 'options')


def first_or_none(value: Any) -> Optional[Any]:
    """Return first item if value is a non-empty sequence, else return value/None."""
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value[0] if value else None
    return value


def request_body() -> Dict[str, Any]:
    """
    JSON body as a flat dict ({} for GET or an empty body).

    Raises:
        ValidationError: body is present but not a JSON object
    """
    if request.method != 'POST' or not request.data:
        return {}
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError(
            "Request body must be a JSON object",
            field='body',
            received_value=request.data[:100].decode('utf-8', 'replace'),
        )
    if any(group in body for group in _BODY_GROUPS):
        flat = {k: v for k, v in body.items() if k not in _BODY_GROUPS}
        for group in _BODY_GROUPS:
            values = body.get(group) or {}
            if not isinstance(values, dict):
                raise ValidationError(
                    f"'{group}' must be a JSON object",
                    field=group,
                    received_value=values,
                )
            flat.update(values)
        return flat
    return body


def request_params() -> Dict[str, Any]:
    """Query string merged with the JSON body (body wins)."""
    params = params_from_query(request.args)
    params.update(request_body())
    return params


def parse_params(model: Type[M] = DashboardParams, raw: Optional[Dict[str, Any]] = None) -> M:
    """
    Validate request params into a frozen params model.

    Raises:
        pydantic.ValidationError: handled by the error envelope (400)
    """
    return model.model_validate(request_params() if raw is None else raw)


def parse_panels(raw: Any) -> Optional[List[str]]:
    """'kpis,charts' or ['kpis', 'charts'] -> list; None when absent."""
    panels = to_list(raw, field='panels')
    return panels or None
