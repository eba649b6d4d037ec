"""
Input Normalization Utilities
=============================

Single source of truth for normalizing request inputs (query string and JSON
body values). Raw transaction rows are normalized separately, in
services/record_normalizer.py.

Usage:
    from utils.normalize import to_int, to_date, to_list, ValidationError

    @analytics_bp.route("/transactions")
    def transactions():
        try:
            start = to_date(request.args.get("startDate"), field="startDate")
            limit = to_int(request.args.get("limit"), default=10)
        except ValidationError as e:
            return validation_error_response(e)
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Type, TypeVar, Union

E = TypeVar('E', bound=Enum)


class ValidationError(ValueError):
    """Raised when input cannot be normalized to expected type."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def to_int(
    value: Optional[str],
    *,
    default: Optional[int] = None,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
    field: str = None
) -> Optional[int]:
    """
    Convert string to int, optionally bounded (page numbers, page sizes).

    Raises:
        ValidationError: not an integer, or outside [min_value, max_value]
    """
    if value is None or value == "":
        return default
    try:
        result = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected int, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )
    if min_value is not None and result < min_value:
        raise ValidationError(
            f"Expected int >= {min_value}, got {result}",
            field=field,
            received_value=value
        )
    if max_value is not None and result > max_value:
        raise ValidationError(
            f"Expected int <= {max_value}, got {result}",
            field=field,
            received_value=value
        )
    return result


def to_bool(
    value: Optional[str],
    *,
    default: bool = False,
    field: str = None
) -> bool:
    """
    Convert string to bool.

    Accepts (case-insensitive):
        True: 'true', '1', 'yes', 'on'
        False: 'false', '0', 'no', 'off'
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    lower = str(value).lower()
    if lower in ("true", "1", "yes", "on"):
        return True
    if lower in ("false", "0", "no", "off"):
        return False
    raise ValidationError(
        f"Expected bool, got: {value!r}",
        field=field,
        received_value=value
    )


def to_date(
    value: Optional[Union[str, date]],
    *,
    default: Optional[date] = None,
    field: str = None
) -> Optional[date]:
    """
    Convert a YYYY-MM-DD string to a calendar date.

    The string is split into year/month/day components and rebuilt with
    date(); no locale or timezone is involved, so "2025-02-19" is the same
    day for every caller.

    Accepts:
        - YYYY-MM-DD
        - Already a date object (passthrough)
        - Already a datetime object (extracts date)

    Raises:
        ValidationError: If value cannot be parsed as date
    """
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    error = ValidationError(
        f"Expected date (YYYY-MM-DD), got {type(value).__name__}: {value!r}",
        field=field,
        received_value=value
    )
    if not isinstance(value, str):
        raise error

    parts = value.strip().split("-")
    if len(parts) != 3 or len(parts[0]) != 4 or not all(p.isdigit() for p in parts):
        raise error
    try:
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        raise error


def to_str(
    value: Optional[str],
    *,
    default: Optional[str] = None,
    strip: bool = True,
    field: str = None
) -> Optional[str]:
    """
    Normalize string input, optionally stripping whitespace.

    Whitespace-only input is treated as empty.
    """
    if value is None or value == "":
        return default
    result = str(value)
    if strip:
        result = result.strip()
    if result == "":
        return default
    return result


def to_list(
    value,
    *,
    default: Optional[list] = None,
    separator: str = ",",
    field: str = None
) -> list:
    """
    Convert a comma-separated string, or a list of strings, to a list.

    Only a bare string is split. Items that arrive already as a list are kept
    whole (stripped), so a value containing the separator still matches.

    Examples:
        "Terrace,Detached House" -> ["Terrace", "Detached House"]
        ["Terrace", "Lorong 1, Geylang"] -> ["Terrace", "Lorong 1, Geylang"]
    """
    if value is None or value == "" or value == []:
        return list(default) if default is not None else []

    if isinstance(value, str):
        return [item.strip() for item in value.split(separator) if item.strip()]

    raw_items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]

    items = []
    for raw in raw_items:
        if raw is None:
            continue
        if not isinstance(raw, str):
            raise ValidationError(
                f"Expected list of str, got invalid item in: {value!r}",
                field=field,
                received_value=value
            )
        if raw.strip():
            items.append(raw.strip())
    return items


def to_enum(
    value: Optional[str],
    enum_class: Type[E],
    *,
    default: Optional[E] = None,
    field: str = None
) -> Optional[E]:
    """
    Convert string to enum member.

    Matches by value (exact, then case-insensitive), then by member name.

    Raises:
        ValidationError: If value doesn't match any enum member
    """
    if value is None or value == "":
        return default
    if isinstance(value, enum_class):
        return value

    for member in enum_class:
        if member.value == value:
            return member

    value_lower = str(value).lower()
    for member in enum_class:
        if str(member.value).lower() == value_lower:
            return member

    try:
        return enum_class[str(value).upper().replace(" ", "_").replace("-", "_")]
    except KeyError:
        pass

    valid_values = [m.value for m in enum_class]
    raise ValidationError(
        f"Expected one of {valid_values}, got: {value!r}",
        field=field,
        received_value=value
    )


def validation_error_response(error: ValidationError) -> tuple:
    """
    Convert ValidationError to a structured 400 response tuple.

    Returns:
        Tuple of (dict, 400) suitable for Flask response
    """
    response = {
        "error": str(error),
        "type": "validation_error"
    }
    if error.field:
        response["field"] = error.field
    if error.received_value is not None:
        response["received_value"] = str(error.received_value)
    return response, 400
