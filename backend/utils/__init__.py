"""
Utility modules for the backend.
"""
from .normalize import (
    ValidationError,
    to_int,
    to_bool,
    to_date,
    to_str,
    to_list,
    to_enum,
    validation_error_response,
)

__all__ = [
    'ValidationError',
    'to_int',
    'to_bool',
    'to_date',
    'to_str',
    'to_list',
    'to_enum',
    'validation_error_response',
]
