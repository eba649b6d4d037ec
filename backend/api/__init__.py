"""
API package - HTTP plumbing shared by all blueprints.

This package provides:
- Global middleware (request_id, error_envelope)
"""

from .middleware import setup_error_handlers, setup_request_id_middleware

__all__ = ['setup_error_handlers', 'setup_request_id_middleware']
