# Param schemas for the dashboard pipeline
from .filters import (
    FilterConfig,
    DashboardParams,
    params_from_query,
)

__all__ = [
    'FilterConfig',
    'DashboardParams',
    'params_from_query',
]
