"""
Filter configuration and dashboard params.

FilterConfig is the read-only input of the filter engine. DashboardParams
adds the aggregation options (time grain, KPI variant, category dimension)
that select how the filtered set is summarized.

Both are owned by the caller (route, CLI, test) and passed by value into the
pipeline; nothing in services/ mutates them.
"""

from typing import Any, Dict, Mapping

from pydantic import AliasChoices, Field

from constants import (
    CategoryField,
    KpiVariant,
    TimeGrain,
    DEFAULT_CATEGORY_FIELD,
    DEFAULT_KPI_VARIANT,
    DEFAULT_TIME_GRAIN,
)
from utils.normalize import to_list
from .base import BaseParamsModel
from .types import (
    CategorySet,
    CategoryFieldParam,
    IsoDay,
    KpiVariantParam,
    TimeGrainParam,
)


class FilterConfig(BaseParamsModel):
    """
    Date range + categorical filters.

    Empty category sets mean "no restriction". Date bounds are inclusive
    calendar days, interpreted in UTC by utils.filter_builder.
    """

    start_date: IsoDay = Field(
        default=None,
        validation_alias=AliasChoices('start_date', 'startDate'),
    )
    end_date: IsoDay = Field(
        default=None,
        validation_alias=AliasChoices('end_date', 'endDate'),
    )
    property_types: CategorySet = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices('property_types', 'propertyTypes', 'propertyType'),
    )
    tenures: CategorySet = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices('tenures', 'tenure'),
    )
    street_names: CategorySet = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices('street_names', 'streetNames', 'streetName'),
    )

    def is_unrestricted(self) -> bool:
        return not (
            self.start_date or self.end_date
            or self.property_types or self.tenures or self.street_names
        )

    def to_api(self) -> Dict[str, Any]:
        """camelCase echo of the applied filters (sets sorted for stable output)."""
        return {
            'startDate': self.start_date.isoformat() if self.start_date else None,
            'endDate': self.end_date.isoformat() if self.end_date else None,
            'propertyTypes': sorted(self.property_types),
            'tenures': sorted(self.tenures),
            'streetNames': sorted(self.street_names),
        }


class DashboardParams(FilterConfig):
    """Filters plus aggregation options for one dashboard computation."""

    granularity: TimeGrainParam = Field(
        default=DEFAULT_TIME_GRAIN,
        validation_alias=AliasChoices('granularity', 'timeAggregation', 'time_grain'),
    )
    kpi_variant: KpiVariantParam = Field(
        default=DEFAULT_KPI_VARIANT,
        validation_alias=AliasChoices('kpi_variant', 'kpiVariant', 'variant'),
    )
    category_field: CategoryFieldParam = Field(
        default=DEFAULT_CATEGORY_FIELD,
        validation_alias=AliasChoices('category_field', 'categoryField'),
    )

    def to_api(self) -> Dict[str, Any]:
        payload = super().to_api()
        payload.update({
            'granularity': self.granularity.value,
            'kpiVariant': self.kpi_variant.value,
            'categoryField': self.category_field.value,
        })
        return payload


# Query-string keys that may repeat (?tenure=Freehold&tenure=999+yrs)
LIST_PARAM_KEYS = (
    'property_types', 'propertyTypes', 'propertyType',
    'tenures', 'tenure',
    'street_names', 'streetNames', 'streetName',
)


def params_from_query(args: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Flatten a werkzeug MultiDict (or plain dict) into model input.

    Repeated list keys are collected with getlist() and each occurrence is
    split on commas (?tenure=Freehold,999+yrs); everything else keeps its
    first value.
    """
    data: Dict[str, Any] = {}
    for key in args.keys():
        if key in LIST_PARAM_KEYS and hasattr(args, 'getlist'):
            data[key] = [item for raw in args.getlist(key) for item in to_list(raw)]
        else:
            data[key] = args.get(key)
    return data


__all__ = [
    'FilterConfig',
    'DashboardParams',
    'params_from_query',
    'TimeGrain',
    'KpiVariant',
    'CategoryField',
]
