"""
Shared Pydantic types and validators for dashboard params.

These reuse the normalization logic from utils/normalize.py:
- CategorySet: "Terrace,Detached House" -> frozenset({"Terrace", "Detached House"})
- IsoDay: "2024-01-01" -> date(2024, 1, 1) (component split, no locale parsing)
- enum coercion: "Quarter" / "quarter" / "QUARTER" -> TimeGrain.QUARTER
"""

from datetime import date
from typing import Annotated, Any, FrozenSet, Optional

from pydantic import BeforeValidator

from constants import CategoryField, KpiVariant, TimeGrain
from utils.normalize import to_date, to_enum, to_list


def to_category_set(v: Any) -> FrozenSet[str]:
    """
    Convert list / comma-separated input to a frozenset of category values.

    Values are opaque and case-sensitive; only surrounding whitespace is
    removed.

    Examples:
        "Terrace,Semi-Detached House" -> frozenset({"Terrace", "Semi-Detached House"})
        ["Freehold"] -> frozenset({"Freehold"})
        None -> frozenset()
    """
    return frozenset(to_list(v))


def to_iso_day(v: Any) -> Optional[date]:
    return to_date(v)


CategorySet = Annotated[FrozenSet[str], BeforeValidator(to_category_set)]

IsoDay = Annotated[Optional[date], BeforeValidator(to_iso_day)]

TimeGrainParam = Annotated[
    TimeGrain,
    BeforeValidator(lambda v: to_enum(v, TimeGrain, default=TimeGrain.MONTH)),
]

KpiVariantParam = Annotated[
    KpiVariant,
    BeforeValidator(lambda v: to_enum(v, KpiVariant, default=KpiVariant.EXTENDED)),
]

CategoryFieldParam = Annotated[
    CategoryField,
    BeforeValidator(lambda v: to_enum(v, CategoryField, default=CategoryField.PROPERTY_TYPE)),
]
