"""
Transaction Model - Normalized sale record

Raw Column Mapping (sheet layout, REALIS alias in brackets):
  Raw Column                  → Field               Notes
  ─────────────────────────────────────────────────────────────
  Sale Date                   → sale_date           Required, UTC datetime
  Sale Price (Transacted ...) → transacted_price    Coerced, 0 if missing
  Area (sqft) (Area (SQFT))   → area_sqft           Coerced, 0 if missing
  Sale PSF (Unit Price ...)   → unit_price_psf      Coerced, 0 if missing
  Sub Type (Property Type)    → property_type       Opaque category
  Tenure                      → tenure              Opaque category
  Address                     → full_address        Free text
  (computed) / Street Name    → street_name         Address minus house number
  Profit                      → profit              Optional, may be negative
  Purchase Price              → purchase_price
  Purchase PSF                → purchase_psf
  Project Name                → project_name        REALIS only
  Postal District             → postal_district     REALIS only

Transactions are produced once by services.record_normalizer and never
mutated afterwards.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Transaction:
    sale_date: datetime  # tz-aware, UTC
    transacted_price: float
    area_sqft: float
    unit_price_psf: float
    property_type: str
    tenure: str
    street_name: str
    original_sale_date: str = ''
    full_address: str = ''
    profit: Optional[float] = None
    purchase_price: float = 0.0
    purchase_psf: float = 0.0
    project_name: str = ''
    postal_district: str = ''

    @property
    def sale_day(self) -> str:
        """Sale date as YYYY-MM-DD (UTC calendar day)."""
        return self.sale_date.strftime('%Y-%m-%d')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'sale_date': self.sale_date.isoformat(),
            'sale_day': self.sale_day,
            'original_sale_date': self.original_sale_date,
            'transacted_price': self.transacted_price,
            'area_sqft': self.area_sqft,
            'unit_price_psf': self.unit_price_psf,
            'property_type': self.property_type,
            'tenure': self.tenure,
            'street_name': self.street_name,
            'full_address': self.full_address,
            'profit': self.profit,
            'purchase_price': self.purchase_price,
            'purchase_psf': self.purchase_psf,
            'project_name': self.project_name,
            'postal_district': self.postal_district,
        }
