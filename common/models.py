"""
Value types passed between the CRM side and the carrier side.

Records themselves stay in the CRM; these only live for one request.
"""
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class Address:
    name: str = ""
    line1: str = ""
    city: str = ""
    postcode: str = ""
    country_code: str = "GB"

    def with_defaults(self, defaults):
        """Fills every blank field from `defaults` (another Address)."""
        return replace(
            self,
            name=self.name or defaults.name,
            line1=self.line1 or defaults.line1,
            city=self.city or defaults.city,
            postcode=self.postcode or defaults.postcode,
            country_code=self.country_code or defaults.country_code,
        )


@dataclass(frozen=True)
class PackageSpec:
    # Letters need no dimensions; zeros are what the carrier expects.
    format: str = "Letter"
    weight_grams: int = 100
    length_mm: int = 0
    width_mm: int = 0
    height_mm: int = 0


@dataclass(frozen=True)
class CarrierShipment:
    shipment_number: str
    tracking_number: str
    # Bearer token for the follow-up label call; never stored.
    token: Optional[str] = None
