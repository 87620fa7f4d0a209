"""
==============================================================================
Product Models Module
==============================================================================

Pydantic models for product records.

Wire keys follow the catalog that issues the records (``_id``,
``barcode``, ``price2``, ``KDV_ORANI``); Python code uses the attribute
names.

==============================================================================
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductRecord(BaseModel):
    """
    Sellable item identified by the catalog.

    Attributes:
        id: Stable catalog identifier, never regenerated here
        name: Display text (any script)
        code: Short catalog code
        optical_tag: Identifier printed on the label, if assigned
        price: Primary price
        alternate_price: Secondary price
        tax_rate: Tax percentage
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(..., alias="_id", min_length=1, description="Catalog identifier")
    name: str = Field(..., min_length=1, description="Product name")
    code: str = Field(..., min_length=1, description="Catalog code")
    optical_tag: Optional[str] = Field(default=None, alias="barcode", description="Printed tag")
    price: Optional[float] = Field(default=None, ge=0, description="Price")
    alternate_price: Optional[float] = Field(default=None, alias="price2", ge=0, description="Alternate price")
    tax_rate: Optional[float] = Field(default=None, alias="KDV_ORANI", ge=0, description="Tax rate percentage")

    @property
    def has_optical_tag(self) -> bool:
        """Check whether a physical tag has been assigned."""
        return bool(self.optical_tag)

    def to_wire(self) -> dict:
        """Dump using catalog wire keys."""
        return self.model_dump(by_alias=True)


class ProductResponse(BaseModel):
    """Product response schema for API endpoints."""

    id: str
    name: str
    code: str
    optical_tag: Optional[str] = None
    price: Optional[float] = None
    alternate_price: Optional[float] = None
    tax_rate: Optional[float] = None

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductResponse":
        """Create response from ProductRecord model."""
        return cls(**record.model_dump())
