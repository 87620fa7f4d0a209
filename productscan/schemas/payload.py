"""
==============================================================================
Payload Schemas Module
==============================================================================

Request and response schemas for payload encoding, decoding and labels.

==============================================================================
"""

from typing import Optional

from pydantic import BaseModel, Field

from productscan.catalog.models import ProductRecord, ProductResponse
from productscan.codec import PayloadVariant


class EncodeRequest(BaseModel):
    """Schema for encoding a record."""

    record: ProductRecord
    variant: PayloadVariant = Field(default=PayloadVariant.LABEL)


class EncodeResponse(BaseModel):
    """Encoded payload."""

    success: bool = Field(default=True)
    payload: str
    length: int = Field(ge=1)
    variant: PayloadVariant


class DecodeRequest(BaseModel):
    """Schema for decoding a payload."""

    payload: str = Field(..., description="Payload text read from a label")


class DecodeResponse(BaseModel):
    """Decoded record."""

    success: bool = Field(default=True)
    record: ProductResponse


class LabelResponse(BaseModel):
    """Label payload for a record."""

    success: bool = Field(default=True)
    payload: str
    variant: PayloadVariant
    optical_tag: Optional[str] = None
    tag_assigned: bool = False
    record: ProductResponse
