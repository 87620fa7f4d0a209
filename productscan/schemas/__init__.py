"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas using Pydantic for validation.

==============================================================================
"""

from .payload import (
    DecodeRequest,
    DecodeResponse,
    EncodeRequest,
    EncodeResponse,
    LabelResponse,
)
from .scan import CameraScanRequest, ScanResultResponse

__all__ = [
    # Payload
    "DecodeRequest",
    "DecodeResponse",
    "EncodeRequest",
    "EncodeResponse",
    "LabelResponse",
    # Scan
    "CameraScanRequest",
    "ScanResultResponse",
]
