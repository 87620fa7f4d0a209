"""
==============================================================================
Scan Schemas Module
==============================================================================

Schemas for camera scan requests and session outcomes.

==============================================================================
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from productscan.catalog.models import ProductResponse
from productscan.scanner import ScanOutcome, ScanState


class CameraScanRequest(BaseModel):
    """Schema for a server-side camera scan."""

    camera_index: Optional[int] = Field(default=None, ge=0)
    timeout_seconds: Optional[float] = Field(default=None, gt=0, le=600)


class ScanResultResponse(BaseModel):
    """Terminal outcome of a scan session."""

    success: bool
    state: ScanState
    record: Optional[ProductResponse] = None
    error: Optional[Dict[str, Any]] = None
    ticks: int = Field(default=0, ge=0)
    malformed_reads: int = Field(default=0, ge=0)

    @classmethod
    def from_outcome(cls, outcome: ScanOutcome) -> "ScanResultResponse":
        """Create response from a session outcome."""
        return cls(
            success=outcome.succeeded,
            state=outcome.state,
            record=ProductResponse.from_record(outcome.record) if outcome.record else None,
            error=outcome.error.to_dict()["error"] if outcome.error else None,
            ticks=outcome.ticks,
            malformed_reads=outcome.malformed_reads,
        )
