"""
==============================================================================
Camera Scan Endpoints
==============================================================================

Run a scan session on a camera attached to the server.

The request returns once the session resolves: a product record, a
cancellation, or an error response for device failures and timeouts.

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends

from productscan.config import get_settings
from productscan.scanner import ScanState
from productscan.schemas import CameraScanRequest, ScanResultResponse
from productscan.services import ScanService, get_scan_service


router = APIRouter(prefix="/scan", tags=["Scan"])


@router.post("/camera", response_model=ScanResultResponse)
async def camera_scan(
    request: Optional[CameraScanRequest] = None,
    scan_service: ScanService = Depends(get_scan_service)
):
    """Scan with a local camera until one product is identified."""
    request = request or CameraScanRequest()
    timeout = request.timeout_seconds or get_settings().scan_request_timeout_seconds

    outcome = await scan_service.camera_scan(
        camera_index=request.camera_index,
        timeout=timeout
    )

    if outcome.state is ScanState.FAILED:
        raise outcome.error

    return ScanResultResponse.from_outcome(outcome)


@router.get("/devices")
async def active_devices(scan_service: ScanService = Depends(get_scan_service)):
    """List cameras currently held by a scan session."""
    return {
        "success": True,
        "active_cameras": scan_service.active_devices()
    }
