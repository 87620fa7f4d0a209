"""
==============================================================================
Payload Endpoints
==============================================================================

Encode product records into label payloads and decode payloads that
were typed in or read by an external scanner.

==============================================================================
"""

from fastapi import APIRouter, Depends

from productscan.catalog.models import ProductResponse
from productscan.codec import PayloadCodec
from productscan.schemas import DecodeRequest, DecodeResponse, EncodeRequest, EncodeResponse
from productscan.services import ScanService, get_scan_service


router = APIRouter(prefix="/payloads", tags=["Payloads"])


@router.post("/encode", response_model=EncodeResponse)
async def encode_payload(request: EncodeRequest):
    """Encode a product record into a URL-safe payload."""
    payload = PayloadCodec().encode(request.record, request.variant)
    return EncodeResponse(payload=payload, length=len(payload), variant=request.variant)


@router.post("/decode", response_model=DecodeResponse)
async def decode_payload(
    request: DecodeRequest,
    scan_service: ScanService = Depends(get_scan_service)
):
    """
    Decode a payload into a product record.

    Malformed payloads return 422 with error code MALFORMED_PAYLOAD.
    """
    record = scan_service.decode_payload(request.payload)
    return DecodeResponse(record=ProductResponse.from_record(record))
