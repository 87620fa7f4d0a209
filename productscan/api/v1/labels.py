"""
==============================================================================
Label Endpoints
==============================================================================

Build QR labels for records supplied by the caller.

==============================================================================
"""

from fastapi import APIRouter, Query
from fastapi.responses import Response

from productscan.catalog.models import ProductRecord, ProductResponse
from productscan.codec import PayloadVariant
from productscan.labels import LabelService
from productscan.schemas import LabelResponse


router = APIRouter(prefix="/labels", tags=["Labels"])


@router.post("", response_model=LabelResponse)
async def build_label(
    record: ProductRecord,
    variant: PayloadVariant = Query(PayloadVariant.LABEL)
):
    """
    Encode a record for printing.

    Records without an optical tag get a new one in the response.
    """
    label = LabelService().build_label(record, variant)

    return LabelResponse(
        payload=label.payload,
        variant=label.variant,
        optical_tag=label.record.optical_tag,
        tag_assigned=label.tag_assigned,
        record=ProductResponse.from_record(label.record),
    )


@router.post("/png")
async def render_label(
    record: ProductRecord,
    variant: PayloadVariant = Query(PayloadVariant.LABEL)
):
    """Render a record's QR label as PNG."""
    label, png = LabelService().render_png(record, variant)

    return Response(
        content=png,
        media_type="image/png",
        headers={"X-Payload": label.payload}
    )
