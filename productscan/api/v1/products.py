"""
==============================================================================
Product Catalog Endpoints
==============================================================================

Endpoints for browsing the catalog and producing labels for its
products.

==============================================================================
"""

from fastapi import APIRouter, Query
from fastapi.responses import Response

from productscan.catalog.catalog import get_catalog
from productscan.catalog.models import ProductRecord, ProductResponse
from productscan.codec import PayloadCodec, PayloadVariant
from productscan.core import exceptions
from productscan.labels import LabelService


router = APIRouter(prefix="/products", tags=["Products"])


class ProductController:
    """Controller for product catalog operations."""

    def __init__(self):
        self._catalog = get_catalog()
        if not self._catalog:
            raise exceptions.catalog_not_loaded()

    def list_products(self, query: str, limit: int, untagged: bool) -> dict:
        """List or search products."""
        if query:
            products = self._catalog.search(query, limit=limit)
        elif untagged:
            products = self._catalog.untagged()
        else:
            products = self._catalog.products

        return {
            "success": True,
            "query": query,
            "total": len(products),
            "products": [
                ProductResponse.from_record(p).model_dump()
                for p in products[:limit]
            ]
        }

    def get_record(self, product_id: str) -> ProductRecord:
        """Get product by id or raise."""
        record = self._catalog.find_by_id(product_id)

        if not record:
            raise exceptions.product_not_found(product_id)

        return record

    def get_product(self, product_id: str) -> dict:
        """Get product by id."""
        return {
            "success": True,
            "product": ProductResponse.from_record(self.get_record(product_id)).model_dump()
        }

    def get_payload(self, product_id: str, variant: PayloadVariant) -> dict:
        """Encode the stored record as-is."""
        record = self.get_record(product_id)
        payload = PayloadCodec().encode(record, variant)

        return {
            "success": True,
            "product_id": record.id,
            "variant": variant.value,
            "payload": payload
        }

    def get_stats(self) -> dict:
        """Get catalog statistics."""
        return {
            "success": True,
            "stats": self._catalog.get_stats()
        }


@router.get("")
async def list_products(
    q: str = Query("", max_length=100),
    untagged: bool = Query(False),
    limit: int = Query(100, ge=1, le=500)
):
    """List products, optionally filtered by a name/code query."""
    controller = ProductController()
    return controller.list_products(q, limit, untagged)


@router.get("/stats")
async def get_catalog_stats():
    """Get catalog statistics."""
    controller = ProductController()
    return controller.get_stats()


@router.get("/{product_id}")
async def get_product(product_id: str):
    """Get product by catalog id."""
    controller = ProductController()
    return controller.get_product(product_id)


@router.get("/{product_id}/payload")
async def get_product_payload(
    product_id: str,
    variant: PayloadVariant = Query(PayloadVariant.LABEL)
):
    """Get the payload embedded in a product's label."""
    controller = ProductController()
    return controller.get_payload(product_id, variant)


@router.get("/{product_id}/label.png")
async def get_product_label(
    product_id: str,
    variant: PayloadVariant = Query(PayloadVariant.LABEL)
):
    """Render a product's QR label as PNG."""
    controller = ProductController()
    label, png = LabelService().render_png(controller.get_record(product_id), variant)

    return Response(
        content=png,
        media_type="image/png",
        headers={"X-Payload": label.payload}
    )
