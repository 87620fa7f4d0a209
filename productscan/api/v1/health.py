"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter, Depends

from productscan.catalog.catalog import get_catalog
from productscan.services import ScanService, get_scan_service


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, scan_service: ScanService):
        self._scan_service = scan_service

    def check_catalog(self) -> dict:
        """Check catalog status."""
        catalog = get_catalog()
        if catalog:
            return {"status": "healthy", "products": len(catalog.products)}
        return {"status": "not_loaded", "products": 0}

    def get_health(self) -> dict:
        """Get full health status."""
        catalog_info = self.check_catalog()

        overall = "healthy" if catalog_info["status"] == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "catalog": catalog_info["status"],
                "scanner": "healthy"
            },
            "details": {
                "products_loaded": catalog_info["products"],
                "active_cameras": self._scan_service.active_devices()
            }
        }


@router.get("")
async def health_check(scan_service: ScanService = Depends(get_scan_service)):
    """
    Health check endpoint.

    Returns system status including API, catalog and active scans.
    """
    controller = HealthController(scan_service)
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
