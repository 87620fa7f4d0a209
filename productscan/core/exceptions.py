"""
Application Exception Handling

AppException base class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Product not found", "PRODUCT_NOT_FOUND", 404)

    Error Codes:
        Payload:
            - MALFORMED_PAYLOAD (422)
            - PAYLOAD_TOO_LARGE (413)

        Scanning:
            - DEVICE_UNAVAILABLE (503)
            - SCAN_ABANDONED (409)
            - SCAN_LIMIT_EXCEEDED (408)

        Catalog:
            - PRODUCT_NOT_FOUND (404)
            - CATALOG_NOT_LOADED (500)

        General:
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "PRODUCT_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


class MalformedPayloadError(AppException):
    """
    Payload failed base64, UTF-8 or schema validation.

    The ``reason`` attribute is one of: empty, alphabet, base64, utf8,
    json, schema, missing_field.
    """

    def __init__(self, reason: str, message: str = "Malformed payload"):
        self.reason = reason
        super().__init__(message, "MALFORMED_PAYLOAD", 422, {"reason": reason})


class DeviceUnavailableError(AppException):
    """Camera could not be opened, or was lost mid-session."""

    def __init__(self, message: str = "Camera device unavailable", device: Any = None):
        details = {"device": device} if device is not None else {}
        super().__init__(message, "DEVICE_UNAVAILABLE", 503, details)


class ScanAbandonedError(AppException):
    """Caller abandoned the scan session."""

    def __init__(self, reason: str = "abandoned"):
        super().__init__(
            f"Scan abandoned: {reason}",
            "SCAN_ABANDONED",
            409,
            {"reason": reason}
        )


class ScanLimitExceededError(AppException):
    """Session hit its configured tick or malformed-read cap."""

    def __init__(self, limit: str, value: int):
        super().__init__(
            f"Scan limit exceeded: {limit}={value}",
            "SCAN_LIMIT_EXCEEDED",
            408,
            {"limit": limit, "value": value}
        )


class PayloadTooLargeError(AppException):
    """Payload does not fit in the target optical symbology."""

    def __init__(self, length: int, capacity: int, level: str):
        super().__init__(
            f"Payload of {length} bytes exceeds QR capacity {capacity} (level {level})",
            "PAYLOAD_TOO_LARGE",
            413,
            {"length": length, "capacity": capacity, "level": level}
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def product_not_found(product_id: Optional[str] = None) -> AppException:
    """Create product not found exception."""
    details = {"product_id": product_id} if product_id else {}
    return AppException("Product not found", "PRODUCT_NOT_FOUND", 404, details)


def catalog_not_loaded() -> AppException:
    """Create catalog not loaded exception."""
    return AppException(
        "Product catalog not loaded",
        "CATALOG_NOT_LOADED",
        500
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)
