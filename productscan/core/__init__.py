"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

This package provides:
- Custom exception handling with consistent error responses
- Typed errors for payload decoding and camera scanning

Usage:
------
    from productscan.core import MalformedPayloadError

    # Or use exception factory functions via module
    from productscan.core import exceptions
    raise exceptions.product_not_found("m16x50")

==============================================================================
"""

from .exceptions import (
    AppException,
    DeviceUnavailableError,
    MalformedPayloadError,
    PayloadTooLargeError,
    ScanAbandonedError,
    ScanLimitExceededError,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "DeviceUnavailableError",
    "MalformedPayloadError",
    "PayloadTooLargeError",
    "ScanAbandonedError",
    "ScanLimitExceededError",
    "register_exception_handlers",
]
