"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for product scanning.

Handlers:
---------
- scanner: Live scan session over client-streamed frames

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
