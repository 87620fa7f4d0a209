"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

This package provides:
- ScanService: Scan session creation, device exclusivity, direct decoding

Architecture Pattern: Service Layer
----------------------------------
    ┌─────────────────┐
    │ API / WebSocket │
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │   ScanService   │  ← Session coordination
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │   ScanSession   │  ← State machine over a FrameSource
    └─────────────────┘

==============================================================================
"""

from .scan_service import ScanService, get_scan_service

__all__ = [
    "ScanService",
    "get_scan_service",
]
