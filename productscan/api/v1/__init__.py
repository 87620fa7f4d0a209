"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- payloads: Payload encoding and decoding
- products: Product catalog and per-product labels
- labels: Labels for caller-supplied records
- scan: Server-side camera scans

==============================================================================
"""

from . import health, labels, payloads, products, scan

__all__ = ["health", "labels", "payloads", "products", "scan"]
