"""
==============================================================================
Catalog Package - Product Records
==============================================================================

Product record model and JSON-backed catalog.

Classes:
--------
- ProductRecord: Pydantic model for products
- ProductCatalog: Catalog manager with lookup and search

==============================================================================
"""

from .models import ProductRecord, ProductResponse
from .catalog import ProductCatalog, get_catalog, init_catalog

__all__ = [
    "ProductRecord",
    "ProductResponse",
    "ProductCatalog",
    "get_catalog",
    "init_catalog",
]
