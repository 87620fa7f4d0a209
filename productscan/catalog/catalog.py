"""
==============================================================================
Product Catalog Module
==============================================================================

Read-only product catalog backed by a JSON file.

The catalog is the external source of product records: it supplies
records to the label path and lets clients look up what a scan
resolved to. Nothing here writes back to the file.

JSON Structure:
--------------
[
  {"_id": "m16x50", "name": "M16X50 Akb Civata", "code": "M16X50AKB",
   "barcode": "BCX1Y2Z3W4V", "price": 15.5, "price2": 14.25, "KDV_ORANI": 20},
  ...
]

==============================================================================
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .models import ProductRecord


# Module logger
logger = logging.getLogger(__name__)


class ProductCatalog:
    """
    Product catalog manager with lookup indexes and search.

    Attributes:
        products: List of all products

    Example:
        >>> catalog = ProductCatalog(Path("data/products.json"))
        >>> record = catalog.find_by_id("m16x50")
        >>> matches = catalog.search("civata")
    """

    def __init__(self, products_file: Path) -> None:
        """
        Initialize catalog from JSON file.

        Args:
            products_file: Path to products.json
        """
        self._products_file = products_file
        self._products: List[ProductRecord] = []
        self._by_id: Dict[str, ProductRecord] = {}
        self._by_code: Dict[str, ProductRecord] = {}
        self._by_tag: Dict[str, ProductRecord] = {}

        self._load()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def products(self) -> List[ProductRecord]:
        """Get all products."""
        return self._products.copy()

    # =========================================================================
    # LOADING
    # =========================================================================

    def _load(self) -> None:
        """Load products from JSON file."""
        with self._products_file.open("r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, list):
            raise ValueError(f"Catalog must be a JSON array: {self._products_file}")

        self._products.clear()
        skipped = 0

        for item in data:
            try:
                self._products.append(ProductRecord.model_validate(item))
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Skipping invalid product entry: {e.error_count()} errors")

        self._build_indexes()

        if skipped:
            logger.warning(f"⚠️ Skipped {skipped} invalid catalog entries")
        logger.info(f"📦 Catalog loaded: {len(self._products)} products")

    def _build_indexes(self) -> None:
        """Build lookup indexes."""
        self._by_id.clear()
        self._by_code.clear()
        self._by_tag.clear()

        for product in self._products:
            self._by_id[product.id] = product
            self._by_code[product.code.lower()] = product
            if product.has_optical_tag:
                self._by_tag[product.optical_tag] = product

    def reload(self) -> None:
        """Reload catalog from file."""
        logger.info("Reloading product catalog...")
        self._load()

    # =========================================================================
    # SEARCH METHODS
    # =========================================================================

    def find_by_id(self, product_id: str) -> Optional[ProductRecord]:
        """Find product by catalog identifier."""
        return self._by_id.get(product_id)

    def find_by_code(self, code: str) -> Optional[ProductRecord]:
        """Find product by catalog code (case-insensitive)."""
        return self._by_code.get(code.lower())

    def find_by_tag(self, optical_tag: str) -> Optional[ProductRecord]:
        """Find product by printed optical tag."""
        return self._by_tag.get(optical_tag)

    def search(self, query: str, limit: int = 10) -> List[ProductRecord]:
        """
        Search products by name or code substring.

        Args:
            query: Search query
            limit: Maximum results

        Returns:
            List of matching products
        """
        query = query.lower().strip()
        if not query:
            return []

        results = []
        for product in self._products:
            if query in product.name.lower() or query in product.code.lower():
                results.append(product)
                if len(results) >= limit:
                    break

        return results

    def untagged(self) -> List[ProductRecord]:
        """Products that have no optical tag yet."""
        return [p for p in self._products if not p.has_optical_tag]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get_stats(self) -> Dict:
        """Get catalog statistics."""
        return {
            "total_products": len(self._products),
            "tagged": len(self._by_tag),
            "untagged": len(self._products) - len(self._by_tag),
        }


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

_catalog_instance: Optional[ProductCatalog] = None


def get_catalog() -> Optional[ProductCatalog]:
    """Get the global catalog instance."""
    return _catalog_instance


def init_catalog(products_file: Path) -> ProductCatalog:
    """
    Initialize the global catalog instance.

    Args:
        products_file: Path to products.json

    Returns:
        ProductCatalog instance
    """
    global _catalog_instance
    _catalog_instance = ProductCatalog(products_file)
    return _catalog_instance
