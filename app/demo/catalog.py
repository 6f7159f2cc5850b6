from __future__ import annotations

import logging
from typing import Any

from app.domain.inventory.store import ProductStore

logger = logging.getLogger(__name__)

# Prices in the smallest currency unit (paise).
DEMO_PRODUCTS: list[dict[str, Any]] = [
    {"name": "Wireless Headphones", "description": "Noise-cancelling over-ear", "price": 249900, "stock": 10, "category": "Electronics"},
    {"name": "T-Shirt", "description": "100% cotton", "price": 59900, "stock": 30, "category": "Clothing"},
    {"name": "Coffee Mug", "description": "Ceramic 350ml", "price": 19900, "stock": 50, "category": "Home"},
    {"name": "USB-C Cable", "description": "1m fast charging", "price": 39900, "stock": 100, "category": "Accessories"},
    {"name": "Notebook", "description": "200 pages ruled", "price": 12900, "stock": 200, "category": "Stationery"},
]


def seed_demo_catalog(products: ProductStore) -> list[dict]:
    """Replace the whole catalog with the demo products."""
    created = products.replace_all(DEMO_PRODUCTS)
    logger.info("demo catalog seeded: products=%d", len(created))
    return [product.to_dict() for product in created]


def ensure_demo_catalog(products: ProductStore) -> dict:
    existing = products.list()
    if existing:
        return {"seeded_now": False, "product_count": len(existing)}
    created = seed_demo_catalog(products)
    return {"seeded_now": True, "product_count": len(created)}
