from app.demo.catalog import DEMO_PRODUCTS, ensure_demo_catalog, seed_demo_catalog

__all__ = ["DEMO_PRODUCTS", "ensure_demo_catalog", "seed_demo_catalog"]
