#!/usr/bin/env python3
"""
Seed categories and products from a JSON file (scripts/catalogue.json by default).
Entries whose category id or SKU already exists are skipped, so the script can
be re-run against a live database.

Usage:
    python scripts/seed_catalogue.py --file scripts/catalogue.json
"""
import argparse
import json
import logging
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.config import settings  # noqa: E402
from storefront.db import SessionLocal, init_db  # noqa: E402
from storefront.repositories.product_repo import ProductRepository  # noqa: E402
from storefront.schemas.product_schema import CategoryIn, ProductIn  # noqa: E402
from storefront.services.category_service import CategoryService  # noqa: E402
from storefront.services.product_service import ProductService  # noqa: E402

log = logging.getLogger("storefront.seed")

DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "catalogue.json")


def seed_from_file(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    init_db()
    categories = CategoryService(SessionLocal)
    products = ProductService(SessionLocal, settings)

    created_categories = 0
    for entry in data.get("categories", []):
        payload = CategoryIn.model_validate(entry)
        if categories.category_exists(payload.id):
            continue
        categories.create_category(payload)
        created_categories += 1

    created_products = 0
    for entry in data.get("products", []):
        payload = ProductIn.model_validate(entry)
        with SessionLocal() as db:
            if ProductRepository(db).get_by_sku(payload.sku):
                continue
        products.create_product(payload)
        created_products += 1

    log.info(f"seeded {created_categories} categories and {created_products} products")
    return created_categories, created_products


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--file", "-f", default=DEFAULT_SOURCE, help="Path to catalogue json"
    )
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    seed_from_file(args.file)
