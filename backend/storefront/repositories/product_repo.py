from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.models.category import Category
from storefront.models.inventory import InventoryItem
from storefront.models.product import Product


def product_record(
    p: Product, c: Optional[Category] = None, inv: Optional[InventoryItem] = None
) -> Dict:
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "price": float(p.price) if isinstance(p.price, Decimal) else p.price,
        "currency": p.currency,
        "status": p.status,
        "description": p.description,
        "productDetails": p.product_details or [],
        "productStory": p.product_story,
        "materialInfo": p.material_info,
        "careInstructions": p.care_instructions or [],
        "features": p.features or [],
        "imagePath": p.image_primary_path,
        "imageAlt": p.image_primary_alt,
        "colors": p.colorways or [],
        "sizes": p.size_scale or [],
        "category": p.category,
        "categoryLabel": c.label if c else None,
        "categoryNavLabel": c.nav_label if c else None,
        "categoryDescription": c.description if c else None,
        "categorySortOrder": c.sort_order if c else None,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
        "onHand": inv.on_hand if inv else None,
        "reserved": inv.reserved if inv else None,
        "safetyStock": inv.safety_stock if inv else None,
        "reorderPoint": inv.reorder_point if inv else None,
    }


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def _select(self):
        return (
            select(Product, Category, InventoryItem)
            .outerjoin(Category, Category.id == Product.category)
            .outerjoin(InventoryItem, InventoryItem.product_id == Product.id)
        )

    def _records(self, stmt) -> List[Dict]:
        return [product_record(p, c, inv) for p, c, inv in self.db.execute(stmt).all()]

    def list(self, category: Optional[str] = None) -> List[Dict]:
        stmt = self._select()
        if category:
            stmt = stmt.where(Product.category == category)
        return self._records(stmt.order_by(Product.created_at.desc()))

    def list_recent(self, limit: int = 12) -> List[Dict]:
        return self._records(
            self._select().order_by(Product.created_at.desc()).limit(limit)
        )

    def get(self, product_id: str) -> Optional[Dict]:
        records = self._records(self._select().where(Product.id == product_id))
        return records[0] if records else None

    def get_by_sku(self, sku: str) -> Optional[Dict]:
        records = self._records(self._select().where(Product.sku == sku))
        return records[0] if records else None
