import logging
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from storefront.config import Settings
from storefront.models.product import Product, ProductMedia
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product_schema import ProductIn
from storefront.services.inventory_service import InventoryService
from storefront.utils.transactions import scoped_transaction

log = logging.getLogger("storefront.catalog")


class ProductServiceException(Exception):
    pass


class ProductNotFound(ProductServiceException):
    pass


class ProductService:
    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def _apply(self, product: Product, payload: ProductIn):
        product.sku = payload.sku
        product.name = payload.name
        product.description = payload.description
        product.product_details = payload.product_details or []
        product.product_story = payload.product_story
        product.material_info = payload.material_info
        product.care_instructions = payload.care_instructions or []
        product.features = payload.features or []
        product.price = payload.price
        product.currency = payload.currency or self.settings.DEFAULT_CURRENCY
        product.status = payload.status
        product.colorways = list(payload.colors)
        product.size_scale = list(payload.sizes)
        product.category = payload.category
        # keep the current image unless a new one is supplied
        if payload.image_path:
            product.image_primary_path = payload.image_path
        if payload.image_alt:
            product.image_primary_alt = payload.image_alt

    def create_product(self, payload: ProductIn) -> Dict:
        """
        Insert product, optional primary media row, inventory counters and the
        opening inventory event in one transaction.
        """
        with scoped_transaction(self.session_factory) as db:
            product = Product()
            self._apply(product, payload)
            db.add(product)
            db.flush()
            product_id = product.id

            if payload.image_path:
                db.add(
                    ProductMedia(
                        product_id=product_id,
                        media_type="image",
                        file_path=payload.image_path,
                        alt_text=payload.image_alt,
                        is_primary=True,
                    )
                )
                db.flush()

            inv = payload.inventory
            inventory = InventoryService(db)
            stock = inventory.upsert_stock(
                product_id,
                inv.on_hand,
                inv.reserved,
                inv.safety_stock,
                inv.reorder_point,
            )
            inventory.record_event(
                product_id,
                "PRODUCT_REGISTERED" if inv.on_hand == 0 else "INITIAL_STOCK",
                inv.on_hand,
                "product.create",
                {
                    "sku": payload.sku,
                    "onHand": inv.on_hand,
                    "reserved": stock["reserved"],
                },
            )

        log.info(f"product {payload.sku} created: id={product_id}")
        return self.get_product_by_id(product_id)

    def update_product(self, product_id: str, payload: ProductIn) -> Dict:
        """Full replace of the mutable fields and the inventory counters."""
        with scoped_transaction(self.session_factory) as db:
            product = db.get(Product, product_id)
            if product is None:
                raise ProductNotFound("Product not found")
            self._apply(product, payload)
            db.flush()

            inv = payload.inventory
            inventory = InventoryService(db)
            previous = inventory.get_on_hand(product_id)
            stock = inventory.upsert_stock(
                product_id,
                inv.on_hand,
                inv.reserved,
                inv.safety_stock,
                inv.reorder_point,
            )
            inventory.record_event(
                product_id,
                "INVENTORY_ADJUSTED",
                inv.on_hand - (previous or 0),
                "product.update",
                {
                    "sku": payload.sku,
                    "previousOnHand": previous,
                    "onHand": inv.on_hand,
                    "reserved": stock["reserved"],
                },
            )

        log.info(f"product {payload.sku} updated: id={product_id}")
        return self.get_product_by_id(product_id)

    def list_products(self, category: Optional[str] = None) -> List[Dict]:
        with self.session_factory() as db:
            return ProductRepository(db).list(category=category)

    def list_recent_products(self, limit: int = 12) -> List[Dict]:
        with self.session_factory() as db:
            return ProductRepository(db).list_recent(limit=limit)

    def get_product_by_id(self, product_id: str) -> Optional[Dict]:
        with self.session_factory() as db:
            return ProductRepository(db).get(product_id)

    def delete_product_by_id(self, product_id: str) -> None:
        """Inventory, inventory events and media rows cascade with the product."""
        with scoped_transaction(self.session_factory) as db:
            result = db.execute(
                delete(Product)
                .where(Product.id == product_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ProductNotFound("Product not found")
        log.info(f"product {product_id} deleted")
