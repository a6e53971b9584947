import logging
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from storefront.models.category import Category
from storefront.models.product import Product
from storefront.schemas.product_schema import CategoryIn
from storefront.utils.transactions import scoped_transaction

log = logging.getLogger("storefront.catalog")

DEFAULT_SORT_ORDER = 100


class CategoryServiceException(Exception):
    pass


class DuplicateCategory(CategoryServiceException):
    pass


def category_record(c: Category, total: int = 0) -> Dict:
    return {
        "id": c.id,
        "label": c.label,
        "navLabel": c.nav_label,
        "description": c.description,
        "sortOrder": c.sort_order,
        "total": total,
    }


class CategoryService:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def list_category_summaries(self) -> List[Dict]:
        stmt = (
            select(Category, func.count(Product.id))
            .outerjoin(Product, Product.category == Category.id)
            .group_by(Category.id)
            .order_by(Category.sort_order, Category.label)
        )
        with self.session_factory() as db:
            return [category_record(c, total) for c, total in db.execute(stmt).all()]

    def category_exists(self, category_id: str) -> bool:
        with self.session_factory() as db:
            return db.get(Category, category_id) is not None

    def create_category(self, payload: CategoryIn) -> Dict:
        sort_order = payload.sort_order if payload.sort_order is not None else DEFAULT_SORT_ORDER
        try:
            with scoped_transaction(self.session_factory) as db:
                if db.get(Category, payload.id) is not None:
                    raise DuplicateCategory(f"Category {payload.id} already exists")
                category = Category(
                    id=payload.id,
                    label=payload.label,
                    nav_label=payload.nav_label,
                    description=payload.description,
                    sort_order=sort_order,
                )
                db.add(category)
                db.flush()
                record = category_record(category)
        except IntegrityError:
            # lost a race with a concurrent insert of the same id
            raise DuplicateCategory(f"Category {payload.id} already exists")

        log.info(f"category {payload.id} created")
        return record
