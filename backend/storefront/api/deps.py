from typing import Optional

from fastapi import Header, HTTPException

from storefront.config import settings
from storefront.db import SessionLocal
from storefront.services.admin_service import AdminService
from storefront.services.category_service import CategoryService
from storefront.services.invoice_service import InvoiceService
from storefront.services.order_service import OrderService
from storefront.services.product_service import ProductService


def require_superadmin(x_admin_role: Optional[str] = Header(None)):
    if (x_admin_role or "").strip().lower() != "superadmin":
        raise HTTPException(
            status_code=403,
            detail="Superadmin privileges are required for this action",
        )


def get_order_service() -> OrderService:
    return OrderService(SessionLocal, settings)


def get_invoice_service() -> InvoiceService:
    return InvoiceService(SessionLocal, settings)


def get_product_service() -> ProductService:
    return ProductService(SessionLocal, settings)


def get_category_service() -> CategoryService:
    return CategoryService(SessionLocal)


def get_admin_service() -> AdminService:
    return AdminService(SessionLocal, settings)
