import os

from fastapi import APIRouter
from sqlalchemy import text

from storefront.config import settings
from storefront.db import engine

router = APIRouter()


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        db_ok = False

    invoices_dir = settings.invoices_dir
    storage_ok = os.path.isdir(invoices_dir) and os.access(invoices_dir, os.W_OK)

    return {
        "status": "ok" if db_ok and storage_ok else "degraded",
        "db": db_ok,
        "invoice_storage": storage_ok,
    }
