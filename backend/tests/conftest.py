import os
import tempfile

# settings are read at import time, so point them at a scratch area first
_scratch = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_scratch, 'test.db')}"
os.environ["UPLOADS_ROOT"] = os.path.join(_scratch, "uploads")
os.environ["ADMIN_EMAIL"] = "root@example.com"
os.environ["ADMIN_PASSWORD"] = "root-pass"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402

from storefront.config import settings  # noqa: E402
from storefront.db import SessionLocal, init_db  # noqa: E402
from storefront.schemas.product_schema import CategoryIn, ProductIn  # noqa: E402
from storefront.services.category_service import CategoryService  # noqa: E402
from storefront.services.product_service import ProductService  # noqa: E402

SUPERADMIN = {"x-admin-role": "superadmin"}


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def admin_headers():
    return dict(SUPERADMIN)


@pytest.fixture
def make_product():
    """Create a catalog product with the given opening stock; returns its view."""
    products = ProductService(SessionLocal, settings)
    categories = CategoryService(SessionLocal)

    def _make(sku="TEE-001", on_hand=10, price="499.00", category=None, **extra):
        if category and not categories.category_exists(category):
            categories.create_category(
                CategoryIn(
                    id=category,
                    label=category.title(),
                    nav_label=category.title(),
                    description=f"{category} collection",
                )
            )
        payload = ProductIn(
            name=extra.pop("name", f"Product {sku}"),
            sku=sku,
            price=price,
            category=category,
            inventory={"onHand": on_hand},
            **extra,
        )
        return products.create_product(payload)

    return _make


@pytest.fixture
def order_payload():
    """Build a checkout body; items are (product, quantity) pairs."""

    def _build(lines, email="asha@example.com", transaction_id=None, **extra):
        body = {
            "customer": {
                "firstName": "Asha",
                "lastName": "Rao",
                "email": email,
                "phone": "9800000000",
            },
            "shippingAddress": {
                "line1": "12 MG Road",
                "city": "Bengaluru",
                "state": "KA",
                "postalCode": "560001",
                "country": "IN",
            },
            "items": [
                {
                    "productId": product["id"],
                    "sku": product["sku"],
                    "quantity": qty,
                    "unitPrice": str(product["price"]),
                }
                for product, qty in lines
            ],
        }
        if transaction_id:
            body["transactionId"] = transaction_id
        body.update(extra)
        return body

    return _build
