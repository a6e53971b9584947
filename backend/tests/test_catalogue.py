from fastapi.testclient import TestClient

from storefront.db import SessionLocal
from storefront.main import app
from storefront.models.inventory import InventoryEvent
from storefront.services.inventory_service import default_reorder_point

client = TestClient(app)


def _product_body(**overrides):
    body = {
        "name": "Linen Shirt",
        "sku": "LIN-001",
        "price": 1299,
        "colors": "Sand, Olive",
        "sizes": ["S,M", "L"],
        "inventory": {"onHand": 10},
    }
    body.update(overrides)
    return body


def _events(product_id):
    with SessionLocal() as db:
        return (
            db.query(InventoryEvent)
            .filter(InventoryEvent.product_id == product_id)
            .order_by(InventoryEvent.created_at)
            .all()
        )


def test_default_reorder_point_rounds_half_up():
    assert default_reorder_point(0) == 1
    assert default_reorder_point(2) == 1
    assert default_reorder_point(10) == 3
    assert default_reorder_point(14) == 4
    assert default_reorder_point(100) == 25


def test_create_and_get_product(admin_headers):
    res = client.post("/api/products", json=_product_body(), headers=admin_headers)
    assert res.status_code == 201
    product = res.json()
    assert product["sku"] == "LIN-001"
    assert product["currency"] == "INR"
    assert product["colors"] == ["Sand", "Olive"]
    assert product["sizes"] == ["S", "M", "L"]
    assert product["onHand"] == 10
    assert product["reserved"] == 0
    assert product["reorderPoint"] == 3

    res = client.get(f"/api/products/{product['id']}")
    assert res.status_code == 200
    assert res.json()["name"] == "Linen Shirt"

    events = _events(product["id"])
    assert [e.event_type for e in events] == ["INITIAL_STOCK"]
    assert events[0].delta == 10


def test_product_without_stock_is_registered(admin_headers):
    res = client.post(
        "/api/products",
        json=_product_body(inventory={"onHand": 0}),
        headers=admin_headers,
    )
    assert res.status_code == 201
    assert [e.event_type for e in _events(res.json()["id"])] == ["PRODUCT_REGISTERED"]


def test_product_writes_require_superadmin():
    res = client.post("/api/products", json=_product_body())
    assert res.status_code == 403
    res = client.post(
        "/api/products", json=_product_body(), headers={"x-admin-role": "viewer"}
    )
    assert res.status_code == 403


def test_unknown_category_rejected(admin_headers):
    res = client.post(
        "/api/products",
        json=_product_body(category="Summer Wear"),
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Unknown category: summer-wear"


def test_duplicate_sku_conflicts(admin_headers, make_product):
    make_product(sku="LIN-001")
    res = client.post("/api/products", json=_product_body(), headers=admin_headers)
    assert res.status_code == 409


def test_update_product_adjusts_inventory(admin_headers, make_product):
    product = make_product(sku="LIN-001", on_hand=10)
    res = client.put(
        f"/api/products/{product['id']}",
        json=_product_body(name="Linen Shirt II", inventory={"onHand": 4}),
        headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "Linen Shirt II"
    assert body["onHand"] == 4

    adjusted = _events(product["id"])[-1]
    assert adjusted.event_type == "INVENTORY_ADJUSTED"
    assert adjusted.delta == -6


def test_update_missing_product(admin_headers):
    res = client.put(
        "/api/products/does-not-exist", json=_product_body(), headers=admin_headers
    )
    assert res.status_code == 404


def test_delete_product(admin_headers, make_product):
    product = make_product()
    res = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert res.status_code == 204
    assert client.get(f"/api/products/{product['id']}").status_code == 404
    assert _events(product["id"]) == []

    res = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert res.status_code == 404


def test_list_and_filter_by_category(make_product):
    make_product(sku="TEE-1", category="tops")
    make_product(sku="TEE-2", category="tops")
    make_product(sku="PANT-1", category="bottoms")

    res = client.get("/api/products")
    assert res.status_code == 200
    assert {p["sku"] for p in res.json()} == {"TEE-1", "TEE-2", "PANT-1"}

    res = client.get("/api/products", params={"category": "tops"})
    tops = res.json()
    assert {p["sku"] for p in tops} == {"TEE-1", "TEE-2"}
    assert tops[0]["categoryLabel"] == "Tops"


def test_new_products_limit_is_clamped(make_product):
    for i in range(3):
        make_product(sku=f"NEW-{i}")
    assert len(client.get("/api/products/new", params={"limit": 0}).json()) == 1
    assert len(client.get("/api/products/new", params={"limit": 2}).json()) == 2
    assert len(client.get("/api/products/new", params={"limit": 500}).json()) == 3


def test_categories(admin_headers, make_product):
    body = {
        "id": "Summer Wear",
        "label": " Summer ",
        "navLabel": "Summer",
        "description": "Light fabrics",
    }
    res = client.post("/api/products/categories", json=body, headers=admin_headers)
    assert res.status_code == 201
    created = res.json()
    assert created["id"] == "summer-wear"
    assert created["label"] == "Summer"
    assert created["sortOrder"] == 100

    res = client.post("/api/products/categories", json=body, headers=admin_headers)
    assert res.status_code == 409

    make_product(sku="SUM-1", category="summer-wear")
    summaries = client.get("/api/products/categories").json()
    assert summaries == [
        {
            "id": "summer-wear",
            "label": "Summer",
            "navLabel": "Summer",
            "description": "Light fabrics",
            "sortOrder": 100,
            "total": 1,
        }
    ]


def test_category_id_must_be_slug(admin_headers):
    body = {"id": "!!!", "label": "X", "navLabel": "X", "description": "X"}
    res = client.post("/api/products/categories", json=body, headers=admin_headers)
    assert res.status_code == 422
