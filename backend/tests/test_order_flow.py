import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event

from storefront.config import settings
from storefront.db import SessionLocal, engine
from storefront.main import app
from storefront.models.customer import Customer, CustomerAddress
from storefront.models.inventory import InventoryEvent, InventoryItem
from storefront.models.order import Order, OrderEvent, OrderItem, Payment
from storefront.schemas.order_schema import OrderCreateIn
from storefront.services.inventory_service import InventoryRecordMissing
from storefront.services.order_service import (
    EmptyOrderError,
    OrderNotFound,
    OrderService,
    UnsupportedOrderStatus,
)

client = TestClient(app)


def _service():
    return OrderService(SessionLocal, settings)


def _stock(product_id):
    with SessionLocal() as db:
        inv = db.get(InventoryItem, product_id)
        return inv.on_hand, inv.reserved


def test_checkout_allocates_inventory(admin_headers, make_product, order_payload):
    tee = make_product(sku="TEE-1", on_hand=10, price="500.00")
    cap = make_product(sku="CAP-1", on_hand=3, price="250.00")

    res = client.post(
        "/api/orders",
        json=order_payload([(tee, 2), (cap, 1)], transaction_id="txn-100"),
        headers=admin_headers,
    )
    assert res.status_code == 201
    order = res.json()

    assert order["orderNumber"].startswith("ORD-")
    assert order["status"] == "processing"
    assert order["channel"] == "web"
    assert order["currency"] == "INR"
    assert order["totalAmount"] == 1250.0
    assert order["transactionId"] == "txn-100"
    assert [i["sku"] for i in order["items"]] == ["TEE-1", "CAP-1"]
    assert order["items"][0]["inventory"] == {"onHand": 8, "reserved": 2}
    assert order["items"][1]["productName"] == "Product CAP-1"
    assert order["billingAddress"]["id"] == order["shippingAddress"]["id"]
    assert order["payment"]["status"] == "captured"
    assert order["payment"]["amount"] == 1250.0
    assert order["invoice"] is None
    assert [e["type"] for e in order["events"]] == ["ORDER_CREATED"]
    assert order["events"][0]["metadata"] == {
        "transactionId": "txn-100",
        "channel": "web",
    }

    assert _stock(tee["id"]) == (8, 2)
    assert _stock(cap["id"]) == (2, 1)
    with SessionLocal() as db:
        allocations = (
            db.query(InventoryEvent)
            .filter(InventoryEvent.event_type == "ORDER_ALLOCATED")
            .all()
        )
        assert sorted(e.delta for e in allocations) == [-2, -1]
        assert {e.order_id for e in allocations} == {order["id"]}


def test_separate_billing_address(admin_headers, make_product, order_payload):
    tee = make_product()
    billing = {
        "line1": "1 Park Street",
        "city": "Kolkata",
        "postalCode": "700016",
        "country": "IN",
    }
    res = client.post(
        "/api/orders",
        json=order_payload([(tee, 1)], billingAddress=billing),
        headers=admin_headers,
    )
    order = res.json()
    assert order["billingAddress"]["city"] == "Kolkata"
    assert order["billingAddress"]["label"] == "BILLING ADDRESS"
    assert order["shippingAddress"]["label"] == "SHIPPING ADDRESS"


def test_oversell_drives_on_hand_negative(admin_headers, make_product, order_payload):
    tee = make_product(on_hand=1)
    res = client.post(
        "/api/orders", json=order_payload([(tee, 3)]), headers=admin_headers
    )
    assert res.status_code == 201
    assert _stock(tee["id"]) == (-2, 3)


@pytest.mark.parametrize("missing_at", [0, 1, 2])
def test_missing_inventory_rolls_back_everything(missing_at, make_product, order_payload):
    products = [make_product(sku=f"TEE-{n}", on_hand=5) for n in range(3)]
    ghost = products[missing_at]
    with SessionLocal() as db:
        db.query(InventoryItem).filter(InventoryItem.product_id == ghost["id"]).delete()
        db.commit()

    payload = OrderCreateIn.model_validate(
        order_payload([(p, 2) for p in products], transaction_id="txn-rollback")
    )
    with pytest.raises(InventoryRecordMissing):
        _service().create_order(payload)

    for product in products:
        if product is not ghost:
            assert _stock(product["id"]) == (5, 0)
    with SessionLocal() as db:
        assert db.query(Order).count() == 0
        assert db.query(OrderItem).count() == 0
        assert db.query(OrderEvent).count() == 0
        assert db.query(Customer).count() == 0
        assert db.query(CustomerAddress).count() == 0
        assert db.query(Payment).count() == 0
        assert (
            db.query(InventoryEvent)
            .filter(InventoryEvent.event_type == "ORDER_ALLOCATED")
            .count()
            == 0
        )


def test_missing_inventory_is_a_bad_request(admin_headers, make_product, order_payload):
    tee = make_product()
    with SessionLocal() as db:
        db.query(InventoryItem).delete()
        db.commit()
    res = client.post(
        "/api/orders", json=order_payload([(tee, 1)]), headers=admin_headers
    )
    assert res.status_code == 400
    assert res.json()["detail"] == f"Inventory record missing for product {tee['id']}"


def test_empty_order_rejected(admin_headers, order_payload):
    with pytest.raises(EmptyOrderError):
        _service().create_order(OrderCreateIn.model_validate(order_payload([])))

    res = client.post("/api/orders", json=order_payload([]), headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "Order requires at least one line item."


def test_invalid_postal_code_rejected(admin_headers, make_product, order_payload):
    tee = make_product()
    body = order_payload([(tee, 1)])
    body["shippingAddress"]["postalCode"] = "5600"
    res = client.post("/api/orders", json=body, headers=admin_headers)
    assert res.status_code == 422


def test_checkout_requires_superadmin(make_product, order_payload):
    tee = make_product()
    res = client.post("/api/orders", json=order_payload([(tee, 1)]))
    assert res.status_code == 403


def test_repeated_transaction_keeps_single_payment(
    admin_headers, make_product, order_payload
):
    tee = make_product(on_hand=10)
    body = order_payload([(tee, 1)], transaction_id="txn-dup")
    assert client.post("/api/orders", json=body, headers=admin_headers).status_code == 201

    res = client.post("/api/orders", json=body, headers=admin_headers)
    assert res.status_code == 409
    assert _stock(tee["id"]) == (9, 1)

    svc = _service()
    order = svc.find_order_by_transaction("txn-dup")
    with SessionLocal() as db:
        svc._insert_payment(db, order["id"], "txn-dup", 499, "INR")
        db.commit()
        assert db.query(Payment).filter(Payment.transaction_id == "txn-dup").count() == 1


def test_returning_customer_keeps_identity(admin_headers, make_product, order_payload):
    tee = make_product(on_hand=10)
    first = client.post(
        "/api/orders", json=order_payload([(tee, 1)]), headers=admin_headers
    ).json()

    body = order_payload([(tee, 1)])
    body["customer"]["firstName"] = "Ashwini"
    body["customer"].pop("phone")
    second = client.post("/api/orders", json=body, headers=admin_headers).json()

    assert second["customer"]["id"] == first["customer"]["id"]
    assert second["customer"]["firstName"] == "Ashwini"
    assert second["customer"]["phone"] == "9800000000"
    assert second["shippingAddress"]["id"] != first["shippingAddress"]["id"]


def test_explicit_total_and_status(admin_headers, make_product, order_payload):
    tee = make_product(price="100.00")
    body = order_payload(
        [(tee, 2)], totalAmount="180.00", status="paid", channel="pos", note="gift"
    )
    order = client.post("/api/orders", json=body, headers=admin_headers).json()
    assert order["totalAmount"] == 180.0
    assert order["status"] == "paid"
    assert order["channel"] == "pos"
    assert order["note"] == "gift"


def test_list_and_lookup(admin_headers, make_product, order_payload):
    tee = make_product(on_hand=10)
    ids = []
    for n in range(3):
        body = order_payload([(tee, 1)], transaction_id=f"txn-{n}")
        ids.append(client.post("/api/orders", json=body, headers=admin_headers).json()["id"])

    listed = client.get("/api/orders").json()
    assert [o["id"] for o in listed] == list(reversed(ids))

    assert client.get(f"/api/orders/{ids[0]}").json()["transactionId"] == "txn-0"
    assert client.get("/api/orders/transaction/txn-2").json()["id"] == ids[2]
    assert client.get("/api/orders/missing").status_code == 404
    assert client.get("/api/orders/transaction/missing").status_code == 404


def test_bulk_read_statement_count_is_constant(make_product, order_payload):
    tee = make_product(on_hand=50)
    svc = _service()
    statements = []

    def _count(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            statements.append(statement)

    def _reads_for_listing():
        statements.clear()
        event.listen(engine, "before_cursor_execute", _count)
        try:
            svc.list_orders()
        finally:
            event.remove(engine, "before_cursor_execute", _count)
        return len(statements)

    svc.create_order(OrderCreateIn.model_validate(order_payload([(tee, 1)])))
    single = _reads_for_listing()

    for n in range(4):
        svc.create_order(
            OrderCreateIn.model_validate(order_payload([(tee, 1), (tee, 2)]))
        )
    assert _reads_for_listing() == single == 5


def test_status_update(admin_headers, make_product, order_payload):
    tee = make_product()
    order = client.post(
        "/api/orders", json=order_payload([(tee, 1)]), headers=admin_headers
    ).json()

    res = client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": " Fulfilled ", "actor": "ops@example.com"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json() == {"orderNumber": order["orderNumber"], "status": "fulfilled"}

    events = client.get(f"/api/orders/{order['id']}").json()["events"]
    assert [e["type"] for e in events] == ["ORDER_CREATED", "STATUS_UPDATED"]
    assert events[-1]["actor"] == "ops@example.com"
    assert events[-1]["metadata"] == {
        "previousStatus": "processing",
        "nextStatus": "fulfilled",
    }

    # backwards transitions are allowed
    result = _service().update_order_status(order["id"], "paid")
    assert result["status"] == "paid"
    events = _service().find_order_by_id(order["id"])["events"]
    assert events[-1]["actor"] == "admin.dashboard"


def test_same_status_is_a_no_op(make_product, order_payload):
    tee = make_product()
    svc = _service()
    order = svc.create_order(OrderCreateIn.model_validate(order_payload([(tee, 1)])))

    result = svc.update_order_status(order["id"], "processing")
    assert result == {"orderNumber": order["orderNumber"], "status": "processing"}
    assert len(svc.find_order_by_id(order["id"])["events"]) == 1


def test_status_errors(admin_headers, make_product, order_payload):
    tee = make_product()
    svc = _service()
    order = svc.create_order(OrderCreateIn.model_validate(order_payload([(tee, 1)])))

    with pytest.raises(UnsupportedOrderStatus):
        svc.update_order_status(order["id"], "shipped")
    with pytest.raises(OrderNotFound):
        svc.update_order_status("missing", "paid")
    # the status is checked before the order is looked up
    with pytest.raises(UnsupportedOrderStatus):
        svc.update_order_status("missing", "shipped")

    res = client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "shipped"},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Unsupported order status"
    res = client.patch(
        "/api/orders/missing/status", json={"status": "paid"}, headers=admin_headers
    )
    assert res.status_code == 404


def test_delete_order_keeps_inventory(admin_headers, make_product, order_payload):
    tee = make_product(on_hand=10)
    order = client.post(
        "/api/orders", json=order_payload([(tee, 4)]), headers=admin_headers
    ).json()
    assert _stock(tee["id"]) == (6, 4)

    res = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
    assert res.status_code == 204
    assert client.get(f"/api/orders/{order['id']}").status_code == 404

    assert _stock(tee["id"]) == (6, 4)
    with SessionLocal() as db:
        assert db.query(OrderItem).count() == 0
        assert db.query(Payment).count() == 0
        assert db.query(InventoryEvent).filter(InventoryEvent.order_id.isnot(None)).count() == 0
        # the customer outlives the order
        assert db.query(Customer).count() == 1

    res = client.delete(f"/api/orders/{order['id']}", headers=admin_headers)
    assert res.status_code == 404


def test_unknown_initial_status_rejected(admin_headers, make_product, order_payload):
    tee = make_product()
    res = client.post(
        "/api/orders",
        json=order_payload([(tee, 1)], status="shipped"),
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert _stock(tee["id"]) == (10, 0)


def test_shoe_checkout_then_delete(make_product, order_payload):
    shoe = make_product(sku="SHOE-1", price="1000", on_hand=10)
    svc = _service()
    order = svc.create_order(
        OrderCreateIn.model_validate(
            order_payload([(shoe, 2)], transaction_id="TXN-1", totalAmount="2000")
        )
    )

    assert order["status"] == "processing"
    assert [(i["sku"], i["quantity"]) for i in order["items"]] == [("SHOE-1", 2)]
    assert order["payment"]["transactionId"] == "TXN-1"
    assert _stock(shoe["id"]) == (8, 2)
    assert [e["type"] for e in order["events"]] == ["ORDER_CREATED"]
    with SessionLocal() as db:
        assert db.query(Payment).filter(Payment.transaction_id == "TXN-1").count() == 1

    svc.delete_order(order["id"])
    assert svc.find_order_by_id(order["id"]) is None
    assert _stock(shoe["id"]) == (8, 2)
