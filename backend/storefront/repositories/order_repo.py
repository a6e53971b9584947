from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from storefront.models.customer import Customer, CustomerAddress
from storefront.models.inventory import InventoryItem
from storefront.models.invoice import Invoice
from storefront.models.order import Order, OrderEvent, OrderItem, Payment
from storefront.models.product import Product


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _amount(value) -> Optional[float]:
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


def _address(addr: Optional[CustomerAddress]) -> Optional[Dict]:
    if addr is None:
        return None
    return {
        "id": addr.id,
        "label": addr.label,
        "line1": addr.line1,
        "line2": addr.line2,
        "city": addr.city,
        "state": addr.state,
        "postalCode": addr.postal_code,
        "country": addr.country,
    }


def invoice_view(inv: Invoice) -> Dict:
    return {
        "id": inv.id,
        "invoiceNumber": inv.invoice_number,
        "pdfPath": inv.pdf_path,
        "generatedAt": _iso(inv.generated_at),
        "totalAmount": _amount(inv.total_amount),
        "currency": inv.currency,
    }


def build_order_aggregates(orders, items, events, invoices, payments) -> List[Dict]:
    """
    Merge the bulk query results into one denormalized entry per order,
    keyed by order id. Input order of `orders` is preserved.
    """
    order_map: Dict[str, Dict] = {}

    for order, customer, ship, bill in orders:
        order_map[order.id] = {
            "id": order.id,
            "orderNumber": order.order_number,
            "status": order.status,
            "totalAmount": _amount(order.total_amount),
            "currency": order.currency,
            "transactionId": order.transaction_id,
            "channel": order.channel,
            "note": order.note,
            "placedAt": _iso(order.placed_at),
            "customer": {
                "id": customer.id,
                "firstName": customer.first_name,
                "lastName": customer.last_name,
                "email": customer.email,
                "phone": customer.phone,
            },
            "shippingAddress": _address(ship),
            "billingAddress": _address(bill),
            "items": [],
            "events": [],
            "payment": None,
            "invoice": None,
        }

    for item, product_name, image_path, on_hand, reserved in items:
        entry = order_map.get(item.order_id)
        if entry is None:
            continue
        entry["items"].append(
            {
                "id": item.id,
                "productId": item.product_id,
                "sku": item.sku,
                "productName": product_name,
                "quantity": item.quantity,
                "unitPrice": _amount(item.unit_price),
                "discount": _amount(item.discount_amount),
                "tax": _amount(item.tax_amount),
                "imagePath": image_path,
                "inventory": {"onHand": on_hand, "reserved": reserved},
            }
        )

    for ev in events:
        entry = order_map.get(ev.order_id)
        if entry is None:
            continue
        entry["events"].append(
            {
                "id": ev.id,
                "type": ev.event_type,
                "actor": ev.actor,
                "note": ev.note,
                "metadata": ev.data,
                "createdAt": _iso(ev.created_at),
            }
        )

    for inv in invoices:
        entry = order_map.get(inv.order_id)
        if entry is not None:
            entry["invoice"] = invoice_view(inv)

    for pay in payments:
        entry = order_map.get(pay.order_id)
        if entry is not None:
            entry["payment"] = {
                "id": pay.id,
                "transactionId": pay.transaction_id,
                "status": pay.status,
                "amount": _amount(pay.amount),
                "currency": pay.currency,
                "method": pay.method,
                "processedAt": _iso(pay.processed_at),
            }

    return list(order_map.values())


class OrderRepository:
    """
    Read side of orders. One joined query for the order headers, then one
    bulk query per child table scoped to the resulting id set; no per-order
    round trips. Not wrapped in a transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def load_orders(self, criterion=None) -> List[Dict]:
        ship = aliased(CustomerAddress, name="ship")
        bill = aliased(CustomerAddress, name="bill")
        stmt = (
            select(Order, Customer, ship, bill)
            .join(Customer, Customer.id == Order.customer_id)
            .outerjoin(ship, ship.id == Order.shipping_address_id)
            .outerjoin(bill, bill.id == Order.billing_address_id)
            .order_by(Order.placed_at.desc())
        )
        if criterion is not None:
            stmt = stmt.where(criterion)
        order_rows = self.db.execute(stmt).all()
        if not order_rows:
            return []

        order_ids = [row[0].id for row in order_rows]

        item_rows = self.db.execute(
            select(
                OrderItem,
                Product.name,
                Product.image_primary_path,
                InventoryItem.on_hand,
                InventoryItem.reserved,
            )
            .join(Product, Product.id == OrderItem.product_id)
            .outerjoin(InventoryItem, InventoryItem.product_id == Product.id)
            .where(OrderItem.order_id.in_(order_ids))
            .order_by(OrderItem.order_id, OrderItem.line_number)
        ).all()

        events = (
            self.db.execute(
                select(OrderEvent)
                .where(OrderEvent.order_id.in_(order_ids))
                .order_by(OrderEvent.created_at.asc())
            )
            .scalars()
            .all()
        )

        invoices = (
            self.db.execute(select(Invoice).where(Invoice.order_id.in_(order_ids)))
            .scalars()
            .all()
        )

        payments = (
            self.db.execute(select(Payment).where(Payment.order_id.in_(order_ids)))
            .scalars()
            .all()
        )

        return build_order_aggregates(order_rows, item_rows, events, invoices, payments)

    def list_orders(self) -> List[Dict]:
        return self.load_orders()

    def find_by_id(self, order_id: str) -> Optional[Dict]:
        results = self.load_orders(Order.id == order_id)
        return results[0] if results else None

    def find_by_transaction(self, transaction_id: str) -> Optional[Dict]:
        results = self.load_orders(Order.transaction_id == transaction_id)
        return results[0] if results else None
