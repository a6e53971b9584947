import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, sessionmaker

from storefront.config import Settings
from storefront.db import dialect_insert
from storefront.models.customer import Customer, CustomerAddress
from storefront.models.invoice import Invoice
from storefront.models.order import ORDER_STATUSES, Order, OrderEvent, OrderItem, Payment
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order_schema import AddressIn, CustomerIn, OrderCreateIn
from storefront.services.inventory_service import InventoryService
from storefront.utils.filesystem import remove_quietly
from storefront.utils.ids import gen_order_number
from storefront.utils.transactions import scoped_transaction

log = logging.getLogger("storefront.orders")


class OrderServiceException(Exception):
    pass


class EmptyOrderError(OrderServiceException):
    pass


class UnsupportedOrderStatus(OrderServiceException):
    pass


class OrderNotFound(OrderServiceException):
    pass


def record_order_event(
    db: Session,
    order_id: str,
    event_type: str,
    actor: Optional[str] = "system",
    note: Optional[str] = None,
    metadata: Optional[Dict] = None,
) -> OrderEvent:
    ev = OrderEvent(
        order_id=order_id,
        event_type=event_type,
        actor=actor,
        note=note,
        data=metadata,
    )
    db.add(ev)
    db.flush()
    return ev


class OrderService:
    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    # --- read side ---

    def list_orders(self) -> List[Dict]:
        with self.session_factory() as db:
            return OrderRepository(db).list_orders()

    def find_order_by_id(self, order_id: str) -> Optional[Dict]:
        with self.session_factory() as db:
            return OrderRepository(db).find_by_id(order_id)

    def find_order_by_transaction(self, transaction_id: str) -> Optional[Dict]:
        with self.session_factory() as db:
            return OrderRepository(db).find_by_transaction(transaction_id)

    # --- write helpers (run inside the caller's transaction) ---

    def _upsert_customer(self, db: Session, customer: CustomerIn) -> str:
        """
        Email is the durable identity: an existing row keeps its id, gets the
        new name, and keeps its phone unless a new one is supplied.
        """
        now = self._now()
        stmt = dialect_insert(db, Customer).values(
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            phone=customer.phone,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["email"],
            set_={
                "first_name": stmt.excluded.first_name,
                "last_name": stmt.excluded.last_name,
                "phone": func.coalesce(stmt.excluded.phone, Customer.phone),
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(Customer.id)
        return db.execute(stmt).scalar_one()

    def _insert_address(
        self, db: Session, customer_id: str, role: str, address: AddressIn
    ) -> str:
        addr = CustomerAddress(
            customer_id=customer_id,
            label=address.label or f"{role.upper()} ADDRESS",
            line1=address.line1,
            line2=address.line2,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            country=address.country,
            address_type=role,
        )
        db.add(addr)
        db.flush()
        return addr.id

    def _insert_payment(
        self, db: Session, order_id: str, transaction_id: str, amount, currency: str
    ):
        # a retried checkout with a known transaction id must not add a second row
        stmt = (
            dialect_insert(db, Payment)
            .values(
                order_id=order_id,
                transaction_id=transaction_id,
                status="captured",
                amount=amount,
                currency=currency,
                method="card",
                processed_at=self._now(),
            )
            .on_conflict_do_nothing(index_elements=["transaction_id"])
        )
        db.execute(stmt)

    # --- public write operations ---

    def create_order(self, payload: OrderCreateIn) -> Dict:
        """
        Create customer, addresses, order header, line items (each allocating
        inventory), payment and the ORDER_CREATED event in one transaction.
        Any failure rolls everything back and propagates unchanged.
        Returns the aggregated order view, read after commit.
        """
        if not payload.items:
            raise EmptyOrderError("Order requires at least one line item.")
        status = (payload.status or "processing").strip().lower()
        if status not in ORDER_STATUSES:
            raise UnsupportedOrderStatus("Unsupported order status")

        currency = payload.currency or self.settings.DEFAULT_CURRENCY
        order_number = payload.order_number or gen_order_number()
        channel = payload.channel or "web"

        with scoped_transaction(self.session_factory) as db:
            customer_id = self._upsert_customer(db, payload.customer)

            shipping_address_id = self._insert_address(
                db, customer_id, "shipping", payload.shipping_address
            )
            if payload.billing_address is not None:
                billing_address_id = self._insert_address(
                    db, customer_id, "billing", payload.billing_address
                )
            else:
                billing_address_id = shipping_address_id

            order = Order(
                order_number=order_number,
                customer_id=customer_id,
                status=status,
                total_amount=payload.total_amount,
                currency=currency,
                transaction_id=payload.transaction_id,
                channel=channel,
                note=payload.note,
                placed_at=self._now(),
                shipping_address_id=shipping_address_id,
                billing_address_id=billing_address_id,
            )
            db.add(order)
            db.flush()
            order_id = order.id

            inventory = InventoryService(db)
            for line_number, item in enumerate(payload.items, start=1):
                line = OrderItem(
                    order_id=order_id,
                    line_number=line_number,
                    product_id=item.product_id,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount_amount=item.discount or 0,
                    tax_amount=item.tax or 0,
                )
                db.add(line)
                db.flush()
                inventory.allocate(
                    order_id, line.id, item.product_id, item.sku, item.quantity
                )

            self._insert_payment(
                db, order_id, payload.transaction_id, payload.total_amount, currency
            )

            record_order_event(
                db,
                order_id,
                "ORDER_CREATED",
                note=payload.note,
                metadata={
                    "transactionId": payload.transaction_id,
                    "channel": channel,
                },
            )

        log.info(
            f"order {order_number} created: id={order_id} txn={payload.transaction_id} "
            f"items={len(payload.items)}"
        )
        return self.find_order_by_id(order_id)

    def update_order_status(
        self, order_id: str, next_status: str, actor: Optional[str] = None
    ) -> Dict:
        """
        Set the order status. Any of the five statuses may follow any other;
        requesting the current status is a no-op that records no event.
        """
        normalized = (next_status or "").strip().lower()
        if normalized not in ORDER_STATUSES:
            raise UnsupportedOrderStatus("Unsupported order status")
        actor = actor or "admin.dashboard"

        with scoped_transaction(self.session_factory) as db:
            current = db.execute(
                select(Order.status, Order.order_number).where(Order.id == order_id)
            ).first()
            if current is None:
                raise OrderNotFound("Order not found")

            if current.status == normalized:
                db.rollback()
                return {"orderNumber": current.order_number, "status": current.status}

            db.execute(
                update(Order)
                .where(Order.id == order_id)
                .values(status=normalized, updated_at=self._now())
                .execution_options(synchronize_session=False)
            )
            record_order_event(
                db,
                order_id,
                "STATUS_UPDATED",
                actor=actor,
                metadata={
                    "previousStatus": current.status,
                    "nextStatus": normalized,
                },
            )

        log.info(
            f"order {current.order_number} status {current.status} -> {normalized} by {actor}"
        )
        return {"orderNumber": current.order_number, "status": normalized}

    def delete_order(self, order_id: str) -> None:
        """
        Hard delete; items, events, payment and invoice go with the order via
        foreign-key cascades. Inventory is not released. The invoice PDF is
        removed after commit on a best-effort basis.
        """
        with scoped_transaction(self.session_factory) as db:
            pdf_path = db.execute(
                select(Invoice.pdf_path).where(Invoice.order_id == order_id)
            ).scalar_one_or_none()
            result = db.execute(
                delete(Order)
                .where(Order.id == order_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise OrderNotFound("Order not found")

        log.info(f"order {order_id} deleted")
        if pdf_path:
            remove_quietly(self.settings.resolve_upload_path(pdf_path))
