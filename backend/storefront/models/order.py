from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)

from storefront.db import Base
from storefront.utils.ids import new_id

ORDER_STATUSES = ("processing", "paid", "fulfilled", "cancelled", "refunded")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "status IN ('processing', 'paid', 'fulfilled', 'cancelled', 'refunded')",
            name="orders_status_check",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(
        String(36), ForeignKey("customers.id"), nullable=False, index=True
    )
    status = Column(String(16), nullable=False, default="processing")
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    transaction_id = Column(String(128), unique=True, nullable=False, index=True)
    channel = Column(String(32), nullable=True)
    note = Column(Text, nullable=True)
    placed_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    shipping_address_id = Column(
        String(36), ForeignKey("customer_addresses.id"), nullable=True
    )
    billing_address_id = Column(
        String(36), ForeignKey("customer_addresses.id"), nullable=True
    )
    updated_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # no ON DELETE: a product with order history cannot be deleted
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    line_number = Column(Integer, nullable=False, default=1)
    sku = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)


class OrderEvent(Base):
    """Append-only audit trail per order."""

    __tablename__ = "order_events"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_type = Column(String(64), nullable=False)
    actor = Column(String(128), nullable=True)
    note = Column(Text, nullable=True)
    data = Column("metadata", JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class Payment(Base):
    __tablename__ = "payments"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    transaction_id = Column(String(128), unique=True, nullable=False)
    status = Column(String(32), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    method = Column(String(32), nullable=True)
    processed_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
