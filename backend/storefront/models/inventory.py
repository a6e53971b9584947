from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from storefront.db import Base
from storefront.utils.ids import new_id


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    on_hand = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)
    safety_stock = Column(Integer, nullable=False, default=0)
    reorder_point = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class InventoryEvent(Base):
    """Append-only audit row for every inventory mutation."""

    __tablename__ = "inventory_events"
    id = Column(String(36), primary_key=True, default=new_id)
    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    event_type = Column(String(64), nullable=False)
    delta = Column(Integer, nullable=False)
    source = Column(String(64), nullable=False)
    # "metadata" is reserved on declarative classes
    data = Column("metadata", JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
