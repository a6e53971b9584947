from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String

from storefront.db import Base
from storefront.utils.ids import new_id


class Customer(Base):
    __tablename__ = "customers"
    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    phone = Column(String(32), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class CustomerAddress(Base):
    """Immutable per-order address snapshot; never reused across orders."""

    __tablename__ = "customer_addresses"
    __table_args__ = (
        CheckConstraint(
            "address_type IN ('shipping', 'billing')",
            name="customer_addresses_type_check",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(
        String(36),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label = Column(String(128), nullable=True)
    line1 = Column(String(256), nullable=False)
    line2 = Column(String(256), nullable=True)
    city = Column(String(128), nullable=False)
    state = Column(String(128), nullable=True)
    postal_code = Column(String(6), nullable=False)
    country = Column(String(64), nullable=False)
    address_type = Column(String(16), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
